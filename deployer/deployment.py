from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from web3 import Account, Web3

from deployer.artifacts import ContractArtifact
from deployer.config import CONTRACT_NAME, IMPLEMENTATION_NOTE, RECEIPT_POLL_INTERVAL_S, DeployConfig
from deployer.errors import ChainClientError, ChainClientTimeout, VerificationError
from deployer.estimator import CostEstimate, FeeQuote, estimate_cost, resolve_max_fee, resolve_priority_fee
from deployer.networks import NetworkConfig, native_profile
from deployer.recorder import DeploymentRecord, DeploymentRecorder, utc_now_iso
from deployer.verify import submit_verification
from infra import gas as gas_oracle
from infra.rpc import hex_to_int

logger = logging.getLogger(__name__)


async def resolve_chain_id(rpc: Any, network: NetworkConfig) -> int:
    """Chain id reported by the node; a mismatch with the registry is logged."""
    chain_id = int(await rpc.chain_id())
    if chain_id != network.chain_id:
        logger.warning(
            "node for %s reports chainId %s, registry says %s; using the node's",
            network.name,
            chain_id,
            network.chain_id,
        )
    return chain_id


def deployer_address(cfg: DeployConfig) -> str:
    """Signer address when a key is configured, else the admin address."""
    if cfg.private_key:
        return Account.from_key(cfg.private_key).address
    return cfg.require_admin()


def build_deploy_request(artifact: ContractArtifact, *, sender: str, admin: str) -> Dict[str, Any]:
    return {"from": sender, "data": artifact.deploy_data([admin])}


async def resolve_gas_units(rpc: Any, cfg: DeployConfig, tx_request: Dict[str, Any]) -> int:
    if cfg.gas_limit is not None:
        return int(cfg.gas_limit)
    return await gas_oracle.estimate_gas(rpc, tx_request)


@dataclass(frozen=True)
class EstimateReport:
    network: NetworkConfig
    chain_id: int
    admin: str
    sender: str
    quote: FeeQuote
    estimate: CostEstimate


async def estimate_deployment(
    rpc: Any,
    cfg: DeployConfig,
    network: NetworkConfig,
    artifact: ContractArtifact,
) -> EstimateReport:
    admin = cfg.require_admin()
    chain_id = await resolve_chain_id(rpc, network)
    sender = deployer_address(cfg)
    tx_request = build_deploy_request(artifact, sender=sender, admin=admin)

    quote = await gas_oracle.get_fee_quote(rpc)
    gas_units = await resolve_gas_units(rpc, cfg, tx_request)
    estimate = estimate_cost(
        gas_units,
        quote,
        chain_id=chain_id,
        overrides=cfg.fee_overrides(),
        usd_price=cfg.usd_price_for(native_profile(chain_id)),
        usd_to_idr=cfg.usd_to_idr,
    )
    return EstimateReport(network=network, chain_id=chain_id, admin=admin, sender=sender, quote=quote, estimate=estimate)


def build_deploy_transaction(
    tx_request: Dict[str, Any],
    *,
    chain_id: int,
    nonce: int,
    gas: int,
    quote: FeeQuote,
    cfg: DeployConfig,
) -> Dict[str, Any]:
    """Signable creation tx: EIP-1559 on fee-market chains or with a max-fee
    override, legacy gasPrice otherwise."""
    overrides = cfg.fee_overrides()
    tx: Dict[str, Any] = {
        "chainId": int(chain_id),
        "nonce": int(nonce),
        "gas": int(gas),
        "value": 0,
        "data": tx_request["data"],
    }
    max_fee = resolve_max_fee(quote, overrides)
    if quote.is_fee_market or cfg.max_fee_per_gas is not None:
        tx["type"] = 2
        tx["maxFeePerGas"] = max_fee
        tx["maxPriorityFeePerGas"] = min(resolve_priority_fee(quote, overrides), max_fee)
    else:
        tx["gasPrice"] = max_fee
    return tx


async def wait_for_receipt(
    rpc: Any,
    tx_hash: str,
    *,
    timeout_s: float,
    poll_s: float = RECEIPT_POLL_INTERVAL_S,
) -> Dict[str, Any]:
    deadline = time.monotonic() + float(timeout_s)
    while True:
        receipt = await rpc.get_transaction_receipt(tx_hash)
        if receipt and receipt.get("blockNumber") is not None:
            return receipt
        if time.monotonic() >= deadline:
            raise ChainClientTimeout(f"no receipt for {tx_hash} after {timeout_s}s")
        await asyncio.sleep(poll_s)


async def wait_for_confirmations(
    rpc: Any,
    block_number: int,
    confirmations: int,
    *,
    timeout_s: float,
    poll_s: float = RECEIPT_POLL_INTERVAL_S,
) -> int:
    deadline = time.monotonic() + float(timeout_s)
    while True:
        head = await rpc.block_number()
        if head - int(block_number) + 1 >= int(confirmations):
            return head
        if time.monotonic() >= deadline:
            raise ChainClientTimeout(f"{confirmations} confirmations not reached after {timeout_s}s")
        await asyncio.sleep(poll_s)


@dataclass(frozen=True)
class DeploymentResult:
    record: DeploymentRecord
    contract_name: str
    deployer: str
    gas_used: Optional[int]
    tx_url: Optional[str]
    address_url: Optional[str]
    verification_guid: Optional[str] = None


async def deploy_contract(
    rpc: Any,
    cfg: DeployConfig,
    network: NetworkConfig,
    artifact: ContractArtifact,
    recorder: DeploymentRecorder,
    *,
    contract_name: str = CONTRACT_NAME,
    poll_s: float = RECEIPT_POLL_INTERVAL_S,
) -> DeploymentResult:
    """Sign, broadcast, wait, record, then (optionally) verify.

    A failed verification is logged and leaves the result intact; a failed
    record write raises PersistenceError.
    """
    admin = cfg.require_admin()
    account = Account.from_key(cfg.require_private_key())
    chain_id = await resolve_chain_id(rpc, network)
    tx_request = build_deploy_request(artifact, sender=account.address, admin=admin)

    quote = await gas_oracle.get_fee_quote(rpc)
    gas = await resolve_gas_units(rpc, cfg, tx_request)
    nonce = await rpc.get_transaction_count(account.address, "pending")
    tx = build_deploy_transaction(tx_request, chain_id=chain_id, nonce=nonce, gas=gas, quote=quote, cfg=cfg)

    signed = account.sign_transaction(tx)
    tx_hash = await rpc.send_raw_transaction(Web3.to_hex(signed.raw_transaction))
    logger.info("deploy tx %s sent, waiting for receipt", tx_hash)

    receipt = await wait_for_receipt(rpc, tx_hash, timeout_s=cfg.deploy_timeout_s, poll_s=poll_s)
    if hex_to_int(receipt.get("status", "0x1")) != 1:
        raise ChainClientError(f"deployment reverted in tx {tx_hash}")
    address = receipt.get("contractAddress")
    if not address:
        raise ChainClientError(f"receipt for {tx_hash} has no contractAddress")
    address = Web3.to_checksum_address(address)
    block_number = hex_to_int(receipt["blockNumber"])

    if cfg.confirmations > 1:
        logger.info("waiting for %s confirmations", cfg.confirmations)
        await wait_for_confirmations(
            rpc, block_number, cfg.confirmations, timeout_s=cfg.deploy_timeout_s, poll_s=poll_s
        )

    record = DeploymentRecord(
        address=address,
        admin=admin,
        network_name=network.name,
        chain_id=chain_id,
        deploy_tx=tx_hash,
        deployed_at=utc_now_iso(),
        block_number=block_number,
        explorer=network.explorer_url,
        constructor_args=[admin],
        implementation_note=IMPLEMENTATION_NOTE,
    )
    recorder.upsert(chain_id, contract_name, record)
    logger.info("recorded %s on chain %s in %s", contract_name, chain_id, recorder.path)

    guid: Optional[str] = None
    if cfg.auto_verify:
        try:
            guid = await submit_verification(
                network,
                artifact,
                address=address,
                constructor_args=[admin],
                api_key=cfg.explorer_api_key,
            )
        except VerificationError as exc:
            logger.warning("verify skipped/failed: %s", exc)

    gas_used = receipt.get("gasUsed")
    return DeploymentResult(
        record=record,
        contract_name=contract_name,
        deployer=account.address,
        gas_used=hex_to_int(gas_used) if gas_used is not None else None,
        tx_url=network.tx_url(tx_hash),
        address_url=network.address_url(address),
        verification_guid=guid,
    )
