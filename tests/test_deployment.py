import asyncio
import json
from decimal import Decimal
from pathlib import Path

import pytest
from eth_account import Account
from eth_account.typed_transactions import TypedTransaction
from hexbytes import HexBytes

from deployer import deployment
from deployer.config import load_deploy_config
from deployer.deployment import build_deploy_transaction, deploy_contract, estimate_deployment
from deployer.errors import ChainClientError, ConfigurationError, EstimationUnavailable, PersistenceError, VerificationError
from deployer.estimator import FeeQuote
from deployer.networks import load_networks
from deployer.recorder import DeploymentRecorder
from fakes import ADMIN, PRIVATE_KEY, SIGNER, FakeRPC

CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
TX_HASH = "0x" + "ab" * 32


def _amoy():
    return load_networks(env={})["polygonAmoyTestnet"]


def _chain(**overrides):
    sent = []

    def _send(params):
        sent.append(params[0])
        return TX_HASH

    receipts = iter([None, {"blockNumber": "0x10", "status": "0x1", "contractAddress": CONTRACT.lower(), "gasUsed": "0x493e0"}])
    responses = {
        "eth_chainId": hex(80002),
        "eth_getBlockByNumber": {"number": "0x10", "baseFeePerGas": hex(30 * 10**9)},
        "eth_gasPrice": hex(31 * 10**9),
        "eth_maxPriorityFeePerGas": hex(2 * 10**9),
        "eth_estimateGas": hex(300_000),
        "eth_getTransactionCount": "0x5",
        "eth_sendRawTransaction": _send,
        "eth_getTransactionReceipt": lambda params: next(receipts),
        "eth_blockNumber": "0x11",
    }
    responses.update(overrides)
    rpc = FakeRPC(responses)
    rpc.sent = sent
    return rpc


def _cfg(**env):
    base = {"ADMIN_WALLET": ADMIN, "PRIVATE_KEY": PRIVATE_KEY}
    base.update(env)
    return load_deploy_config(base)


def test_estimate_deployment_uses_signer_and_ctor_args(artifact) -> None:
    rpc = _chain()
    report = asyncio.run(estimate_deployment(rpc, _cfg(MATIC_USD_PRICE="0.5"), _amoy(), artifact))
    assert report.chain_id == 80002
    assert report.sender == SIGNER
    assert report.estimate.gas_units == 300_000
    assert report.estimate.upper_wei == 300_000 * 62 * 10**9
    assert report.estimate.lower_wei == 300_000 * 32 * 10**9
    assert report.estimate.native.symbol == "MATIC"
    assert report.estimate.fiat_upper.usd == Decimal("0.0093")
    (tx,) = [p[0] for m, p in rpc.calls if m == "eth_estimateGas"]
    assert tx["from"] == SIGNER
    assert tx["data"] == artifact.deploy_data([ADMIN])


def test_estimate_with_gas_limit_skips_simulation(artifact) -> None:
    rpc = _chain()
    report = asyncio.run(estimate_deployment(rpc, _cfg(GAS_LIMIT="250000", PRIVATE_KEY=""), _amoy(), artifact))
    assert report.estimate.gas_units == 250_000
    assert report.sender == ADMIN
    assert "eth_estimateGas" not in rpc.methods()


def test_estimate_without_admin(artifact) -> None:
    with pytest.raises(ConfigurationError):
        asyncio.run(estimate_deployment(_chain(), load_deploy_config({}), _amoy(), artifact))


def test_estimate_failure_is_reported(artifact) -> None:
    rpc = _chain(eth_estimateGas=ChainClientError("eth_estimateGas: rpc_error: execution reverted"))
    with pytest.raises(EstimationUnavailable):
        asyncio.run(estimate_deployment(rpc, _cfg(), _amoy(), artifact))


def test_build_transaction_legacy_chain() -> None:
    tx = build_deploy_transaction(
        {"data": "0x60"}, chain_id=1337, nonce=0, gas=21000, quote=FeeQuote(gas_price=7), cfg=_cfg()
    )
    assert tx["gasPrice"] == 7
    assert "maxFeePerGas" not in tx and "type" not in tx


def test_priority_override_alone_keeps_legacy_tx() -> None:
    tx = build_deploy_transaction(
        {"data": "0x60"},
        chain_id=1337,
        nonce=0,
        gas=21000,
        quote=FeeQuote(gas_price=7),
        cfg=_cfg(MAX_PRIORITY_FEE_GWEI="2"),
    )
    assert tx["gasPrice"] == 7
    assert "type" not in tx and "maxPriorityFeePerGas" not in tx


def test_max_fee_override_switches_legacy_chain_to_type2() -> None:
    tx = build_deploy_transaction(
        {"data": "0x60"}, chain_id=1337, nonce=0, gas=21000, quote=FeeQuote(gas_price=7), cfg=_cfg(MAX_FEE_GWEI="3")
    )
    assert tx["type"] == 2
    assert tx["maxFeePerGas"] == 3 * 10**9
    assert tx["maxPriorityFeePerGas"] == 10**9


def test_build_transaction_caps_priority_at_max_fee() -> None:
    cfg = _cfg(MAX_FEE_GWEI="1", MAX_PRIORITY_FEE_GWEI="5")
    tx = build_deploy_transaction(
        {"data": "0x60"}, chain_id=80002, nonce=1, gas=21000, quote=FeeQuote(base_fee_per_gas=1), cfg=cfg
    )
    assert tx["type"] == 2
    assert tx["maxFeePerGas"] == 10**9
    assert tx["maxPriorityFeePerGas"] == 10**9


def test_deploy_signs_sends_and_records(artifact, tmp_path: Path) -> None:
    rpc = _chain()
    recorder = DeploymentRecorder(tmp_path / "deployed.json")
    cfg = _cfg(CONFIRMATIONS="2")
    result = asyncio.run(deploy_contract(rpc, cfg, _amoy(), artifact, recorder, poll_s=0))

    assert result.record.address == CONTRACT
    assert result.record.block_number == 16
    assert result.record.chain_id == 80002
    assert result.record.constructor_args == [ADMIN]
    assert result.deployer == SIGNER
    assert result.gas_used == 300_000
    assert result.address_url == f"https://amoy.polygonscan.com/address/{CONTRACT}"
    assert result.tx_url == f"https://amoy.polygonscan.com/tx/{TX_HASH}"
    assert result.verification_guid is None
    assert "eth_blockNumber" in rpc.methods()

    (raw,) = rpc.sent
    tx = TypedTransaction.from_bytes(HexBytes(raw))
    fields = tx.as_dict()
    assert fields["chainId"] == 80002
    assert fields["nonce"] == 5
    assert fields["gas"] == 300_000
    assert fields["maxFeePerGas"] == 62 * 10**9
    assert fields["maxPriorityFeePerGas"] == 2 * 10**9
    assert Account.recover_transaction(raw) == SIGNER

    doc = json.loads((tmp_path / "deployed.json").read_text(encoding="utf-8"))
    assert doc["80002"]["X402Splitter"]["address"] == CONTRACT
    assert doc["_latest"]["polygonAmoyTestnet"]["contract"] == "X402Splitter"


def test_deploy_requires_private_key(artifact, tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="PRIVATE_KEY"):
        asyncio.run(
            deploy_contract(_chain(), _cfg(PRIVATE_KEY=""), _amoy(), artifact, DeploymentRecorder(tmp_path / "d.json"))
        )


def test_reverted_deploy_is_not_recorded(artifact, tmp_path: Path) -> None:
    reverted = {"blockNumber": "0x10", "status": "0x0", "contractAddress": None}
    rpc = _chain(eth_getTransactionReceipt=reverted)
    recorder = DeploymentRecorder(tmp_path / "deployed.json")
    with pytest.raises(ChainClientError, match="reverted"):
        asyncio.run(deploy_contract(rpc, _cfg(), _amoy(), artifact, recorder, poll_s=0))
    assert recorder.load() == {}


def test_persistence_failure_aborts(artifact, tmp_path: Path) -> None:
    target = tmp_path / "deployed.json"
    target.mkdir()
    with pytest.raises(PersistenceError):
        asyncio.run(deploy_contract(_chain(), _cfg(), _amoy(), artifact, DeploymentRecorder(target), poll_s=0))


def test_verification_failure_is_not_fatal(artifact, tmp_path: Path, monkeypatch, caplog) -> None:
    async def _fail(*args, **kwargs):
        raise VerificationError("explorer rejected verification: Unable to locate ContractCode")

    monkeypatch.setattr(deployment, "submit_verification", _fail)
    recorder = DeploymentRecorder(tmp_path / "deployed.json")
    cfg = _cfg(AUTO_VERIFY="true", POLYGONSCAN_API_KEY="key")
    with caplog.at_level("WARNING"):
        result = asyncio.run(deploy_contract(_chain(), cfg, _amoy(), artifact, recorder, poll_s=0))
    assert result.record.address == CONTRACT
    assert result.verification_guid is None
    assert recorder.get(80002, "X402Splitter") is not None
    assert "verify skipped/failed" in caplog.text


def test_verification_success_returns_guid(artifact, tmp_path: Path, monkeypatch) -> None:
    seen = {}

    async def _ok(network, art, *, address, constructor_args, api_key):
        seen.update(address=address, args=constructor_args, key=api_key)
        return "guid-123"

    monkeypatch.setattr(deployment, "submit_verification", _ok)
    cfg = _cfg(AUTO_VERIFY="1", POLYGONSCAN_API_KEY="key")
    result = asyncio.run(
        deploy_contract(_chain(), cfg, _amoy(), artifact, DeploymentRecorder(tmp_path / "d.json"), poll_s=0)
    )
    assert result.verification_guid == "guid-123"
    assert seen == {"address": CONTRACT, "args": [ADMIN], "key": "key"}
