from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from deployer.errors import ChainClientError, ChainClientTimeout, EstimationUnavailable
from deployer.estimator import FeeQuote
from infra.rpc import hex_to_int

logger = logging.getLogger(__name__)


def _to_hex(value: Optional[int]) -> Optional[str]:
    if value is None:
        return None
    try:
        return hex(int(value))
    except (TypeError, ValueError):
        return None


async def _optional_int(rpc: Any, method: str, params: list) -> Optional[int]:
    # Nodes without EIP-1559 support reject some of these methods.
    try:
        res = await rpc.call(method, params)
    except ChainClientTimeout:
        raise
    except ChainClientError as exc:
        logger.debug("%s unavailable: %s", method, exc)
        return None
    if res is None:
        return None
    try:
        return hex_to_int(res)
    except (TypeError, ValueError):
        return None


async def get_fee_quote(rpc: Any) -> FeeQuote:
    """Current fee quote: latest base fee, suggested priority, legacy gas price.

    max_fee_per_gas is 2 * baseFee + priority whenever the latest block
    carries a base fee. A timeout is never masked.
    """
    base_fee: Optional[int] = None
    block = await rpc.get_block("latest")
    if block is not None and block.get("baseFeePerGas") is not None:
        base_fee = hex_to_int(block["baseFeePerGas"])

    gas_price = await _optional_int(rpc, "eth_gasPrice", [])

    priority: Optional[int] = None
    max_fee: Optional[int] = None
    if base_fee is not None:
        priority = await _optional_int(rpc, "eth_maxPriorityFeePerGas", [])
        tip = priority if priority is not None else 10**9
        max_fee = base_fee * 2 + tip

    return FeeQuote(
        base_fee_per_gas=base_fee,
        max_priority_fee_per_gas=priority,
        max_fee_per_gas=max_fee,
        gas_price=gas_price,
    )


async def estimate_gas(rpc: Any, tx_params: Dict[str, Any]) -> int:
    """eth_estimateGas for a prepared, unsent transaction.

    Int values are converted to hex quantities. Any failure is reported as
    EstimationUnavailable, except timeouts.
    """
    payload = dict(tx_params)
    for key in ("value", "gas", "gasPrice", "maxFeePerGas", "maxPriorityFeePerGas", "nonce", "chainId"):
        if key in payload:
            hx = _to_hex(payload.get(key))
            if hx is not None:
                payload[key] = hx
    try:
        res = await rpc.call("eth_estimateGas", [payload])
        units = hex_to_int(res)
    except ChainClientTimeout:
        raise
    except (ChainClientError, TypeError, ValueError) as exc:
        raise EstimationUnavailable(f"gas estimation failed: {exc}") from exc
    if units <= 0:
        raise EstimationUnavailable(f"gas estimation returned {units}")
    return units
