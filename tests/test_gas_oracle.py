import asyncio

import pytest

from deployer.errors import ChainClientError, ChainClientTimeout, EstimationUnavailable
from fakes import FakeRPC
from infra import gas as gas_oracle


def test_fee_quote_on_fee_market_chain() -> None:
    rpc = FakeRPC(
        {
            "eth_getBlockByNumber": {"number": "0x10", "baseFeePerGas": hex(30 * 10**9)},
            "eth_gasPrice": hex(32 * 10**9),
            "eth_maxPriorityFeePerGas": hex(2 * 10**9),
        }
    )
    quote = asyncio.run(gas_oracle.get_fee_quote(rpc))
    assert quote.is_fee_market
    assert quote.base_fee_per_gas == 30 * 10**9
    assert quote.max_priority_fee_per_gas == 2 * 10**9
    assert quote.max_fee_per_gas == 62 * 10**9
    assert quote.gas_price == 32 * 10**9


def test_fee_quote_on_legacy_chain() -> None:
    rpc = FakeRPC(
        {
            "eth_getBlockByNumber": {"number": "0x10"},
            "eth_gasPrice": "0x3b9aca00",
        }
    )
    quote = asyncio.run(gas_oracle.get_fee_quote(rpc))
    assert not quote.is_fee_market
    assert quote.max_fee_per_gas is None
    assert quote.max_priority_fee_per_gas is None
    assert quote.gas_price == 10**9
    assert "eth_maxPriorityFeePerGas" not in rpc.methods()


def test_fee_quote_when_priority_method_is_missing() -> None:
    rpc = FakeRPC(
        {
            "eth_getBlockByNumber": {"baseFeePerGas": "0x64"},
            "eth_gasPrice": "0x64",
            "eth_maxPriorityFeePerGas": ChainClientError("eth_maxPriorityFeePerGas: rpc_error: method not found"),
        }
    )
    quote = asyncio.run(gas_oracle.get_fee_quote(rpc))
    assert quote.max_priority_fee_per_gas is None
    assert quote.max_fee_per_gas == 200 + 10**9


def test_fee_quote_timeout_is_not_masked() -> None:
    rpc = FakeRPC(
        {
            "eth_getBlockByNumber": {"baseFeePerGas": "0x64"},
            "eth_gasPrice": ChainClientTimeout("eth_gasPrice: timeout(30.0s)"),
        }
    )
    with pytest.raises(ChainClientTimeout):
        asyncio.run(gas_oracle.get_fee_quote(rpc))


def test_estimate_gas_hexlifies_quantities() -> None:
    rpc = FakeRPC({"eth_estimateGas": "0x5208"})
    res = asyncio.run(gas_oracle.estimate_gas(rpc, {"from": "0x0", "data": "0x60", "value": 0, "nonce": 7}))
    assert res == 21000
    (_, params), = rpc.calls
    assert params[0]["value"] == "0x0"
    assert params[0]["nonce"] == "0x7"
    assert params[0]["data"] == "0x60"


@pytest.mark.parametrize(
    "response",
    [ChainClientError("eth_estimateGas: rpc_error: execution reverted"), "0x0", None],
)
def test_estimate_gas_failures(response) -> None:
    rpc = FakeRPC({"eth_estimateGas": response})
    with pytest.raises(EstimationUnavailable):
        asyncio.run(gas_oracle.estimate_gas(rpc, {"data": "0x60"}))


def test_estimate_gas_timeout_stays_distinct() -> None:
    rpc = FakeRPC({"eth_estimateGas": ChainClientTimeout("eth_estimateGas: timeout(30.0s)")})
    with pytest.raises(ChainClientTimeout):
        asyncio.run(gas_oracle.estimate_gas(rpc, {"data": "0x60"}))
