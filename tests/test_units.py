from decimal import Decimal

import pytest

from deployer.errors import ConfigurationError
from deployer.units import format_ether, format_gwei, format_idr, format_usd, parse_gwei, parse_units


def test_parse_gwei_is_exact() -> None:
    assert parse_gwei("50") == 50 * 10**9
    assert parse_gwei("1.5") == 1_500_000_000
    assert parse_gwei("0.000000001") == 1
    assert parse_gwei(" 2 ") == 2 * 10**9


def test_parse_units_large_values_do_not_round() -> None:
    assert parse_units("123456789012345678901234567890.123456789", 9) == 123456789012345678901234567890123456789


@pytest.mark.parametrize("raw", ["abc", "", "-1", "NaN", "Infinity", "0.0000000001"])
def test_parse_gwei_rejects(raw: str) -> None:
    with pytest.raises(ConfigurationError):
        parse_gwei(raw)


def test_format_units() -> None:
    assert format_ether(15 * 10**15) == "0.015"
    assert format_ether(10**18) == "1.0"
    assert format_ether(0) == "0.0"
    assert format_ether(1) == "0.000000000000000001"
    assert format_gwei(1_500_000_000) == "1.5"


def test_fiat_formatting() -> None:
    assert format_usd(Decimal("0.0093")) == "$0.01"
    assert format_usd(Decimal("12.345")) == "$12.35"
    assert format_idr(Decimal("158.1")) == "Rp 158"
    assert format_idr(Decimal("1234567.5")) == "Rp 1.234.568"
