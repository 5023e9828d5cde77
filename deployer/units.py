from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

from deployer.errors import ConfigurationError


GWEI_DECIMALS = 9
ETHER_DECIMALS = 18

# Enough digits that wei-scale amounts never round.
PRECISION = 96


def parse_units(value: Any, decimals: int) -> int:
    """Parse a decimal string ("1.5") into base units, exactly.

    More fractional digits than `decimals` is an error rather than a silent
    truncation.
    """
    text = str(value).strip()
    try:
        amt = Decimal(text)
    except (InvalidOperation, ValueError):
        raise ConfigurationError(f"invalid decimal amount: {value!r}") from None
    if not amt.is_finite() or amt < 0:
        raise ConfigurationError(f"invalid decimal amount: {value!r}")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        scaled = amt.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ConfigurationError(f"too many decimals for {decimals}-decimal unit: {value!r}")
    return int(scaled)


def parse_gwei(value: Any) -> int:
    return parse_units(value, GWEI_DECIMALS)


def to_decimal_units(amount: int, decimals: int = ETHER_DECIMALS) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return Decimal(int(amount)).scaleb(-decimals)


def format_units(amount: int, decimals: int = ETHER_DECIMALS) -> str:
    # "1.0" for whole amounts, trailing zeros stripped otherwise.
    neg = int(amount) < 0
    whole, frac = divmod(abs(int(amount)), 10 ** decimals)
    frac_s = str(frac).rjust(decimals, "0").rstrip("0") if decimals > 0 else ""
    out = f"{whole}.{frac_s or '0'}"
    return f"-{out}" if neg else out


def format_ether(amount: int) -> str:
    return format_units(amount, ETHER_DECIMALS)


def format_gwei(amount: int) -> str:
    return format_units(amount, GWEI_DECIMALS)


def format_usd(amount: Decimal) -> str:
    return "$" + str(Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def round_whole(amount: Decimal) -> int:
    return int(Decimal(amount).to_integral_value(rounding=ROUND_HALF_UP))


def format_idr(amount: Decimal) -> str:
    """Rupiah with id-ID grouping, rounded to whole units: Rp 1.234.567"""
    whole = round_whole(amount)
    grouped = f"{abs(whole):,}".replace(",", ".")
    return f"Rp {'-' if whole < 0 else ''}{grouped}"
