"""Deployment cost estimate from gas units and a fee quote.

All fee and cost quantities are integer wei. Decimal only appears when a
bound is converted to native display units or to fiat.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Any, Dict, Optional

from deployer.errors import ConfigurationError, EstimationUnavailable, NoFeeDataAvailable
from deployer.networks import NativeProfile, native_profile
from deployer.units import PRECISION, format_ether, round_whole, to_decimal_units


GWEI = 10**9

# Priority fee used when neither an override nor the node suggests one.
DEFAULT_PRIORITY_FEE = 1 * GWEI

DEFAULT_USD_TO_IDR = Decimal("17000")


@dataclass(frozen=True)
class FeeQuote:
    base_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    gas_price: Optional[int] = None

    @property
    def is_fee_market(self) -> bool:
        return self.base_fee_per_gas is not None


@dataclass(frozen=True)
class FeeOverrides:
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None


@dataclass(frozen=True)
class FiatAmount:
    usd: Decimal
    idr: Decimal

    @property
    def idr_rounded(self) -> int:
        return round_whole(self.idr)


@dataclass(frozen=True)
class CostEstimate:
    gas_units: int
    upper_wei: int
    lower_wei: int
    max_fee_per_gas: int
    priority_fee_per_gas: int
    native: NativeProfile
    fiat_upper: Optional[FiatAmount] = None
    fiat_lower: Optional[FiatAmount] = None

    @property
    def is_exact(self) -> bool:
        return self.upper_wei == self.lower_wei

    @property
    def upper_native(self) -> Decimal:
        return to_decimal_units(self.upper_wei)

    @property
    def lower_native(self) -> Decimal:
        return to_decimal_units(self.lower_wei)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "gas_units": self.gas_units,
            "native_symbol": self.native.symbol,
            "max_fee_per_gas": self.max_fee_per_gas,
            "priority_fee_per_gas": self.priority_fee_per_gas,
        }
        if self.is_exact:
            out["cost_wei"] = self.upper_wei
            out["cost_native"] = format_ether(self.upper_wei)
            if self.fiat_upper is not None:
                out["fiat"] = _fiat_dict(self.fiat_upper)
            return out
        out["upper_wei"] = self.upper_wei
        out["lower_wei"] = self.lower_wei
        out["upper_native"] = format_ether(self.upper_wei)
        out["lower_native"] = format_ether(self.lower_wei)
        if self.fiat_upper is not None and self.fiat_lower is not None:
            out["fiat"] = {"upper": _fiat_dict(self.fiat_upper), "lower": _fiat_dict(self.fiat_lower)}
        return out


def _fiat_dict(amount: FiatAmount) -> Dict[str, Any]:
    return {"usd": format(amount.usd.normalize(), "f"), "idr": amount.idr_rounded}


def resolve_priority_fee(quote: FeeQuote, overrides: Optional[FeeOverrides] = None) -> int:
    if overrides is not None and overrides.max_priority_fee_per_gas is not None:
        return int(overrides.max_priority_fee_per_gas)
    if quote.max_priority_fee_per_gas is not None:
        return int(quote.max_priority_fee_per_gas)
    return DEFAULT_PRIORITY_FEE


def resolve_max_fee(quote: FeeQuote, overrides: Optional[FeeOverrides] = None) -> int:
    """Override, then the suggested max fee, then the legacy gas price."""
    if overrides is not None and overrides.max_fee_per_gas is not None:
        return int(overrides.max_fee_per_gas)
    if quote.max_fee_per_gas is not None:
        return int(quote.max_fee_per_gas)
    if quote.gas_price is not None:
        return int(quote.gas_price)
    raise NoFeeDataAvailable("provider returned no gas price / maxFeePerGas and no override was given")


def to_fiat(amount_wei: int, usd_price: Decimal, usd_to_idr: Decimal = DEFAULT_USD_TO_IDR) -> FiatAmount:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        usd = to_decimal_units(amount_wei) * Decimal(usd_price)
        idr = usd * Decimal(usd_to_idr)
    return FiatAmount(usd=usd, idr=idr)


def estimate_cost(
    gas_units: Optional[int],
    quote: FeeQuote,
    *,
    chain_id: Any,
    overrides: Optional[FeeOverrides] = None,
    usd_price: Optional[Decimal] = None,
    usd_to_idr: Decimal = DEFAULT_USD_TO_IDR,
) -> CostEstimate:
    if gas_units is None:
        raise EstimationUnavailable("gas units unknown: no GAS_LIMIT override and no estimate")
    units = int(gas_units)
    if units < 0:
        raise EstimationUnavailable(f"invalid gas units: {units}")
    if usd_price is not None and Decimal(usd_price) < 0:
        raise ConfigurationError(f"native USD price must be >= 0, got {usd_price}")

    max_fee = resolve_max_fee(quote, overrides)
    priority = resolve_priority_fee(quote, overrides)

    upper = units * max_fee
    lower = upper
    if quote.base_fee_per_gas is not None:
        # effective price never exceeds the max fee
        lower = units * min(max_fee, int(quote.base_fee_per_gas) + priority)

    fiat_upper = fiat_lower = None
    if usd_price is not None and Decimal(usd_price) > 0:
        fiat_upper = to_fiat(upper, Decimal(usd_price), usd_to_idr)
        fiat_lower = to_fiat(lower, Decimal(usd_price), usd_to_idr)

    return CostEstimate(
        gas_units=units,
        upper_wei=upper,
        lower_wei=lower,
        max_fee_per_gas=max_fee,
        priority_fee_per_gas=priority,
        native=native_profile(chain_id),
        fiat_upper=fiat_upper,
        fiat_lower=fiat_lower,
    )
