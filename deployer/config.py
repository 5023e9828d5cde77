# deployer/config.py
# NOTE:
# Never commit PRIVATE_KEY. Keep it in the environment or an untracked .env.

from __future__ import annotations

import binascii
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Mapping, Optional

from eth_utils import is_hexstr, remove_0x_prefix
from web3 import Account, Web3

from deployer.errors import ConfigurationError
from deployer.estimator import DEFAULT_USD_TO_IDR, FeeOverrides
from deployer.networks import NativeProfile
from deployer.units import parse_gwei


CONTRACT_NAME = "X402Splitter"

IMPLEMENTATION_NOTE = "Simple splitter for native/ERC20. Update this note if you upgrade contract."

# One call, one attempt. The operator re-runs on failure.
RPC_DEFAULT_TIMEOUT_S = 30.0

# Receipt wait after broadcast.
DEPLOY_DEFAULT_TIMEOUT_S = 300.0
RECEIPT_POLL_INTERVAL_S = 2.0

DEFAULT_DEPLOYMENTS_FILE = "deployed.json"

ADMIN_ENV_KEYS = ("ADMIN_WALLET", "X402_ADMIN_WALLET")
PRICE_ENV_KEYS = ("ETH_USD_PRICE", "MATIC_USD_PRICE", "MEGA_USD_PRICE")

_TRUTHY = {"1", "true", "yes", "on"}

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


@dataclass(frozen=True)
class DeployConfig:
    admin: Optional[str] = None
    private_key: Optional[str] = None
    gas_limit: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    usd_prices: Dict[str, Decimal] = field(default_factory=dict)
    usd_to_idr: Decimal = DEFAULT_USD_TO_IDR
    confirmations: int = 1
    auto_verify: bool = False
    explorer_api_key: Optional[str] = None
    rpc_timeout_s: float = RPC_DEFAULT_TIMEOUT_S
    deploy_timeout_s: float = DEPLOY_DEFAULT_TIMEOUT_S
    deployments_file: Path = Path(DEFAULT_DEPLOYMENTS_FILE)
    network: Optional[str] = None

    def require_admin(self) -> str:
        if not self.admin:
            raise ConfigurationError("ADMIN_WALLET / X402_ADMIN_WALLET not set")
        return self.admin

    def require_private_key(self) -> str:
        if not self.private_key:
            raise ConfigurationError("PRIVATE_KEY not set")
        return self.private_key

    def usd_price_for(self, native: NativeProfile) -> Decimal:
        return self.usd_prices.get(native.price_env_key, Decimal(0))

    def fee_overrides(self) -> FeeOverrides:
        return FeeOverrides(
            max_fee_per_gas=self.max_fee_per_gas,
            max_priority_fee_per_gas=self.max_priority_fee_per_gas,
        )

    def has_fee_overrides(self) -> bool:
        return self.max_fee_per_gas is not None or self.max_priority_fee_per_gas is not None


def _get(env: Mapping[str, str], key: str) -> Optional[str]:
    val = env.get(key)
    if val is None:
        return None
    val = str(val).strip()
    return val or None


def _parse_address(raw: Optional[str], key: str) -> Optional[str]:
    if raw is None:
        return None
    if not Web3.is_address(raw):
        raise ConfigurationError(f"{key} is not a valid address: {raw}")
    return Web3.to_checksum_address(raw)


def _parse_int(raw: Optional[str], key: str, *, minimum: int = 0) -> Optional[int]:
    if raw is None:
        return None
    try:
        val = int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from None
    if val < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}, got {val}")
    return val


def _parse_decimal(raw: Optional[str], key: str) -> Optional[Decimal]:
    if raw is None:
        return None
    try:
        val = Decimal(raw)
    except (InvalidOperation, ValueError):
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from None
    if not val.is_finite() or val < 0:
        raise ConfigurationError(f"{key} must be a non-negative number, got {raw!r}")
    return val


def _parse_float(raw: Optional[str], key: str, default: float) -> float:
    val = _parse_decimal(raw, key)
    if val is None or val == 0:
        return default
    return float(val)


def _parse_gwei(raw: Optional[str], key: str) -> Optional[int]:
    if raw is None:
        return None
    try:
        return parse_gwei(raw)
    except ConfigurationError as exc:
        raise ConfigurationError(f"{key}: {exc}") from None


def _parse_private_key(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    body = remove_0x_prefix(raw)
    if len(body) != 64 or not is_hexstr(body) or not 0 < int(body, 16) < SECP256K1_N:
        raise ConfigurationError("PRIVATE_KEY is not a valid key")
    try:
        Account.from_key(raw)
    except (ValueError, TypeError, binascii.Error):
        raise ConfigurationError("PRIVATE_KEY is not a valid key") from None
    return raw


def load_deploy_config(env: Optional[Mapping[str, str]] = None) -> DeployConfig:
    """Build the process configuration from environment variables.

    Read once at startup; nothing else in the package looks at os.environ
    for these keys.
    """
    if env is None:
        env = os.environ

    admin_key = next((k for k in ADMIN_ENV_KEYS if _get(env, k)), ADMIN_ENV_KEYS[0])
    admin = _parse_address(_get(env, admin_key), admin_key)

    prices: Dict[str, Decimal] = {}
    for key in PRICE_ENV_KEYS:
        price = _parse_decimal(_get(env, key), key)
        if price is not None:
            prices[key] = price

    usd_to_idr = _parse_decimal(_get(env, "DOLLAR_USD_TO_RUPIAH"), "DOLLAR_USD_TO_RUPIAH")
    if usd_to_idr is not None and usd_to_idr == 0:
        raise ConfigurationError("DOLLAR_USD_TO_RUPIAH must be > 0")
    confirmations = _parse_int(_get(env, "CONFIRMATIONS"), "CONFIRMATIONS", minimum=1)
    gas_limit = _parse_int(_get(env, "GAS_LIMIT"), "GAS_LIMIT", minimum=1)

    return DeployConfig(
        admin=admin,
        private_key=_parse_private_key(_get(env, "PRIVATE_KEY")),
        gas_limit=gas_limit,
        max_fee_per_gas=_parse_gwei(_get(env, "MAX_FEE_GWEI"), "MAX_FEE_GWEI"),
        max_priority_fee_per_gas=_parse_gwei(_get(env, "MAX_PRIORITY_FEE_GWEI"), "MAX_PRIORITY_FEE_GWEI"),
        usd_prices=prices,
        usd_to_idr=usd_to_idr if usd_to_idr is not None else DEFAULT_USD_TO_IDR,
        confirmations=confirmations or 1,
        auto_verify=str(_get(env, "AUTO_VERIFY") or "").lower() in _TRUTHY,
        explorer_api_key=_get(env, "POLYGONSCAN_API_KEY"),
        rpc_timeout_s=_parse_float(_get(env, "RPC_TIMEOUT_S"), "RPC_TIMEOUT_S", RPC_DEFAULT_TIMEOUT_S),
        deploy_timeout_s=_parse_float(_get(env, "DEPLOY_TIMEOUT_S"), "DEPLOY_TIMEOUT_S", DEPLOY_DEFAULT_TIMEOUT_S),
        deployments_file=Path(_get(env, "DEPLOYMENTS_FILE") or DEFAULT_DEPLOYMENTS_FILE),
        network=_get(env, "NETWORK"),
    )
