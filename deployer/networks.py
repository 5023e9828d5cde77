from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from deployer.errors import ConfigurationError


NETWORKS_DIR = Path(__file__).resolve().parents[1] / "configs" / "networks"

DEFAULT_NETWORK = "polygonAmoyTestnet"


@dataclass(frozen=True)
class NativeProfile:
    symbol: str
    price_env_key: str


DEFAULT_NATIVE = NativeProfile(symbol="ETH", price_env_key="ETH_USD_PRICE")

_NATIVE_BY_CHAIN: Dict[int, NativeProfile] = {
    80002: NativeProfile(symbol="MATIC", price_env_key="MATIC_USD_PRICE"),
    137: NativeProfile(symbol="MATIC", price_env_key="MATIC_USD_PRICE"),
    6342: NativeProfile(symbol="MEGA", price_env_key="MEGA_USD_PRICE"),
}


def native_profile(chain_id: Any) -> NativeProfile:
    """Native token symbol and USD price env key for a chain id.

    Unknown chain ids resolve to ETH.
    """
    try:
        cid = int(chain_id)
    except (TypeError, ValueError):
        return DEFAULT_NATIVE
    return _NATIVE_BY_CHAIN.get(cid, DEFAULT_NATIVE)


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    chain_id: int
    rpc_url: str
    explorer_url: Optional[str] = None
    explorer_api_url: Optional[str] = None
    aliases: Tuple[str, ...] = ()

    @property
    def native(self) -> NativeProfile:
        return native_profile(self.chain_id)

    def address_url(self, address: str) -> Optional[str]:
        if not self.explorer_url:
            return None
        return f"{self.explorer_url}/address/{address}"

    def tx_url(self, tx_hash: str) -> Optional[str]:
        if not self.explorer_url:
            return None
        return f"{self.explorer_url}/tx/{tx_hash}"


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _clean_url(raw: Any) -> Optional[str]:
    val = str(raw or "").strip().rstrip("/")
    return val or None


def _parse_network(data: Dict[str, Any], env: Mapping[str, str]) -> Optional[NetworkConfig]:
    name = str(data.get("name") or "").strip()
    if not name:
        return None

    chain_id_raw = data.get("chain_id")
    chain_id_env = str(data.get("chain_id_env") or "")
    if chain_id_env and env.get(chain_id_env):
        chain_id_raw = env.get(chain_id_env)
    try:
        chain_id = int(str(chain_id_raw).strip())
    except (TypeError, ValueError):
        return None

    rpc_url = data.get("rpc_url")
    rpc_env = str(data.get("rpc_env") or "")
    if rpc_env and env.get(rpc_env):
        rpc_url = env.get(rpc_env)

    aliases = tuple(str(a).strip() for a in (data.get("aliases") or []) if str(a).strip())
    return NetworkConfig(
        name=name,
        chain_id=chain_id,
        rpc_url=_clean_url(rpc_url) or "",
        explorer_url=_clean_url(data.get("explorer_url")),
        explorer_api_url=_clean_url(data.get("explorer_api_url")),
        aliases=aliases,
    )


def load_networks(
    base_dir: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Dict[str, NetworkConfig]:
    """Load every network file, keyed by canonical name (sorted)."""
    base = Path(base_dir) if base_dir is not None else NETWORKS_DIR
    if env is None:
        env = os.environ
    out: Dict[str, NetworkConfig] = {}
    if not base.is_dir():
        return out
    for path in sorted(base.glob("*.json")):
        data = _read_json(path)
        if not data:
            continue
        net = _parse_network(data, env)
        if net is not None:
            out[net.name] = net
    return out


def resolve_network(
    name: Optional[str],
    networks: Optional[Dict[str, NetworkConfig]] = None,
) -> NetworkConfig:
    if networks is None:
        networks = load_networks()
    wanted = str(name or DEFAULT_NETWORK).strip()
    if wanted in networks:
        return networks[wanted]
    lowered = wanted.lower()
    for net in networks.values():
        if net.name.lower() == lowered or lowered in (a.lower() for a in net.aliases):
            return net
    known = ", ".join(sorted(networks)) or "none"
    raise ConfigurationError(f"unknown network '{wanted}' (known: {known})")
