from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from eth_abi import encode as abi_encode
from eth_utils.abi import collapse_if_tuple

from deployer.errors import ConfigurationError


PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _candidates(contract_name: str, roots: Sequence[Path]) -> List[Path]:
    out: List[Path] = []
    for root in roots:
        out.extend(
            [
                root / "artifacts" / "contracts" / f"{contract_name}.sol" / f"{contract_name}.json",
                root / "contracts" / "artifacts" / "contracts" / f"{contract_name}.sol" / f"{contract_name}.json",
                root / "out" / f"{contract_name}.sol" / f"{contract_name}.json",
                root / "deploy" / "artifacts" / f"{contract_name}.json",
            ]
        )
    return out


def _bytecode_hex(raw: Any) -> str:
    # Foundry nests bytecode under {"object": ...}
    if isinstance(raw, dict):
        raw = raw.get("object")
    hx = str(raw or "").strip()
    if hx and not hx.startswith("0x"):
        hx = "0x" + hx
    return hx


@dataclass(frozen=True)
class ContractArtifact:
    contract_name: str
    source_name: Optional[str]
    abi: List[Dict[str, Any]]
    bytecode: str
    path: Path

    @property
    def fully_qualified_name(self) -> str:
        source = self.source_name or f"contracts/{self.contract_name}.sol"
        return f"{source}:{self.contract_name}"

    def constructor_types(self) -> List[str]:
        for item in self.abi:
            if item.get("type") == "constructor":
                return [collapse_if_tuple(dict(arg)) for arg in item.get("inputs") or []]
        return []

    def encode_constructor_args(self, args: Sequence[Any]) -> str:
        types = self.constructor_types()
        if len(types) != len(args):
            raise ConfigurationError(
                f"{self.contract_name} constructor takes {len(types)} argument(s), got {len(args)}"
            )
        if not types:
            return ""
        return abi_encode(types, list(args)).hex()

    def deploy_data(self, args: Sequence[Any]) -> str:
        return self.bytecode + self.encode_constructor_args(args)

    def build_info(self) -> Optional[Dict[str, Any]]:
        """Hardhat build-info (solc standard-JSON input + version), if present."""
        dbg = self.path.with_name(f"{self.contract_name}.dbg.json")
        try:
            rel = json.loads(dbg.read_text(encoding="utf-8")).get("buildInfo")
            if not rel:
                return None
            data = json.loads((dbg.parent / rel).resolve().read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) else None


def load_artifact(
    contract_name: str,
    path: Optional[Path] = None,
    roots: Optional[Sequence[Path]] = None,
) -> ContractArtifact:
    if path is not None:
        candidates = [Path(path)]
    else:
        if roots is None:
            roots = [Path.cwd(), PROJECT_ROOT]
        candidates = _candidates(contract_name, roots)

    for candidate in candidates:
        if not candidate.exists():
            continue
        try:
            data = json.loads(candidate.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigurationError(f"unreadable artifact {candidate}: {exc}") from exc
        abi = data.get("abi")
        bytecode = _bytecode_hex(data.get("bytecode"))
        if not isinstance(abi, list) or len(bytecode) <= 2:
            raise ConfigurationError(f"artifact missing abi/bytecode: {candidate}")
        return ContractArtifact(
            contract_name=str(data.get("contractName") or contract_name),
            source_name=data.get("sourceName"),
            abi=abi,
            bytecode=bytecode,
            path=candidate,
        )
    raise ConfigurationError(
        f"no artifact found for {contract_name} (compile the contract first, or pass --artifact)"
    )
