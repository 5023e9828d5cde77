from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from deployer.doc_lock import DocumentLock
from deployer.errors import PersistenceError

logger = logging.getLogger(__name__)

LATEST_KEY = "_latest"


def utc_now_iso() -> str:
    # ISO-8601 UTC, millisecond precision, Z suffix.
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class DeploymentRecord:
    address: str
    admin: str
    network_name: str
    chain_id: int
    deploy_tx: str
    deployed_at: str
    block_number: Optional[int] = None
    explorer: Optional[str] = None
    constructor_args: List[Any] = field(default_factory=list)
    implementation_note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "address": self.address,
            "admin": self.admin,
            "networkName": self.network_name,
            "chainId": int(self.chain_id),
            "deployTx": self.deploy_tx,
            "blockNumber": self.block_number,
            "deployedAt": self.deployed_at,
            "explorer": self.explorer,
            "constructorArgs": list(self.constructor_args),
        }
        if self.implementation_note is not None:
            out["implementationNote"] = self.implementation_note
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentRecord":
        block = data.get("blockNumber")
        return cls(
            address=str(data.get("address") or ""),
            admin=str(data.get("admin") or ""),
            network_name=str(data.get("networkName") or ""),
            chain_id=int(data.get("chainId") or 0),
            deploy_tx=str(data.get("deployTx") or ""),
            deployed_at=str(data.get("deployedAt") or ""),
            block_number=int(block) if block is not None else None,
            explorer=data.get("explorer"),
            constructor_args=list(data.get("constructorArgs") or []),
            implementation_note=data.get("implementationNote"),
        )


class DeploymentRecorder:
    """Deployment document: {chainId: {contractName: record}, "_latest": {...}}."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.lock = DocumentLock(self.path.with_name(self.path.name + ".lock"))

    def load(self) -> Dict[str, Any]:
        """Current document. Missing, unreadable or non-object -> {}."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("ignoring unreadable deployment document %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("ignoring deployment document %s: not a JSON object", self.path)
            return {}
        return data

    def save(self, document: Dict[str, Any]) -> None:
        text = json.dumps(document, indent=2) + "\n"
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise PersistenceError(f"cannot write {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    def get(self, chain_id: int, contract_name: str) -> Optional[DeploymentRecord]:
        entry = self.load().get(str(int(chain_id)))
        if not isinstance(entry, dict):
            return None
        raw = entry.get(contract_name)
        return DeploymentRecord.from_dict(raw) if isinstance(raw, dict) else None

    def upsert(self, chain_id: int, contract_name: str, record: DeploymentRecord) -> Dict[str, Any]:
        with self.lock:
            if self.lock.recovered:
                logger.warning("took over stale lock %s", self.lock.path)
            document = self.load()
            key = str(int(chain_id))
            per_chain = document.get(key)
            if not isinstance(per_chain, dict):
                per_chain = {}
            per_chain[contract_name] = record.to_dict()
            document[key] = per_chain

            latest = document.get(LATEST_KEY)
            if not isinstance(latest, dict):
                latest = {}
            latest[record.network_name] = {
                "address": record.address,
                "chainId": int(chain_id),
                "contract": contract_name,
                "updatedAt": record.deployed_at,
            }
            document[LATEST_KEY] = latest

            self.save(document)
            return document
