from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Optional

from deployer.errors import PersistenceError


def _process_exists(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except PermissionError:
        # exists, owned by another user
        return True
    except OSError:
        return False
    return True


class DocumentLock:
    """Exclusive lock file held for one read-merge-write of a document.

        with DocumentLock(path):
            ...

    The file carries the holder's pid. A file whose pid is gone is taken
    over; a live holder makes entry raise PersistenceError.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.held = False
        self.recovered = False

    def holder_pid(self) -> Optional[int]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return int(data.get("pid") or 0) or None
        except (OSError, ValueError, AttributeError, TypeError):
            return None

    def _claim(self) -> None:
        fd = os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump({"pid": os.getpid(), "locked_at_ms": int(time.time() * 1000)}, fh)
        self.held = True

    def __enter__(self) -> "DocumentLock":
        self.recovered = False
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            try:
                self._claim()
                return self
            except FileExistsError:
                pid = self.holder_pid()
                if pid is not None and _process_exists(pid):
                    raise PersistenceError(f"{self.path} is locked by pid {pid}") from None
            self.path.unlink(missing_ok=True)
            self.recovered = True
            self._claim()
        except FileExistsError:
            raise PersistenceError(f"{self.path} was locked by another writer while recovering it") from None
        except OSError as exc:
            raise PersistenceError(f"cannot lock {self.path}: {exc}") from exc
        return self

    def __exit__(self, *exc: Any) -> None:
        if self.held:
            self.held = False
            self.path.unlink(missing_ok=True)
