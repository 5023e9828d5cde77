from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional


def configure_logging(name: str = "deployer", *, level: Optional[str] = None, log_file: Optional[Path] = None) -> logging.Logger:
    """Root handler setup for a CLI run. Reports go to stdout via print;
    the log stream (stderr) carries progress and warnings."""
    lvl_name = str(level or os.getenv("LOG_LEVEL") or "INFO").upper()
    lvl = getattr(logging, lvl_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(lvl)
    root.handlers.clear()

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(message)s")

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(fmt)
    root.addHandler(stream_handler)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    return logging.getLogger(name)
