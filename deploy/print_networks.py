"""List the configured networks.

    python -m deploy.print_networks
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from deployer.cli import base_parser, bootstrap, emit, run_tool  # noqa: E402
from deployer.networks import load_networks  # noqa: E402
from deployer.report import network_lines  # noqa: E402


def main(argv: Optional[List[str]] = None) -> int:
    args = base_parser("List configured networks").parse_args(argv)

    async def _run() -> None:
        cfg = bootstrap(args)
        emit(network_lines(load_networks(), default=args.network or cfg.network))

    return run_tool(_run, label="print networks")


if __name__ == "__main__":
    sys.exit(main())
