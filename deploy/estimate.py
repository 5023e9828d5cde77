"""Estimate the cost of deploying X402Splitter without broadcasting.

    python -m deploy.estimate --network polygonMainnet

Env: ADMIN_WALLET / X402_ADMIN_WALLET, GAS_LIMIT, MAX_FEE_GWEI,
MAX_PRIORITY_FEE_GWEI, ETH_USD_PRICE / MATIC_USD_PRICE / MEGA_USD_PRICE,
DOLLAR_USD_TO_RUPIAH.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from deployer.artifacts import load_artifact  # noqa: E402
from deployer.cli import base_parser, bootstrap, emit, run_tool, select_network  # noqa: E402
from deployer.config import CONTRACT_NAME  # noqa: E402
from deployer.deployment import estimate_deployment  # noqa: E402
from deployer.report import estimate_lines  # noqa: E402
from infra.rpc import AsyncRPC  # noqa: E402


def main(argv: Optional[List[str]] = None) -> int:
    parser = base_parser(f"Estimate deploy cost for {CONTRACT_NAME}")
    parser.add_argument("--artifact", default=None, help="compiled artifact JSON (default: hardhat/foundry output)")
    parser.add_argument("--json", action="store_true", help="print the estimate as JSON")
    args = parser.parse_args(argv)

    async def _run() -> None:
        cfg = bootstrap(args)
        cfg.require_admin()
        network = select_network(args, cfg)
        artifact = load_artifact(CONTRACT_NAME, Path(args.artifact) if args.artifact else None)

        async with AsyncRPC(network.rpc_url, default_timeout_s=cfg.rpc_timeout_s) as rpc:
            report = await estimate_deployment(rpc, cfg, network, artifact)

        if args.json:
            out = {"network": network.name, "chain_id": report.chain_id, **report.estimate.to_dict()}
            print(json.dumps(out, indent=2))
        else:
            emit(estimate_lines(report, cfg))

    return run_tool(_run, label="estimate")


if __name__ == "__main__":
    sys.exit(main())
