"""Deploy X402Splitter and record it in the deployment document.

    python -m deploy.deploy --network polygonAmoyTestnet

Env: ADMIN_WALLET / X402_ADMIN_WALLET, PRIVATE_KEY, CONFIRMATIONS, GAS_LIMIT,
MAX_FEE_GWEI, MAX_PRIORITY_FEE_GWEI, AUTO_VERIFY, POLYGONSCAN_API_KEY.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from deployer.artifacts import load_artifact  # noqa: E402
from deployer.cli import base_parser, bootstrap, emit, run_tool, select_network  # noqa: E402
from deployer.config import CONTRACT_NAME  # noqa: E402
from deployer.deployment import deploy_contract  # noqa: E402
from deployer.recorder import DeploymentRecorder  # noqa: E402
from deployer.report import deployment_lines  # noqa: E402
from infra.rpc import AsyncRPC  # noqa: E402

logger = logging.getLogger("deployer.deploy")


def main(argv: Optional[List[str]] = None) -> int:
    parser = base_parser(f"Deploy {CONTRACT_NAME}")
    parser.add_argument("--artifact", default=None, help="compiled artifact JSON (default: hardhat/foundry output)")
    parser.add_argument("--out", default=None, help="deployment document (default: DEPLOYMENTS_FILE or deployed.json)")
    parser.add_argument("--json", action="store_true", help="print the record as JSON")
    args = parser.parse_args(argv)

    async def _run() -> None:
        cfg = bootstrap(args)
        cfg.require_admin()
        cfg.require_private_key()
        network = select_network(args, cfg)
        artifact = load_artifact(CONTRACT_NAME, Path(args.artifact) if args.artifact else None)
        recorder = DeploymentRecorder(Path(args.out) if args.out else cfg.deployments_file)

        logger.info("deploying %s to %s (chainId %s)", CONTRACT_NAME, network.name, network.chain_id)
        logger.info("admin %s, artifact %s", cfg.admin, artifact.path)
        if cfg.has_fee_overrides() or cfg.gas_limit is not None:
            logger.info(
                "overrides gasLimit=%s maxFeePerGas=%s maxPriorityFeePerGas=%s",
                cfg.gas_limit,
                cfg.max_fee_per_gas,
                cfg.max_priority_fee_per_gas,
            )

        async with AsyncRPC(network.rpc_url, default_timeout_s=cfg.rpc_timeout_s) as rpc:
            result = await deploy_contract(rpc, cfg, network, artifact, recorder)

        if args.json:
            print(json.dumps(result.record.to_dict(), indent=2))
        else:
            emit(deployment_lines(result))
            print(f"Written to: {recorder.path}")

    return run_tool(_run, label="deployment")


if __name__ == "__main__":
    sys.exit(main())
