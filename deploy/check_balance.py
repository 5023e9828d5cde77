"""Print the deployer wallet balance before deploying.

    python -m deploy.check_balance --network polygonAmoyTestnet
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from web3 import Web3  # noqa: E402

from deployer.cli import base_parser, bootstrap, emit, run_tool, select_network  # noqa: E402
from deployer.deployment import deployer_address, resolve_chain_id  # noqa: E402
from deployer.errors import ConfigurationError  # noqa: E402
from deployer.report import balance_lines  # noqa: E402
from infra.rpc import AsyncRPC  # noqa: E402


def main(argv: Optional[List[str]] = None) -> int:
    parser = base_parser("Check the deployer wallet balance")
    parser.add_argument("--address", default=None, help="address to check (default: PRIVATE_KEY signer, else admin)")
    args = parser.parse_args(argv)

    async def _run() -> None:
        cfg = bootstrap(args)
        network = select_network(args, cfg)
        if args.address:
            if not Web3.is_address(args.address):
                raise ConfigurationError(f"not a valid address: {args.address}")
            address = Web3.to_checksum_address(args.address)
        else:
            address = deployer_address(cfg)

        async with AsyncRPC(network.rpc_url, default_timeout_s=cfg.rpc_timeout_s) as rpc:
            chain_id = await resolve_chain_id(rpc, network)
            balance = await rpc.get_balance(address)

        emit(balance_lines(network, chain_id, address, balance))

    return run_tool(_run, label="check balance")


if __name__ == "__main__":
    sys.exit(main())
