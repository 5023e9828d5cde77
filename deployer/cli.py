from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Awaitable, Callable, List

from dotenv import find_dotenv, load_dotenv

from deployer.config import DeployConfig, load_deploy_config
from deployer.errors import ConfigurationError, DeployToolError
from deployer.logs import configure_logging
from deployer.networks import NetworkConfig, resolve_network

logger = logging.getLogger(__name__)


def base_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--network", default=None, help="network name or alias (default: NETWORK env or polygonAmoyTestnet)")
    parser.add_argument("--env-file", default=None, help=".env file to load (default: ./.env if present)")
    parser.add_argument("--log-level", default=None, help="log level (default: LOG_LEVEL env or INFO)")
    return parser


def bootstrap(args: argparse.Namespace) -> DeployConfig:
    """Load .env, configure logging, read the environment once."""
    if args.env_file:
        load_dotenv(args.env_file, override=False)
    else:
        load_dotenv(find_dotenv(usecwd=True), override=False)
    configure_logging(level=args.log_level)
    return load_deploy_config()


def select_network(args: argparse.Namespace, cfg: DeployConfig) -> NetworkConfig:
    network = resolve_network(args.network or cfg.network)
    if not network.rpc_url:
        raise ConfigurationError(f"no RPC url for {network.name}")
    return network


def emit(lines: List[str]) -> None:
    for line in lines:
        print(line)


def run_tool(main: Callable[[], Awaitable[Any]], *, label: str) -> int:
    try:
        asyncio.run(main())
    except DeployToolError as exc:
        print(f"error: {label} failed: {exc}", file=sys.stderr)
        logger.debug("%s failed", label, exc_info=True)
        return 1
    except KeyboardInterrupt:
        print(f"error: {label} interrupted", file=sys.stderr)
        return 1
    return 0
