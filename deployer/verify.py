"""Best-effort source verification on an Etherscan-compatible explorer.

Submits the Hardhat build-info standard-JSON input and returns the GUID the
explorer hands back. Status polling is left to the explorer UI.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Sequence

import aiohttp

from deployer.artifacts import ContractArtifact
from deployer.errors import VerificationError
from deployer.networks import NetworkConfig

logger = logging.getLogger(__name__)

VERIFY_TIMEOUT_S = 30.0


def build_verify_form(
    artifact: ContractArtifact,
    *,
    address: str,
    constructor_args: Sequence[Any],
    api_key: str,
) -> Dict[str, str]:
    info = artifact.build_info()
    if not info or not isinstance(info.get("input"), dict):
        raise VerificationError(f"no build-info next to {artifact.path}; recompile with hardhat")
    version = str(info.get("solcLongVersion") or info.get("solcVersion") or "").strip()
    if not version:
        raise VerificationError("build-info has no compiler version")
    return {
        "apikey": api_key,
        "module": "contract",
        "action": "verifysourcecode",
        "contractaddress": address,
        "sourceCode": json.dumps(info["input"]),
        "codeformat": "solidity-standard-json-input",
        "contractname": artifact.fully_qualified_name,
        "compilerversion": version if version.startswith("v") else f"v{version}",
        # sic: the explorer API spells it this way
        "constructorArguements": artifact.encode_constructor_args(constructor_args),
    }


async def submit_verification(
    network: NetworkConfig,
    artifact: ContractArtifact,
    *,
    address: str,
    constructor_args: Sequence[Any],
    api_key: Optional[str],
    timeout_s: float = VERIFY_TIMEOUT_S,
) -> str:
    if not network.explorer_api_url:
        raise VerificationError(f"no explorer API configured for {network.name}")
    if not api_key:
        raise VerificationError("POLYGONSCAN_API_KEY not set")
    form = build_verify_form(artifact, address=address, constructor_args=constructor_args, api_key=api_key)

    try:
        timeout = aiohttp.ClientTimeout(total=float(timeout_s))
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(network.explorer_api_url, data=form) as resp:
                if resp.status >= 400:
                    raise VerificationError(f"explorer http_{resp.status}")
                body = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        raise VerificationError(f"explorer request failed: {type(exc).__name__}: {exc}") from exc

    if not isinstance(body, dict) or str(body.get("status")) != "1":
        result = body.get("result") if isinstance(body, dict) else body
        raise VerificationError(f"explorer rejected verification: {result}")
    guid = str(body.get("result") or "")
    logger.info("verification submitted to %s guid=%s", network.explorer_api_url, guid)
    return guid
