from __future__ import annotations

from typing import Dict, List, Optional

from deployer.config import CONTRACT_NAME, DeployConfig
from deployer.deployment import DeploymentResult, EstimateReport
from deployer.networks import DEFAULT_NETWORK, NetworkConfig, native_profile
from deployer.units import format_ether, format_gwei, format_idr, format_usd

RULE = "=" * 53
THIN = "-" * 53


def _fee_line(label: str, wei: int) -> str:
    return f"{label:<26}: {wei} ({format_gwei(wei)} gwei)"


def estimate_lines(report: EstimateReport, cfg: DeployConfig, *, contract_name: str = CONTRACT_NAME) -> List[str]:
    est = report.estimate
    quote = report.quote
    symbol = est.native.symbol
    lines = [
        RULE,
        f"Estimating deploy cost for {contract_name}",
        THIN,
        f"Network        : {report.network.name}",
        f"Chain ID       : {report.chain_id}",
        f"Admin (ctor)   : {report.admin}",
        f"Sender         : {report.sender}",
        RULE,
        f"{'Estimated gas units':<26}: {est.gas_units}",
    ]
    if quote.base_fee_per_gas is not None:
        lines.append(_fee_line("baseFeePerGas (wei)", quote.base_fee_per_gas))
    if quote.max_priority_fee_per_gas is not None:
        lines.append(_fee_line("suggested priority (wei)", quote.max_priority_fee_per_gas))
    if quote.max_fee_per_gas is not None:
        lines.append(_fee_line("suggested maxFee (wei)", quote.max_fee_per_gas))
    if quote.gas_price is not None:
        lines.append(_fee_line("legacy gasPrice (wei)", quote.gas_price))
    if cfg.has_fee_overrides():
        max_fee = format_gwei(cfg.max_fee_per_gas) if cfg.max_fee_per_gas is not None else "-"
        prio = format_gwei(cfg.max_priority_fee_per_gas) if cfg.max_priority_fee_per_gas is not None else "-"
        lines.append(f"{'OVERRIDE maxFee/priority':<26}: {max_fee} / {prio} gwei")

    lines.append(THIN)
    if est.is_exact:
        lines.append(f"{'Cost':<26}: {est.upper_wei} wei (~{format_ether(est.upper_wei)} {symbol})")
    else:
        lines.append(f"{'Upper bound cost':<26}: {est.upper_wei} wei (~{format_ether(est.upper_wei)} {symbol})")
        lines.append(f"{'Lower bound cost':<26}: {est.lower_wei} wei (~{format_ether(est.lower_wei)} {symbol})")

    if est.fiat_upper is not None:
        lines.append(THIN)
        if est.is_exact:
            lines.append(f"~ Cost :  {format_usd(est.fiat_upper.usd)}  | {format_idr(est.fiat_upper.idr)}")
        else:
            if est.fiat_lower is not None:
                lines.append(f"~ Lower:  {format_usd(est.fiat_lower.usd)}  | {format_idr(est.fiat_lower.idr)}")
            lines.append(f"~ Upper:  {format_usd(est.fiat_upper.usd)}  | {format_idr(est.fiat_upper.idr)}")
    else:
        key = est.native.price_env_key
        lines.append(f"(Tip) Set ENV {key} for USD/IDR conversion, e.g. {key}=0.62")
    lines.append(RULE)
    return lines


def deployment_lines(result: DeploymentResult) -> List[str]:
    rec = result.record
    lines = [
        RULE,
        f"Deployed {result.contract_name}",
        f"Network   : {rec.network_name} (chainId: {rec.chain_id})",
        f"Address   : {rec.address}",
        f"Admin     : {rec.admin}",
        f"Deployer  : {result.deployer}",
        f"Tx        : {rec.deploy_tx}",
        f"Block     : {rec.block_number if rec.block_number is not None else '-'}",
    ]
    if result.gas_used is not None:
        lines.append(f"Gas used  : {result.gas_used}")
    if result.address_url:
        lines.append(f"Explorer  : {result.address_url}")
    if result.tx_url:
        lines.append(f"Tx link   : {result.tx_url}")
    if result.verification_guid:
        lines.append(f"Verify    : submitted (guid {result.verification_guid})")
    lines.append(RULE)
    return lines


def balance_lines(network: NetworkConfig, chain_id: int, address: str, balance_wei: int) -> List[str]:
    symbol = native_profile(chain_id).symbol
    return [
        "=" * 42,
        f"Network : {network.name} (chainId: {chain_id})",
        f"Address : {address}",
        f"Balance : {format_ether(balance_wei)} {symbol}",
        "=" * 42,
    ]


def network_lines(networks: Dict[str, NetworkConfig], default: Optional[str] = None) -> List[str]:
    lines = [
        f"networks: {', '.join(sorted(networks))}",
        f"defaultNetwork: {default or DEFAULT_NETWORK}",
    ]
    for name in sorted(networks):
        net = networks[name]
        lines.append(f"{name}:")
        lines.append(f"  chainId  : {net.chain_id}")
        lines.append(f"  rpc      : {net.rpc_url or '-'}")
        lines.append(f"  symbol   : {net.native.symbol}")
        lines.append(f"  explorer : {net.explorer_url or '-'}")
        if net.aliases:
            lines.append(f"  aliases  : {', '.join(net.aliases)}")
    return lines
