"""Rich console output for quotes, adapter checks and transfer results."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .errors import OFTTransferError
from .models import (
    AdapterConfig,
    AdapterValidation,
    DestinationSupport,
    FeeQuote,
    NetworkCompatibility,
    TransferRequest,
    TransferResult,
)
from .units import format_units

NATIVE_DECIMALS = 18


def _format_wei(wei: int) -> str:
    return f"{format_units(wei, NATIVE_DECIMALS)} ({wei:,} wei)"


def _key_value_table(value_style: str) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="dim")
    table.add_column("Value", style=value_style)
    return table


def print_quote(
    request: TransferRequest, quote: FeeQuote, console: Console | None = None
) -> None:
    console = console or Console()
    table = _key_value_table("cyan")
    table.add_row("Route", f"eid {request.src_eid} -> eid {request.dst_eid}")
    table.add_row("Adapter", request.adapter_address)
    table.add_row("Recipient", request.to)
    if quote.token_info is not None:
        table.add_row("Amount", f"{request.amount} {quote.token_info.symbol}")
        table.add_row("Token", f"{quote.token_info.name} ({quote.token_info.address})")
    else:
        table.add_row("Amount", request.amount)
    table.add_row("Native fee", _format_wei(quote.native_fee))
    table.add_row("LZ token fee", f"{quote.lz_token_fee:,}")
    console.print(Panel(table, title="[bold]Quote[/]", border_style="blue"))


def print_result(
    result: TransferResult, explorer_link: str | None = None, console: Console | None = None
) -> None:
    console = console or Console()
    table = _key_value_table("green")
    if result.approval_tx_hash:
        table.add_row("Approval tx", result.approval_tx_hash)
    table.add_row("Transfer tx", result.tx_hash)
    table.add_row("Native fee paid", _format_wei(result.native_fee))
    table.add_row("LayerZero Scan", result.scan_link)
    if explorer_link:
        table.add_row("Block explorer", explorer_link)
    console.print(Panel(table, title="[bold]Transfer submitted[/]", border_style="green"))


def print_adapter_report(
    config: AdapterConfig | None,
    validation: AdapterValidation,
    compatibility: NetworkCompatibility,
    console: Console | None = None,
) -> None:
    console = console or Console()
    table = _key_value_table("cyan")
    if compatibility.chain_id is not None:
        table.add_row("Chain id", str(compatibility.chain_id))
    if compatibility.current_eid is not None:
        table.add_row("Endpoint id", str(compatibility.current_eid))
    if config is not None:
        table.add_row("Adapter", config.address)
        table.add_row("Underlying token", config.underlying_token)
        table.add_row("Decimals", str(config.decimals))
        table.add_row("Approval required", "yes" if config.approval_required else "no")
    if validation.quote_probe_ok is not None:
        table.add_row("quoteSend probe", "ok" if validation.quote_probe_ok else "failed")

    ok = validation.is_valid and compatibility.is_compatible
    table.add_row("Status", "[green]compatible[/]" if ok else "[red]incompatible[/]")
    console.print(
        Panel(table, title="[bold]Adapter[/]", border_style="green" if ok else "red")
    )
    error = compatibility.error or validation.error
    if error:
        print_problem(error, compatibility.recommendations, console)


def print_destination_support(
    dst_eid: int, support: DestinationSupport, console: Console | None = None
) -> None:
    console = console or Console()
    if support.is_supported:
        console.print(f"[green]Destination {dst_eid} is supported for this amount[/]")
        return
    print_problem(support.error or "Destination not supported", support.recommendations, console)


def print_problem(
    message: str, recommendations: list[str], console: Console | None = None
) -> None:
    console = console or Console(stderr=True)
    console.print(f"[bold red]Error:[/] {message}")
    for recommendation in recommendations:
        console.print(f"  [yellow]-[/] {recommendation}")


def print_error(error: OFTTransferError, console: Console | None = None) -> None:
    print_problem(error.message, error.recommendations, console)
