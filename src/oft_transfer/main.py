"""CLI entrypoint for oft-transfer."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from web3.types import TxParams

from .adapter_config import AdapterConfigValidator
from .chain import ChainClient, Wallet
from .errors import ConfigurationError, OFTTransferError
from .events import LoggingEventSink
from .executor import TransferExecutor
from .fees import FeeQuoter
from .formatter import (
    print_adapter_report,
    print_destination_support,
    print_error,
    print_quote,
    print_result,
)
from .logger import setup_logging
from .models import TransferRequest
from .networks import NetworkResolver
from .options import ExecutorOptionsBuilder, describe_lz_receive_option
from .scan import fetch_block_explorer_link
from .settings import CONFIG_ENV_VAR, TransferSettings
from .state import AppState

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Send tokens across chains through a LayerZero OFT adapter.",
)

console = Console()

AdapterOpt = Annotated[
    str | None,
    typer.Option("--adapter", "-a", help="OFT adapter address (defaults to settings)."),
]
SrcEidOpt = Annotated[
    int | None,
    typer.Option("--src-eid", help="Source endpoint id; resolved from the RPC chain id if omitted."),
]
DstEidOpt = Annotated[int, typer.Option("--dst-eid", help="Destination endpoint id.")]
AmountOpt = Annotated[str, typer.Option("--amount", help="Amount in token units, e.g. 12.5.")]
ToOpt = Annotated[str, typer.Option("--to", help="Recipient address on the destination.")]
MinAmountOpt = Annotated[
    str | None,
    typer.Option("--min-amount", help="Minimum amount to receive; defaults to --amount."),
]
ComposeMsgOpt = Annotated[
    str | None, typer.Option("--compose-msg", help="Hex compose message.")
]
LzReceiveOpt = Annotated[
    list[str] | None,
    typer.Option("--lz-receive", help="Executor lzReceive option as GAS,VALUE. Repeatable."),
]
ComposeOpt = Annotated[
    list[str] | None,
    typer.Option("--compose", help="Executor compose option as INDEX,GAS,VALUE. Repeatable."),
]
NativeDropOpt = Annotated[
    list[str] | None,
    typer.Option("--native-drop", help="Native drop as AMOUNT_WEI,RECIPIENT. Repeatable."),
]


def _build_logger() -> logging.Logger:
    return logging.getLogger("oft_transfer")


def _flatten(values: list[str] | None) -> list[str]:
    """``["200000,0", "1,50000,0"]`` -> ``["200000", "0", "1", "50000", "0"]``."""
    flat: list[str] = []
    for value in values or []:
        flat.extend(part.strip() for part in value.split(","))
    return flat


def _state(ctx: typer.Context) -> AppState:
    return ctx.obj


def _adapter_or_fail(state: AppState, adapter: str | None) -> str:
    address = adapter or state.settings.adapter_address
    if not address:
        raise typer.BadParameter(
            "adapter address must be configured",
            param_hint=["--adapter", "OFT_TRANSFER_ADAPTER_ADDRESS"],
        )
    return address


def _chain(state: AppState) -> ChainClient:
    if not state.settings.rpc_url:
        raise typer.BadParameter(
            "rpc_url must be configured", param_hint=["--rpc-url", "OFT_TRANSFER_RPC_URL"]
        )
    return ChainClient.from_rpc(state.settings.rpc_url_required, state.settings.rpc_timeout)


def _configs(state: AppState, chain: ChainClient) -> AdapterConfigValidator:
    return AdapterConfigValidator(
        chain,
        NetworkResolver(),
        events=LoggingEventSink(state.logger),
        default_decimals=state.settings.default_decimals,
        probe_dst_eid=state.settings.probe_dst_eid,
    )


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except OFTTransferError as e:
        print_error(e, Console(stderr=True))
        raise typer.Exit(code=1) from e


async def _build_request(
    chain: ChainClient,
    *,
    src_eid: int | None,
    dst_eid: int,
    amount: str,
    to: str,
    adapter: str,
    min_amount: str | None,
    compose_msg: str | None,
    lz_receive: list[str] | None,
    compose: list[str] | None,
    native_drop: list[str] | None,
) -> TransferRequest:
    current_eid = await NetworkResolver().resolve_current_endpoint_from_chain(chain)
    if src_eid is None:
        src_eid = current_eid
    elif src_eid != current_eid:
        raise ConfigurationError(
            f"--src-eid {src_eid} does not match the connected network (eid {current_eid})",
            ["Omit --src-eid or point --rpc-url at the source network"],
        )
    return TransferRequest(
        src_eid=src_eid,
        dst_eid=dst_eid,
        amount=amount,
        to=to,
        adapter_address=adapter,
        min_amount=min_amount,
        compose_msg=compose_msg,
        lz_receive_options=_flatten(lz_receive),
        compose_options=_flatten(compose),
        native_drop_options=_flatten(native_drop),
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to a TOML config file (can include an [oft_transfer] table).",
        ),
    ] = None,
    rpc_url: Annotated[
        str | None, typer.Option("--rpc-url", help="RPC endpoint of the source network.")
    ] = None,
    confirmation_timeout: Annotated[
        float | None,
        typer.Option("--confirmation-timeout", help="Seconds to wait for each receipt."),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
        ),
    ] = None,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config (with secrets redacted) and exit.",
        ),
    ] = False,
):
    """Load settings and logging shared by every command."""
    if config_path:
        os.environ[CONFIG_ENV_VAR] = str(config_path)

    init_kwargs: dict[str, str | float] = {}
    if rpc_url is not None:
        init_kwargs["rpc_url"] = rpc_url
    if confirmation_timeout is not None:
        init_kwargs["confirmation_timeout"] = confirmation_timeout
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()

    settings = TransferSettings(**init_kwargs)  # type: ignore[arg-type]
    setup_logging(settings.log_level)
    ctx.obj = AppState(settings=settings, logger=_build_logger())

    if show_config:
        typer.echo(json.dumps(settings.as_safe_dict(), indent=2))
        raise typer.Exit(code=0)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)


@app.command()
def quote(
    ctx: typer.Context,
    dst_eid: DstEidOpt,
    amount: AmountOpt,
    to: ToOpt,
    adapter: AdapterOpt = None,
    src_eid: SrcEidOpt = None,
    min_amount: MinAmountOpt = None,
    compose_msg: ComposeMsgOpt = None,
    lz_receive: LzReceiveOpt = None,
    compose: ComposeOpt = None,
    native_drop: NativeDropOpt = None,
):
    """Quote the messaging fee for a transfer without sending it."""
    state = _state(ctx)
    adapter_address = _adapter_or_fail(state, adapter)

    async def _quote() -> None:
        chain = _chain(state)
        try:
            request = await _build_request(
                chain,
                src_eid=src_eid,
                dst_eid=dst_eid,
                amount=amount,
                to=to,
                adapter=adapter_address,
                min_amount=min_amount,
                compose_msg=compose_msg,
                lz_receive=lz_receive,
                compose=compose,
                native_drop=native_drop,
            )
            quoter = FeeQuoter(_configs(state, chain), events=LoggingEventSink(state.logger))
            fee = await quoter.quote(request)
            print_quote(request, fee, console)
        finally:
            await chain.disconnect()

    _run(_quote())


@app.command()
def send(
    ctx: typer.Context,
    dst_eid: DstEidOpt,
    amount: AmountOpt,
    to: ToOpt,
    adapter: AdapterOpt = None,
    src_eid: SrcEidOpt = None,
    min_amount: MinAmountOpt = None,
    compose_msg: ComposeMsgOpt = None,
    lz_receive: LzReceiveOpt = None,
    compose: ComposeOpt = None,
    native_drop: NativeDropOpt = None,
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Sign without prompting for each transaction.")
    ] = False,
):
    """Approve (if needed) and send tokens to the destination network."""
    state = _state(ctx)
    adapter_address = _adapter_or_fail(state, adapter)
    if state.settings.private_key is None:
        raise typer.BadParameter(
            "private_key is required to send.",
            param_hint=["OFT_TRANSFER_PRIVATE_KEY"],
        )

    def _prompt(label: str, tx: TxParams) -> bool:
        return typer.confirm(
            f"Sign {label} transaction to {tx.get('to')} (value {tx.get('value', 0)} wei)?"
        )

    async def _send() -> None:
        chain = _chain(state)
        try:
            wallet = Wallet.from_private_key(
                chain.w3,
                state.settings.private_key_required,
                confirmation_timeout=state.settings.confirmation_timeout,
                prompt=None if yes else _prompt,
            )
            request = await _build_request(
                chain,
                src_eid=src_eid,
                dst_eid=dst_eid,
                amount=amount,
                to=to,
                adapter=adapter_address,
                min_amount=min_amount,
                compose_msg=compose_msg,
                lz_receive=lz_receive,
                compose=compose,
                native_drop=native_drop,
            )
            events = LoggingEventSink(state.logger)
            configs = _configs(state, chain)
            compatibility = await configs.check_network_compatibility(request.adapter_address)
            if not compatibility.is_compatible:
                raise ConfigurationError(
                    compatibility.error or "Adapter is not usable on the connected network",
                    compatibility.recommendations,
                )
            quoter = FeeQuoter(configs, events=events)

            preview = await quoter.quote(request)
            print_quote(request, preview, console)

            executor = TransferExecutor(
                chain,
                wallet,
                configs=configs,
                quoter=quoter,
                events=events,
                scan_mainnet_url=state.settings.scan_url,
                scan_testnet_url=state.settings.scan_testnet_url,
            )
            result = await executor.execute(request)
            explorer = await fetch_block_explorer_link(
                request.src_eid, result.tx_hash, state.settings.metadata_url
            )
            print_result(result, explorer, console)
        finally:
            await chain.disconnect()

    _run(_send())


@app.command()
def inspect(
    ctx: typer.Context,
    adapter: Annotated[str | None, typer.Argument(help="OFT adapter address.")] = None,
):
    """Check an adapter's configuration against the connected network."""
    state = _state(ctx)
    adapter_address = _adapter_or_fail(state, adapter)

    async def _inspect() -> bool:
        chain = _chain(state)
        try:
            configs = _configs(state, chain)
            compatibility = await configs.check_network_compatibility(adapter_address)
            validation = await configs.validate(adapter_address)
            config = validation.config
            print_adapter_report(config, validation, compatibility, console)
            return compatibility.is_compatible and validation.is_valid
        finally:
            await chain.disconnect()

    try:
        ok = asyncio.run(_inspect())
    except OFTTransferError as e:
        print_error(e, Console(stderr=True))
        raise typer.Exit(code=1) from e
    if not ok:
        raise typer.Exit(code=1)


@app.command("check-destination")
def check_destination(
    ctx: typer.Context,
    dst_eid: DstEidOpt,
    amount: AmountOpt,
    adapter: AdapterOpt = None,
):
    """Tell an unsupported destination apart from an unsupported amount."""
    state = _state(ctx)
    adapter_address = _adapter_or_fail(state, adapter)

    async def _check() -> bool:
        chain = _chain(state)
        try:
            configs = _configs(state, chain)
            config = await configs.get_config(adapter_address)
            support = await configs.check_destination_support(
                config.address, dst_eid, amount, config.decimals
            )
            print_destination_support(dst_eid, support, console)
            return support.is_supported
        finally:
            await chain.disconnect()

    try:
        ok = asyncio.run(_check())
    except OFTTransferError as e:
        print_error(e, Console(stderr=True))
        raise typer.Exit(code=1) from e
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def options(
    lz_receive: LzReceiveOpt = None,
    compose: ComposeOpt = None,
    native_drop: NativeDropOpt = None,
    decode: Annotated[
        str | None, typer.Option("--decode", help="Describe an existing hex options blob.")
    ] = None,
):
    """Encode executor options offline, or describe an existing blob."""
    if decode is not None:
        typer.echo(describe_lz_receive_option(decode))
        return

    try:
        encoded = ExecutorOptionsBuilder().parse(
            _flatten(lz_receive), _flatten(compose), _flatten(native_drop)
        )
    except OFTTransferError as e:
        print_error(e, Console(stderr=True))
        raise typer.Exit(code=1) from e
    blob = encoded.to_hex()
    typer.echo(blob)
    typer.echo(describe_lz_receive_option(blob))


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
