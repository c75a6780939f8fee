"""Aggregated pre-flight checks run right before a transfer is submitted."""

from __future__ import annotations

import asyncio
import logging

from web3 import Web3

from .adapter_config import probe_send_param
from .chain import ChainClient
from .events import Emitter, EventSink, null_sink
from .fees import FeeQuoter
from .models import AdapterConfig, FeeQuote, TransferRequest, ValidationReport
from .units import format_units

logger = logging.getLogger(__name__)


class ParameterValidator:
    """Collects every problem with a transfer instead of stopping at the first.

    Each check is independent. A read that fails is reported as its own entry
    rather than being treated as a zero balance.
    """

    def __init__(
        self,
        chain: ChainClient,
        quoter: FeeQuoter,
        owner: str,
        events: EventSink = null_sink,
    ):
        self.chain = chain
        self.quoter = quoter
        self.owner = owner
        self._emit = Emitter(events, "validation")

    async def _destination_supported(self, adapter: str, dst_eid: int, amount_units: int) -> bool:
        try:
            await self.quoter.quote_send_param(adapter, probe_send_param(dst_eid, amount_units))
        except Exception as e:
            logger.debug("Destination probe for eid %s failed: %s", dst_eid, e)
            return False
        return True

    async def validate(
        self,
        request: TransferRequest,
        amount_units: int,
        min_amount_units: int,
        quote: FeeQuote,
        config: AdapterConfig,
    ) -> ValidationReport:
        report = ValidationReport()

        if request.dst_eid <= 0:
            report.add(f"Invalid destination endpoint id: {request.dst_eid}")
        if not Web3.is_address(request.to):
            report.add(f"Invalid recipient address: {request.to}")
        if amount_units <= 0:
            report.add("Amount must be greater than zero")
        if min_amount_units > amount_units:
            report.add(
                f"Minimum amount {format_units(min_amount_units, config.decimals)} exceeds "
                f"amount {format_units(amount_units, config.decimals)}"
            )
        if quote.native_fee <= 0:
            report.add("Quoted native fee must be greater than zero")

        if request.dst_eid > 0 and amount_units > 0:
            if not await self._destination_supported(
                config.address, request.dst_eid, amount_units
            ):
                report.add(f"adapter does not support destination {request.dst_eid}")

        allowance_read = (
            self.chain.allowance(config.underlying_token, self.owner, config.address)
            if config.approval_required
            else _skipped()
        )
        balance, allowance, native_balance = await asyncio.gather(
            self.chain.balance_of(config.underlying_token, self.owner),
            allowance_read,
            self.chain.native_balance(self.owner),
            return_exceptions=True,
        )

        if isinstance(balance, Exception):
            report.add(f"Could not read token balance: {balance}")
        elif balance < amount_units:
            report.add(
                f"Insufficient token balance: have {format_units(balance, config.decimals)}, "
                f"need {format_units(amount_units, config.decimals)}"
            )

        if isinstance(allowance, Exception):
            report.add(f"Could not read allowance: {allowance}")
        elif allowance is not None and allowance < amount_units:
            report.add(
                f"Insufficient allowance: have {format_units(allowance, config.decimals)}, "
                f"need {format_units(amount_units, config.decimals)}"
            )

        if isinstance(native_balance, Exception):
            report.add(f"Could not read native balance: {native_balance}")
        elif native_balance < quote.native_fee:
            report.add(
                f"Insufficient native balance for fee: have {native_balance} wei, "
                f"need {quote.native_fee} wei"
            )

        if report.is_valid:
            self._emit("Pre-flight validation passed")
        else:
            for error in report.errors:
                self._emit.error(error)
        return report


async def _skipped() -> None:
    return None
