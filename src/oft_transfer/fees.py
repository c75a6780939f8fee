"""Fee quoting for prospective transfers."""

from __future__ import annotations

import logging

from web3 import Web3

from .adapter_config import AdapterConfigValidator
from .errors import InvalidAmount, InvalidRecipient, QuoteFailed, UnsupportedChainFamily
from .events import Emitter, EventSink, null_sink
from .models import (
    AdapterConfig,
    FeeQuote,
    PreparedTransfer,
    SendParam,
    TokenInfo,
    TransferRequest,
)
from .networks import ChainFamily, chain_family
from .options import ExecutorOptionsBuilder
from .units import address_to_bytes32, to_base_units

logger = logging.getLogger(__name__)


def ensure_evm_source(src_eid: int) -> None:
    family = chain_family(src_eid)
    if family is not ChainFamily.EVM:
        raise UnsupportedChainFamily(src_eid, family.value)


def _compose_bytes(compose_msg: str | None) -> bytes:
    if not compose_msg or compose_msg == "0x":
        return b""
    return Web3.to_bytes(hexstr=compose_msg)


class FeeQuoter:
    """Computes the messaging fee for a transfer request.

    Quotes are never cached: fees can move between display and execution.
    """

    def __init__(
        self,
        configs: AdapterConfigValidator,
        options_builder: ExecutorOptionsBuilder | None = None,
        events: EventSink = null_sink,
    ):
        self.configs = configs
        self.chain = configs.chain
        self.options_builder = options_builder or ExecutorOptionsBuilder()
        self._emit = Emitter(events, "quote")

    def prepare(self, request: TransferRequest, config: AdapterConfig) -> PreparedTransfer:
        """Convert amounts, encode the recipient and build the options blob.

        Raises:
            InvalidAmount: If an amount cannot be converted or breaks
                ``0 < amount`` and ``min_amount <= amount``.
            InvalidRecipient: If the recipient is not an EVM address.
            InvalidOptionsFormat: If the raw executor options are malformed.
        """
        amount_units = to_base_units(request.amount, config.decimals)
        min_amount_units = (
            to_base_units(request.min_amount, config.decimals)
            if request.min_amount
            else amount_units
        )
        if amount_units <= 0:
            raise InvalidAmount(f"Amount must be greater than zero: {request.amount}")
        if min_amount_units > amount_units:
            raise InvalidAmount(
                f"Minimum amount {request.min_amount} exceeds amount {request.amount}"
            )
        if not Web3.is_address(request.to):
            raise InvalidRecipient(request.to)
        to_bytes32 = address_to_bytes32(request.to)
        extra_options = self.options_builder.build(
            request.lz_receive_options,
            request.compose_options,
            request.native_drop_options,
        )

        send_param = SendParam(
            dst_eid=request.dst_eid,
            to=to_bytes32,
            amount_ld=amount_units,
            min_amount_ld=min_amount_units,
            extra_options=extra_options,
            compose_msg=_compose_bytes(request.compose_msg),
        )
        return PreparedTransfer(
            amount_units=amount_units,
            min_amount_units=min_amount_units,
            to_bytes32=to_bytes32,
            extra_options=extra_options,
            send_param=send_param,
        )

    async def quote_send_param(self, adapter: str, send_param: SendParam) -> tuple[int, int]:
        """Call ``quoteSend`` (paying in native currency).

        Raises:
            QuoteFailed: Wrapping any failure of the call.
        """
        try:
            return await self.chain.quote_send(adapter, send_param, pay_in_lz_token=False)
        except Exception as e:
            raise QuoteFailed(str(e) or e.__class__.__name__) from e

    async def fetch_token_info(self, token: str) -> TokenInfo | None:
        """Display-only metadata; never fails the caller."""
        try:
            return await self.chain.read_token_info(token)
        except Exception as e:
            logger.debug("Token metadata lookup for %s failed: %s", token, e)
            return None

    async def quote(self, request: TransferRequest) -> FeeQuote:
        """Quote the native and protocol-token fee for ``request``."""
        ensure_evm_source(request.src_eid)
        self._emit(
            f"Quoting {request.amount} via {request.adapter_address} "
            f"(eid {request.src_eid} -> {request.dst_eid})"
        )

        config = await self.configs.get_config(request.adapter_address)
        prepared = self.prepare(request, config)
        self._emit.debug(
            f"Amount units: {prepared.amount_units}, min amount units: {prepared.min_amount_units}",
            extra_options=Web3.to_hex(prepared.extra_options),
        )

        token_info = await self.fetch_token_info(config.underlying_token)
        if token_info is None:
            self._emit.debug("Could not get token details")
        else:
            self._emit(
                f"Token: {token_info.name} ({token_info.symbol}), {token_info.decimals} decimals"
            )

        native_fee, lz_token_fee = await self.quote_send_param(
            config.address, prepared.send_param
        )
        self._emit(f"Quote successful - native fee: {native_fee}, LZ token fee: {lz_token_fee}")
        return FeeQuote(native_fee=native_fee, lz_token_fee=lz_token_fee, token_info=token_info)
