from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from oft_transfer.adapter_config import AdapterConfigValidator
from oft_transfer.errors import (
    InvalidAmount,
    InvalidOptionsFormat,
    InvalidRecipient,
    QuoteFailed,
    UnsupportedChainFamily,
)
from oft_transfer.fees import FeeQuoter
from oft_transfer.models import AdapterConfig, TokenInfo, TransferRequest

ADAPTER = "0x2222222222222222222222222222222222222222"
TOKEN = "0x3333333333333333333333333333333333333333"
RECIPIENT = "0x4444444444444444444444444444444444444444"


@pytest.fixture
def mock_chain():
    chain = MagicMock()
    chain.has_code = AsyncMock(return_value=True)
    chain.read_underlying_token = AsyncMock(return_value=TOKEN)
    chain.read_decimals = AsyncMock(return_value=6)
    chain.read_approval_required = AsyncMock(return_value=True)
    chain.read_token_info = AsyncMock(
        return_value=TokenInfo(name="USD Coin", symbol="USDC", decimals=6, address=TOKEN)
    )
    chain.quote_send = AsyncMock(return_value=(25 * 10**14, 0))
    return chain


@pytest.fixture
def quoter(mock_chain) -> FeeQuoter:
    return FeeQuoter(AdapterConfigValidator(mock_chain))


def _request(**overrides) -> TransferRequest:
    fields = dict(
        src_eid=30101,
        dst_eid=30110,
        amount="12.5",
        to=RECIPIENT,
        adapter_address=ADAPTER,
    )
    fields.update(overrides)
    return TransferRequest(**fields)


CONFIG = AdapterConfig(address=ADAPTER, underlying_token=TOKEN, decimals=6, approval_required=True)


def test_prepare_converts_amounts_and_recipient(quoter):
    prepared = quoter.prepare(_request(min_amount="12"), CONFIG)

    assert prepared.amount_units == 12_500_000
    assert prepared.min_amount_units == 12_000_000
    assert prepared.to_bytes32 == b"\x00" * 12 + bytes.fromhex("44" * 20)
    assert prepared.extra_options == b"\x00\x03"
    assert prepared.send_param.as_tuple() == (
        30110,
        prepared.to_bytes32,
        12_500_000,
        12_000_000,
        b"\x00\x03",
        b"",
        b"",
    )


def test_prepare_min_amount_defaults_to_amount(quoter):
    prepared = quoter.prepare(_request(), CONFIG)

    assert prepared.min_amount_units == prepared.amount_units


def test_prepare_encodes_options_and_compose_message(quoter):
    prepared = quoter.prepare(
        _request(lz_receive_options=["200000", "0"], compose_msg="0xdeadbeef"), CONFIG
    )

    assert prepared.extra_options.hex() == "00030100110100000000000000000000000000030d40"
    assert prepared.send_param.compose_msg == bytes.fromhex("deadbeef")


def test_prepare_rejects_bad_input(quoter):
    with pytest.raises(InvalidRecipient):
        quoter.prepare(_request(to="not-an-address"), CONFIG)
    with pytest.raises(InvalidAmount):
        quoter.prepare(_request(amount="1.0000001"), CONFIG)
    with pytest.raises(InvalidOptionsFormat):
        quoter.prepare(_request(lz_receive_options=["200000"]), CONFIG)


@pytest.mark.asyncio
async def test_quote_rejects_zero_amount_before_calling_adapter(quoter, mock_chain):
    with pytest.raises(InvalidAmount, match="greater than zero"):
        await quoter.quote(_request(amount="0"))

    mock_chain.quote_send.assert_not_awaited()


def test_prepare_rejects_min_amount_above_amount(quoter):
    with pytest.raises(InvalidAmount, match="exceeds amount"):
        quoter.prepare(_request(min_amount="13"), CONFIG)


@pytest.mark.asyncio
async def test_quote_returns_fee_and_token_info(quoter, mock_chain):
    quote = await quoter.quote(_request())

    assert quote.native_fee == 25 * 10**14
    assert quote.lz_token_fee == 0
    assert quote.token_info.symbol == "USDC"
    adapter, send_param = mock_chain.quote_send.await_args.args
    assert adapter == ADAPTER
    assert send_param.amount_ld == 12_500_000
    assert mock_chain.quote_send.await_args.kwargs == {"pay_in_lz_token": False}


@pytest.mark.asyncio
async def test_quote_is_not_cached(quoter, mock_chain):
    await quoter.quote(_request())
    await quoter.quote(_request())

    assert mock_chain.quote_send.await_count == 2
    assert mock_chain.read_underlying_token.await_count == 1


@pytest.mark.asyncio
async def test_quote_survives_missing_token_metadata(quoter, mock_chain):
    mock_chain.read_token_info = AsyncMock(side_effect=ConnectionError("rpc down"))

    quote = await quoter.quote(_request())

    assert quote.token_info is None
    assert quote.native_fee == 25 * 10**14


@pytest.mark.asyncio
async def test_quote_failure_wrapped(quoter, mock_chain):
    mock_chain.quote_send = AsyncMock(side_effect=RuntimeError("execution reverted"))

    with pytest.raises(QuoteFailed, match="Failed to get quote: execution reverted"):
        await quoter.quote(_request())


@pytest.mark.asyncio
async def test_non_evm_source_rejected(quoter, mock_chain):
    with pytest.raises(UnsupportedChainFamily, match="non-EVM srcEid"):
        await quoter.quote(_request(src_eid=30168))

    mock_chain.read_underlying_token.assert_not_awaited()
