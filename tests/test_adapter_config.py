from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from oft_transfer.adapter_config import AdapterConfigValidator
from oft_transfer.errors import ConfigurationError, ContractNotFound
from oft_transfer.events import CollectingEventSink

ADAPTER = "0x2222222222222222222222222222222222222222"
TOKEN = "0x3333333333333333333333333333333333333333"


@pytest.fixture
def mock_chain():
    chain = MagicMock()
    chain.has_code = AsyncMock(return_value=True)
    chain.read_underlying_token = AsyncMock(return_value=TOKEN)
    chain.read_decimals = AsyncMock(return_value=6)
    chain.read_approval_required = AsyncMock(return_value=True)
    chain.quote_send = AsyncMock(return_value=(10**15, 0))
    chain.chain_id = AsyncMock(return_value=1)
    return chain


@pytest.mark.asyncio
async def test_get_config_reads_adapter(mock_chain):
    config = await AdapterConfigValidator(mock_chain).get_config(ADAPTER)

    assert config.address == ADAPTER
    assert config.underlying_token == TOKEN
    assert config.decimals == 6
    assert config.approval_required is True
    mock_chain.read_decimals.assert_awaited_once_with(TOKEN)


@pytest.mark.asyncio
async def test_decimals_fall_back_to_adapter_then_default(mock_chain):
    mock_chain.read_decimals = AsyncMock(side_effect=[None, 18])
    config = await AdapterConfigValidator(mock_chain).get_config(ADAPTER)
    assert config.decimals == 18

    mock_chain.read_decimals = AsyncMock(return_value=None)
    events = CollectingEventSink()
    config = await AdapterConfigValidator(mock_chain, events=events, default_decimals=8).get_config(
        ADAPTER
    )
    assert config.decimals == 8
    assert any("assuming 8" in m for m in events.messages("adapter"))


@pytest.mark.asyncio
async def test_approval_required_defaults_to_false(mock_chain):
    mock_chain.read_approval_required = AsyncMock(return_value=None)

    config = await AdapterConfigValidator(mock_chain).get_config(ADAPTER)

    assert config.approval_required is False


@pytest.mark.asyncio
async def test_config_is_cached_per_address(mock_chain):
    validator = AdapterConfigValidator(mock_chain)

    first = await validator.get_config(ADAPTER)
    second = await validator.get_config(ADAPTER.lower())
    assert first is second
    assert mock_chain.read_underlying_token.await_count == 1

    await validator.get_config(ADAPTER, refresh=True)
    assert mock_chain.read_underlying_token.await_count == 2


@pytest.mark.asyncio
async def test_missing_code_raises_contract_not_found(mock_chain):
    mock_chain.has_code = AsyncMock(return_value=False)

    with pytest.raises(ContractNotFound):
        await AdapterConfigValidator(mock_chain).get_config(ADAPTER)


@pytest.mark.asyncio
async def test_token_read_failure_is_configuration_error(mock_chain):
    mock_chain.read_underlying_token = AsyncMock(side_effect=RuntimeError("revert"))

    with pytest.raises(ConfigurationError, match="underlying token"):
        await AdapterConfigValidator(mock_chain).get_config(ADAPTER)


@pytest.mark.asyncio
async def test_invalid_address_is_configuration_error(mock_chain):
    with pytest.raises(ConfigurationError, match="Invalid adapter address"):
        await AdapterConfigValidator(mock_chain).get_config("0xnot-an-address")


@pytest.mark.asyncio
async def test_validate_probe_failure_is_not_fatal(mock_chain):
    mock_chain.quote_send = AsyncMock(side_effect=RuntimeError("execution reverted"))
    events = CollectingEventSink()

    result = await AdapterConfigValidator(mock_chain, events=events).validate(ADAPTER)

    assert result.is_valid is True
    assert result.quote_probe_ok is False
    assert any("probe failed (non-fatal)" in m for m in events.messages())
    send_param = mock_chain.quote_send.await_args.args[1]
    assert send_param.to == b"\x00" * 32
    assert send_param.amount_ld == 10**6
    assert send_param.dst_eid == 30101


@pytest.mark.asyncio
async def test_validate_requires_underlying_code(mock_chain):
    mock_chain.has_code = AsyncMock(side_effect=lambda address: address == ADAPTER)

    result = await AdapterConfigValidator(mock_chain).validate(ADAPTER)

    assert result.is_valid is False
    assert "no code" in result.error


@pytest.mark.asyncio
async def test_validate_reports_missing_adapter(mock_chain):
    mock_chain.has_code = AsyncMock(return_value=False)

    result = await AdapterConfigValidator(mock_chain).validate(ADAPTER)

    assert result.is_valid is False
    assert "does not exist" in result.error


@pytest.mark.asyncio
async def test_network_compatibility_unsupported_chain(mock_chain):
    mock_chain.chain_id = AsyncMock(return_value=9999)

    result = await AdapterConfigValidator(mock_chain).check_network_compatibility(ADAPTER)

    assert result.is_compatible is False
    assert result.chain_id == 9999
    assert "9999" in result.error
    assert result.recommendations


@pytest.mark.asyncio
async def test_network_compatibility_adapter_not_deployed(mock_chain):
    mock_chain.has_code = AsyncMock(return_value=False)

    result = await AdapterConfigValidator(mock_chain).check_network_compatibility(ADAPTER)

    assert result.is_compatible is False
    assert result.current_eid == 30101
    assert result.error == "OFT adapter is not deployed on the current network (eid 30101)"


@pytest.mark.asyncio
async def test_network_compatibility_ok(mock_chain):
    result = await AdapterConfigValidator(mock_chain).check_network_compatibility(ADAPTER)

    assert result.is_compatible is True
    assert result.current_eid == 30101


@pytest.mark.asyncio
async def test_destination_unsupported_when_minimal_probe_fails(mock_chain):
    mock_chain.quote_send = AsyncMock(side_effect=RuntimeError("NoPeer"))

    result = await AdapterConfigValidator(mock_chain).check_destination_support(
        ADAPTER, 30110, "5", 6
    )

    assert result.is_supported is False
    assert result.error.startswith("Destination 30110 is not supported")
    assert mock_chain.quote_send.await_count == 1


@pytest.mark.asyncio
async def test_amount_unsupported_when_only_actual_probe_fails(mock_chain):
    mock_chain.quote_send = AsyncMock(side_effect=[(1, 0), RuntimeError("SlippageExceeded")])

    result = await AdapterConfigValidator(mock_chain).check_destination_support(
        ADAPTER, 30110, "0.000001", 6
    )

    assert result.is_supported is False
    assert result.error.startswith("Amount 0.000001 is not supported for destination 30110")
    assert any("minimum" in r for r in result.recommendations)
    assert mock_chain.quote_send.await_args.args[1].amount_ld == 1


@pytest.mark.asyncio
async def test_destination_supported(mock_chain):
    result = await AdapterConfigValidator(mock_chain).check_destination_support(
        ADAPTER, 30110, "5", 6
    )

    assert result.is_supported is True
    assert mock_chain.quote_send.await_count == 2
