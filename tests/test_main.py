from __future__ import annotations

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from oft_transfer.main import _flatten, app
from oft_transfer.models import NetworkCompatibility

runner = CliRunner()

RECEIVER = "0x1111111111111111111111111111111111111111"
ADAPTER = "0x2222222222222222222222222222222222222222"


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path, monkeypatch):
    for name in (
        "OFT_TRANSFER_CONFIG",
        "OFT_TRANSFER_RPC_URL",
        "OFT_TRANSFER_PRIVATE_KEY",
        "OFT_TRANSFER_ADAPTER_ADDRESS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_flatten_splits_comma_separated_options():
    assert _flatten(["200000,0", " 1, 50000 ,0"]) == ["200000", "0", "1", "50000", "0"]
    assert _flatten(None) == []


def test_options_command_encodes_blob():
    result = runner.invoke(app, ["options", "--lz-receive", "200000,0"])

    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert lines[0] == "0x00030100110100000000000000000000000000030d40"
    assert lines[1] == "gas: 200_000 , value: 0 wei"


def test_options_command_reports_format_errors():
    result = runner.invoke(app, ["options", "--compose", "0,50000"])

    assert result.exit_code == 1


def test_options_command_decodes():
    result = runner.invoke(app, ["options", "--decode", "0x"])

    assert result.exit_code == 0
    assert result.output.strip() == "No options set"


def test_show_config_redacts_secrets(monkeypatch):
    monkeypatch.setenv("OFT_TRANSFER_PRIVATE_KEY", "0x" + "b" * 64)

    result = runner.invoke(app, ["--rpc-url", "https://rpc.example", "--show-config"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["rpc_url"] == "https://rpc.example"
    assert data["private_key"] == "***redacted***"


def test_quote_requires_adapter():
    result = runner.invoke(
        app,
        ["--rpc-url", "https://rpc.example", "quote", "--dst-eid", "30110", "--amount", "1", "--to", RECEIVER],
    )

    assert result.exit_code != 0
    assert "adapter" in result.output


@pytest.fixture
def mainnet_chain():
    chain = MagicMock()
    chain.chain_id = AsyncMock(return_value=1)
    chain.disconnect = AsyncMock()
    with patch("oft_transfer.main.ChainClient") as client_cls:
        client_cls.from_rpc.return_value = chain
        yield chain


def _send_args(*extra: str) -> list[str]:
    return [
        "--rpc-url",
        "https://rpc.example",
        "send",
        "--adapter",
        ADAPTER,
        "--dst-eid",
        "30110",
        "--amount",
        "1",
        "--to",
        RECEIVER,
        "--yes",
        *extra,
    ]


def test_send_rejects_src_eid_of_another_network(monkeypatch, mainnet_chain):
    monkeypatch.setenv("OFT_TRANSFER_PRIVATE_KEY", "0x" + "b" * 64)

    with (
        patch("oft_transfer.main.Wallet"),
        patch("oft_transfer.main.TransferExecutor") as executor_cls,
    ):
        result = runner.invoke(app, _send_args("--src-eid", "40161"))

    assert result.exit_code == 1
    executor_cls.assert_not_called()
    mainnet_chain.disconnect.assert_awaited_once()


def test_send_aborts_when_adapter_is_incompatible(monkeypatch, mainnet_chain):
    monkeypatch.setenv("OFT_TRANSFER_PRIVATE_KEY", "0x" + "b" * 64)
    compatibility = NetworkCompatibility(
        is_compatible=False,
        current_eid=30101,
        chain_id=1,
        error="OFT adapter is not deployed on the current network (eid 30101)",
        recommendations=["Use the adapter address for this network"],
    )

    with (
        patch("oft_transfer.main.Wallet"),
        patch("oft_transfer.main.AdapterConfigValidator") as validator_cls,
        patch("oft_transfer.main.FeeQuoter") as quoter_cls,
        patch("oft_transfer.main.TransferExecutor") as executor_cls,
    ):
        validator_cls.return_value.check_network_compatibility = AsyncMock(
            return_value=compatibility
        )
        result = runner.invoke(app, _send_args())

    assert result.exit_code == 1
    validator_cls.return_value.check_network_compatibility.assert_awaited_once_with(ADAPTER)
    quoter_cls.assert_not_called()
    executor_cls.assert_not_called()
