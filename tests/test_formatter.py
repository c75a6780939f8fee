from __future__ import annotations

from rich.console import Console

from oft_transfer.errors import QuoteFailed
from oft_transfer.formatter import print_error, print_quote, print_result
from oft_transfer.models import FeeQuote, TokenInfo, TransferRequest, TransferResult

ADAPTER = "0x2222222222222222222222222222222222222222"
TOKEN = "0x3333333333333333333333333333333333333333"
RECIPIENT = "0x4444444444444444444444444444444444444444"


def _console() -> Console:
    return Console(record=True, width=200)


def test_print_quote_shows_fee_and_symbol():
    console = _console()
    request = TransferRequest(
        src_eid=30101, dst_eid=30110, amount="12.5", to=RECIPIENT, adapter_address=ADAPTER
    )
    quote = FeeQuote(
        native_fee=25 * 10**14,
        lz_token_fee=0,
        token_info=TokenInfo(name="USD Coin", symbol="USDC", decimals=6, address=TOKEN),
    )

    print_quote(request, quote, console)

    text = console.export_text()
    assert "eid 30101 -> eid 30110" in text
    assert "12.5 USDC" in text
    assert "0.0025" in text


def test_print_result_includes_links():
    console = _console()
    result = TransferResult(
        tx_hash="0xabc",
        scan_link="https://layerzeroscan.com/tx/0xabc",
        native_fee=10**15,
        approval_tx_hash="0xdef",
    )

    print_result(result, "https://etherscan.io/tx/0xabc", console)

    text = console.export_text()
    assert "https://layerzeroscan.com/tx/0xabc" in text
    assert "https://etherscan.io/tx/0xabc" in text
    assert "0xdef" in text


def test_print_error_lists_recommendations():
    console = _console()
    error = QuoteFailed("execution reverted")
    error.recommendations.append("Check the destination peer")

    print_error(error, console)

    text = console.export_text()
    assert "Failed to get quote: execution reverted" in text
    assert "Check the destination peer" in text
