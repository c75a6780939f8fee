from __future__ import annotations

import pytest

from oft_transfer.errors import (
    ErrorCategory,
    ErrorClassifier,
    ExecutionError,
    InsufficientNativeFunds,
    OFTTransferError,
    QuoteFailed,
    QuoteError,
    TransferFailed,
    UserCancelled,
    ValidationError,
)
from oft_transfer.models import ValidationReport


@pytest.fixture
def classifier() -> ErrorClassifier:
    return ErrorClassifier()


@pytest.mark.parametrize(
    ("message", "category"),
    [
        ("execution reverted: LzTokenUnavailable()", ErrorCategory.REVERTED),
        ("VM Exception: require(false)", ErrorCategory.REVERTED),
        ("insufficient funds for gas * price + value", ErrorCategory.INSUFFICIENT_NATIVE_FUNDS),
        ("MetaMask Tx Signature: User denied transaction signature.", ErrorCategory.USER_REJECTED),
        ("User rejected the send request", ErrorCategory.USER_REJECTED),
        ("Unsupported network with chainId 9999", ErrorCategory.UNSUPPORTED_NETWORK),
        ("OFT adapter does not exist at 0xabc", ErrorCategory.CONTRACT_NOT_DEPLOYED),
        ("ERC20: insufficient allowance", ErrorCategory.APPROVAL_FAILURE),
        ("connection reset by peer", ErrorCategory.UNKNOWN),
        ("", ErrorCategory.UNKNOWN),
    ],
)
def test_classify(classifier, message, category):
    assert classifier.classify(message) is category


def test_classification_is_case_insensitive(classifier):
    assert classifier.classify("EXECUTION REVERTED") is ErrorCategory.REVERTED


def test_reverted_hints_match_transfer_form_analysis(classifier):
    hints = classifier.hints(ErrorCategory.REVERTED)

    assert hints[0] == "Transaction reverted - a smart contract validation failed"
    assert any("allowance" in hint for hint in hints)


def test_unknown_has_no_hints(classifier):
    assert classifier.hints(ErrorCategory.UNKNOWN) == []


def test_classify_exception(classifier):
    result = classifier.classify_exception(RuntimeError("insufficient funds for transfer"))

    assert result.category is ErrorCategory.INSUFFICIENT_NATIVE_FUNDS
    assert result.hints == classifier.hints(ErrorCategory.INSUFFICIENT_NATIVE_FUNDS)


def test_hints_are_copies(classifier):
    classifier.hints(ErrorCategory.REVERTED).append("mutated")

    assert "mutated" not in classifier.hints(ErrorCategory.REVERTED)


def test_taxonomy():
    assert issubclass(QuoteFailed, QuoteError)
    assert issubclass(TransferFailed, ExecutionError)
    assert issubclass(InsufficientNativeFunds, ExecutionError)
    assert issubclass(UserCancelled, OFTTransferError)


def test_quote_failed_message():
    error = QuoteFailed("execution reverted")

    assert error.message == "Failed to get quote: execution reverted"
    assert error.underlying == "execution reverted"


def test_validation_error_carries_report():
    report = ValidationReport()
    report.add("Invalid recipient address: nope")
    report.add("Insufficient token balance: have 0, need 1")

    error = ValidationError(report)

    assert error.report is report
    assert "Invalid recipient address: nope" in str(error)
    assert "Insufficient token balance" in str(error)
