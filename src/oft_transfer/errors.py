"""Exception taxonomy and failure classification for cross-chain transfers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ValidationReport


class OFTTransferError(Exception):
    """Base class for every failure raised by the orchestration engine."""

    def __init__(self, message: str, recommendations: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.recommendations = list(recommendations or [])


class ConfigurationError(OFTTransferError):
    """Unknown or undeployed adapter, unsupported network."""


class UnsupportedNetwork(ConfigurationError):
    def __init__(self, chain_id: int):
        super().__init__(
            f"Unsupported network with chainId {chain_id}",
            ["Switch the wallet to one of the supported networks"],
        )
        self.chain_id = chain_id


class UnsupportedChainFamily(ConfigurationError):
    def __init__(self, eid: int, family: str):
        super().__init__(f"non-EVM srcEid ({eid}) not supported (chain family: {family})")
        self.eid = eid
        self.family = family


class ContractNotFound(ConfigurationError):
    def __init__(self, address: str, what: str = "Contract"):
        super().__init__(
            f"{what} does not exist at {address} on the current network",
            [
                "Verify the address is correct",
                "Make sure the wallet is connected to the network where it is deployed",
            ],
        )
        self.address = address


class InvalidOptionsFormat(OFTTransferError):
    """Raised when raw executor option tuples cannot be encoded."""


class NativeDropOverflow(InvalidOptionsFormat):
    def __init__(self, amount: int, max_base_units: int, max_human_units: str):
        super().__init__(
            f"Native drop amount {amount} wei exceeds the uint128 maximum "
            f"({max_base_units} wei ≈ {max_human_units} ETH)"
        )
        self.amount = amount
        self.max_base_units = max_base_units
        self.max_human_units = max_human_units


class InvalidRequest(OFTTransferError):
    """A transfer request field cannot be interpreted."""


class InvalidAmount(InvalidRequest):
    """Raised when a decimal amount string cannot be converted to base units."""


class InvalidRecipient(InvalidRequest):
    def __init__(self, recipient: str):
        super().__init__(f"Invalid recipient address: {recipient}")
        self.recipient = recipient


class ValidationError(OFTTransferError):
    def __init__(self, report: ValidationReport):
        super().__init__(
            "Pre-flight validation failed: " + "; ".join(report.errors),
        )
        self.report = report


class ApprovalError(OFTTransferError):
    """Raised when the allowance handshake ends in the failed state."""


class QuoteError(OFTTransferError):
    pass


class QuoteFailed(QuoteError):
    def __init__(self, underlying: str):
        super().__init__(f"Failed to get quote: {underlying}")
        self.underlying = underlying


class ExecutionError(OFTTransferError):
    """Failure while submitting or confirming a transaction."""


class InsufficientNativeFunds(ExecutionError):
    def __init__(self, balance: int, required: int):
        super().__init__(
            f"Insufficient native balance for fee: have {balance} wei, need {required} wei",
            ["Top up the native currency balance of the sending account"],
        )
        self.balance = balance
        self.required = required


class ConfirmationTimeout(ExecutionError):
    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(
            f"Transaction {tx_hash} was not confirmed within {timeout:.0f}s",
            ["Check the transaction status on a block explorer before retrying"],
        )
        self.tx_hash = tx_hash
        self.timeout = timeout


class TransactionReverted(ExecutionError):
    def __init__(self, tx_hash: str):
        super().__init__(f"Transaction {tx_hash} execution reverted on-chain")
        self.tx_hash = tx_hash


class TransferFailed(ExecutionError):
    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        recommendations: list[str] | None = None,
    ):
        super().__init__(message, recommendations)
        self.category = category


class UserCancelled(OFTTransferError):
    def __init__(self, action: str):
        super().__init__(f"User rejected the {action} request")
        self.action = action


class ErrorCategory(str, Enum):
    REVERTED = "reverted"
    INSUFFICIENT_NATIVE_FUNDS = "insufficient_native_funds"
    USER_REJECTED = "user_rejected"
    UNSUPPORTED_NETWORK = "unsupported_network"
    CONTRACT_NOT_DEPLOYED = "contract_not_deployed"
    APPROVAL_FAILURE = "approval_failure"
    UNKNOWN = "unknown"


# Evaluated in order; the first matching category wins.
_PATTERNS: list[tuple[ErrorCategory, tuple[str, ...]]] = [
    (ErrorCategory.USER_REJECTED, ("user rejected", "user denied")),
    (
        ErrorCategory.INSUFFICIENT_NATIVE_FUNDS,
        ("insufficient funds", "insufficient native balance"),
    ),
    (ErrorCategory.UNSUPPORTED_NETWORK, ("unsupported network", "non-evm")),
    (
        ErrorCategory.CONTRACT_NOT_DEPLOYED,
        ("not deployed", "does not exist", "has no code"),
    ),
    (ErrorCategory.APPROVAL_FAILURE, ("approval", "allowance")),
    (ErrorCategory.REVERTED, ("execution reverted", "require(false)", "revert")),
]

_HINTS: dict[ErrorCategory, list[str]] = {
    ErrorCategory.REVERTED: [
        "Transaction reverted - a smart contract validation failed",
        "Common causes: insufficient balance, insufficient allowance, invalid parameters",
        "Check: token balance, allowance, network compatibility, parameter validity",
    ],
    ErrorCategory.INSUFFICIENT_NATIVE_FUNDS: [
        "Insufficient native currency for gas and messaging fees",
    ],
    ErrorCategory.USER_REJECTED: [
        "The signing request was rejected; nothing was submitted",
    ],
    ErrorCategory.UNSUPPORTED_NETWORK: [
        "Switch to a network with a known LayerZero endpoint id",
    ],
    ErrorCategory.CONTRACT_NOT_DEPLOYED: [
        "The adapter is not deployed on the current network",
        "Verify the adapter address for this network",
    ],
    ErrorCategory.APPROVAL_FAILURE: [
        "Token approval did not complete; approve the adapter and try again",
    ],
    ErrorCategory.UNKNOWN: [],
}


@dataclass(frozen=True)
class Classification:
    category: ErrorCategory
    hints: list[str] = field(default_factory=list)


class ErrorClassifier:
    """Label opaque upstream failure text with a diagnostic category.

    Only the message text is inspected. Nothing is inferred beyond what the
    text states; the category is used to attach remediation hints.
    """

    def classify(self, message: str) -> ErrorCategory:
        lowered = message.lower()
        for category, needles in _PATTERNS:
            if any(needle in lowered for needle in needles):
                return category
        return ErrorCategory.UNKNOWN

    def hints(self, category: ErrorCategory) -> list[str]:
        return list(_HINTS[category])

    def classify_exception(self, exc: BaseException) -> Classification:
        category = self.classify(str(exc))
        return Classification(category=category, hints=self.hints(category))
