"""Data model for cross-chain transfers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

EMPTY_BYTES = b""


@dataclass(frozen=True)
class TransferRequest:
    """A caller's request to move tokens through an OFT adapter."""

    src_eid: int
    dst_eid: int
    amount: str
    to: str
    adapter_address: str
    min_amount: str | None = None
    compose_msg: str | None = None
    lz_receive_options: list[str] = field(default_factory=list)
    compose_options: list[str] = field(default_factory=list)
    native_drop_options: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AdapterConfig:
    address: str
    underlying_token: str
    decimals: int
    approval_required: bool


@dataclass(frozen=True)
class TokenInfo:
    name: str
    symbol: str
    decimals: int
    address: str


@dataclass(frozen=True)
class SendParam:
    """The adapter's ``SendParam`` struct."""

    dst_eid: int
    to: bytes
    amount_ld: int
    min_amount_ld: int
    extra_options: bytes = EMPTY_BYTES
    compose_msg: bytes = EMPTY_BYTES
    oft_cmd: bytes = EMPTY_BYTES

    def as_tuple(self) -> tuple[int, bytes, int, int, bytes, bytes, bytes]:
        return (
            self.dst_eid,
            self.to,
            self.amount_ld,
            self.min_amount_ld,
            self.extra_options,
            self.compose_msg,
            self.oft_cmd,
        )


@dataclass(frozen=True)
class PreparedTransfer:
    amount_units: int
    min_amount_units: int
    to_bytes32: bytes
    extra_options: bytes
    send_param: SendParam


@dataclass(frozen=True)
class FeeQuote:
    native_fee: int
    lz_token_fee: int
    token_info: TokenInfo | None = None

    def as_tuple(self) -> tuple[int, int]:
        return (self.native_fee, self.lz_token_fee)


class ApprovalState(str, Enum):
    NONE = "none"
    CHECKING = "checking"
    NEEDED = "needed"
    APPROVING = "approving"
    APPROVED = "approved"
    FAILED = "failed"


@dataclass(frozen=True)
class AllowanceCheck:
    sufficient: bool
    allowance: int
    required: int


@dataclass(frozen=True)
class TransferResult:
    tx_hash: str
    scan_link: str
    native_fee: int = 0
    approval_tx_hash: str | None = None


@dataclass
class ValidationReport:
    """Ordered, de-duplicated pre-flight errors. Empty means valid."""

    errors: list[str] = field(default_factory=list)

    def add(self, message: str) -> None:
        if message not in self.errors:
            self.errors.append(message)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class AdapterValidation:
    is_valid: bool
    error: str | None = None
    config: AdapterConfig | None = None
    quote_probe_ok: bool | None = None


@dataclass(frozen=True)
class NetworkCompatibility:
    is_compatible: bool
    current_eid: int | None = None
    chain_id: int | None = None
    error: str | None = None
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DestinationSupport:
    is_supported: bool
    error: str | None = None
    recommendations: list[str] = field(default_factory=list)
