"""LayerZero executor options (type 3) encoding."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import IntEnum

from web3 import Web3

from .errors import InvalidOptionsFormat, NativeDropOverflow
from .units import address_to_bytes32

logger = logging.getLogger(__name__)

OPTIONS_TYPE_3 = 3
EXECUTOR_WORKER_ID = 1

MAX_UINT128 = 2**128 - 1


class ExecutorOptionType(IntEnum):
    LZ_RECEIVE = 1
    NATIVE_DROP = 2
    COMPOSE = 3


RawOption = str | int | None


@dataclass(frozen=True)
class LzReceiveOption:
    gas: int
    value: int = 0

    def encode(self) -> bytes:
        payload = self.gas.to_bytes(16, "big")
        if self.value:
            payload += self.value.to_bytes(16, "big")
        return payload


@dataclass(frozen=True)
class ComposeOption:
    index: int
    gas: int
    value: int = 0

    def encode(self) -> bytes:
        payload = self.index.to_bytes(2, "big") + self.gas.to_bytes(16, "big")
        if self.value:
            payload += self.value.to_bytes(16, "big")
        return payload


@dataclass(frozen=True)
class NativeDropOption:
    amount: int
    receiver: str

    def encode(self) -> bytes:
        return self.amount.to_bytes(16, "big") + address_to_bytes32(self.receiver)


@dataclass
class ExecutorOptions:
    """Ordered executor options; serialized lzReceive -> compose -> nativeDrop."""

    lz_receive: list[LzReceiveOption] = field(default_factory=list)
    compose: list[ComposeOption] = field(default_factory=list)
    native_drop: list[NativeDropOption] = field(default_factory=list)

    def to_bytes(self) -> bytes:
        blob = OPTIONS_TYPE_3.to_bytes(2, "big")
        entries: list[tuple[ExecutorOptionType, bytes]] = [
            *((ExecutorOptionType.LZ_RECEIVE, o.encode()) for o in self.lz_receive),
            *((ExecutorOptionType.COMPOSE, o.encode()) for o in self.compose),
            *((ExecutorOptionType.NATIVE_DROP, o.encode()) for o in self.native_drop),
        ]
        for option_type, payload in entries:
            blob += (
                EXECUTOR_WORKER_ID.to_bytes(1, "big")
                + (len(payload) + 1).to_bytes(2, "big")
                + int(option_type).to_bytes(1, "big")
                + payload
            )
        return blob

    def to_hex(self) -> str:
        return Web3.to_hex(self.to_bytes())


def _parse_int(raw: RawOption) -> int | None:
    """``None`` unless ``raw`` is a whole number."""
    if raw is None:
        return None
    if isinstance(raw, int):
        return raw
    text = raw.strip()
    if not text:
        return None
    if text.lower().startswith("0x"):
        try:
            return int(text, 16)
        except ValueError:
            return None
    try:
        number = Decimal(text)
        value = int(number)
    except (ValueError, ArithmeticError):
        return None
    if value != number:
        return None
    return value


def _require_uint(raw: RawOption, bits: int, what: str) -> int:
    value = _parse_int(raw)
    if value is None:
        raise InvalidOptionsFormat(f"{what}: {raw!r} is not a whole number")
    if value < 0 or value > 2**bits - 1:
        raise InvalidOptionsFormat(f"{what}: {value} does not fit in uint{bits}")
    return value


def _optional_value(raw: RawOption, what: str) -> int:
    value = _parse_int(raw)
    if value is None:
        return 0
    return _require_uint(value, 128, what)


class ExecutorOptionsBuilder:
    """Turns flat lists of raw option strings into an executor options blob."""

    def parse(
        self,
        lz_receive: Sequence[RawOption] | None = None,
        compose: Sequence[RawOption] | None = None,
        native_drop: Sequence[RawOption] | None = None,
    ) -> ExecutorOptions:
        options = ExecutorOptions()

        lz_receive = list(lz_receive or [])
        if len(lz_receive) % 2 != 0:
            raise InvalidOptionsFormat("lzReceive: expected pairs of gas,value")
        for i in range(0, len(lz_receive), 2):
            options.lz_receive.append(
                LzReceiveOption(
                    gas=_require_uint(lz_receive[i], 128, "lzReceive gas"),
                    value=_optional_value(lz_receive[i + 1], "lzReceive value"),
                )
            )

        compose = list(compose or [])
        if len(compose) % 3 != 0:
            raise InvalidOptionsFormat("compose: expected triplets")
        for i in range(0, len(compose), 3):
            options.compose.append(
                ComposeOption(
                    index=_require_uint(compose[i], 16, "compose index"),
                    gas=_require_uint(compose[i + 1], 128, "compose gas"),
                    value=_optional_value(compose[i + 2], "compose value"),
                )
            )

        native_drop = list(native_drop or [])
        if len(native_drop) % 2 != 0:
            raise InvalidOptionsFormat("nativeDrop: expected pairs")
        for i in range(0, len(native_drop), 2):
            options.native_drop.append(
                self._native_drop(native_drop[i], native_drop[i + 1])
            )

        return options

    def build(
        self,
        lz_receive: Sequence[RawOption] | None = None,
        compose: Sequence[RawOption] | None = None,
        native_drop: Sequence[RawOption] | None = None,
    ) -> bytes:
        """Encode the three option categories into one blob.

        Raises:
            InvalidOptionsFormat: On an arity mismatch or unparsable entry.
            NativeDropOverflow: If a native drop amount exceeds uint128.
        """
        blob = self.parse(lz_receive, compose, native_drop).to_bytes()
        logger.debug("Built executor options: %s", Web3.to_hex(blob))
        return blob

    @staticmethod
    def _native_drop(raw_amount: RawOption, raw_recipient: RawOption) -> NativeDropOption:
        amount_text = str(raw_amount).strip() if raw_amount is not None else ""
        recipient = str(raw_recipient).strip() if raw_recipient is not None else ""
        if not amount_text or not recipient:
            raise InvalidOptionsFormat(
                "nativeDrop: both amount and recipient must be provided"
            )

        amount = _parse_int(amount_text)
        if amount is None or amount < 0:
            raise InvalidOptionsFormat(f"nativeDrop: invalid amount {amount_text!r}")
        if amount > MAX_UINT128:
            max_human = (Decimal(MAX_UINT128) / Decimal(10**18)).quantize(Decimal("0.01"))
            raise NativeDropOverflow(amount, MAX_UINT128, f"{max_human}")

        if not Web3.is_address(recipient):
            raise InvalidOptionsFormat(f"nativeDrop: invalid recipient {recipient!r}")
        return NativeDropOption(amount=amount, receiver=recipient)


def decode_lz_receive_option(blob: bytes) -> LzReceiveOption | None:
    """Return the first executor lzReceive option in ``blob``, if any."""
    if len(blob) < 2 or int.from_bytes(blob[:2], "big") != OPTIONS_TYPE_3:
        raise ValueError("Not a type 3 options blob")

    cursor = 2
    while cursor < len(blob):
        if cursor + 4 > len(blob):
            raise ValueError("Truncated option header")
        worker_id = blob[cursor]
        size = int.from_bytes(blob[cursor + 1 : cursor + 3], "big")
        option_type = blob[cursor + 3]
        payload = blob[cursor + 4 : cursor + 3 + size]
        if len(payload) != size - 1:
            raise ValueError("Truncated option payload")
        cursor += 3 + size

        if worker_id == EXECUTOR_WORKER_ID and option_type == ExecutorOptionType.LZ_RECEIVE:
            gas = int.from_bytes(payload[:16], "big")
            value = int.from_bytes(payload[16:32], "big") if len(payload) > 16 else 0
            return LzReceiveOption(gas=gas, value=value)
    return None


def _underscored(n: int) -> str:
    return f"{n:_}"


def describe_lz_receive_option(hex_options: str | None) -> str:
    """Human-readable summary of the lzReceive option in a hex blob."""
    if not hex_options or hex_options == "0x":
        return "No options set"
    try:
        option = decode_lz_receive_option(Web3.to_bytes(hexstr=hex_options))
    except ValueError:
        return f"Invalid options ({hex_options[:12]}...)"
    if option is None:
        return "No executor options"
    return f"gas: {_underscored(option.gas)} , value: {_underscored(option.value)} wei"
