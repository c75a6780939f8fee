"""Structured diagnostics emitted by the orchestration engine.

Components never print or keep a global log list. They call an injected
``EventSink`` with a ``TransferEvent``; the caller decides where events go.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol


@dataclass(frozen=True)
class TransferEvent:
    stage: str
    message: str
    level: int = logging.INFO
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventSink(Protocol):
    def __call__(self, event: TransferEvent) -> None: ...


class LoggingEventSink:
    """Forward events to a standard logger."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("oft_transfer.events")

    def __call__(self, event: TransferEvent) -> None:
        self._logger.log(
            event.level,
            "[%s] %s",
            event.stage,
            event.message,
            extra={"stage": event.stage, "event_data": event.data},
        )


class CollectingEventSink:
    """Keep events in memory, optionally forwarding to another sink."""

    def __init__(self, forward: EventSink | None = None):
        self.events: list[TransferEvent] = []
        self._forward = forward

    def __call__(self, event: TransferEvent) -> None:
        self.events.append(event)
        if self._forward is not None:
            self._forward(event)

    def messages(self, stage: str | None = None) -> list[str]:
        return [e.message for e in self.events if stage is None or e.stage == stage]

    def clear(self) -> None:
        self.events.clear()


def null_sink(event: TransferEvent) -> None:
    return None


class Emitter:
    """Small helper bound to one stage name."""

    def __init__(self, sink: EventSink, stage: str):
        self._sink = sink
        self.stage = stage

    def __call__(self, message: str, level: int = logging.INFO, **data: Any) -> None:
        self._sink(TransferEvent(stage=self.stage, message=message, level=level, data=data))

    def debug(self, message: str, **data: Any) -> None:
        self(message, logging.DEBUG, **data)

    def warning(self, message: str, **data: Any) -> None:
        self(message, logging.WARNING, **data)

    def error(self, message: str, **data: Any) -> None:
        self(message, logging.ERROR, **data)
