"""Application state container."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .settings import TransferSettings


@dataclass
class AppState:
    """Settings and logger shared by the CLI commands."""

    settings: TransferSettings
    logger: logging.Logger
