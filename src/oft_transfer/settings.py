"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .adapter_config import DEFAULT_DECIMALS, DEFAULT_PROBE_DST_EID
from .scan import DEPLOYMENT_METADATA_URL, LAYERZERO_SCAN_TESTNET_URL, LAYERZERO_SCAN_URL

load_dotenv()

CONFIG_ENV_VAR = "OFT_TRANSFER_CONFIG"
LOCAL_CONFIG = "oft-transfer.toml"
SECRET_FIELDS = {"private_key"}


class TomlConfigSource(PydanticBaseSettingsSource):
    """Lowest-precedence source reading a TOML file.

    Accepts keys at the top level or under an ``[oft_transfer]`` table.
    """

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
        super().__init__(settings_cls)
        self._path = path

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return None, "", False

    def _resolve_path(self) -> Path | None:
        if self._path:
            return self._path
        local_config = Path(LOCAL_CONFIG)
        user_config = Path.home() / ".config" / "oft-transfer" / "config.toml"
        if local_config.exists():
            return local_config
        if user_config.exists():
            return user_config
        return None

    def __call__(self) -> dict[str, Any]:
        path = self._resolve_path()
        if path is None or not path.exists():
            return {}

        with path.open("rb") as f:
            data = tomllib.load(f)
        body = data.get("oft_transfer", data)
        if not isinstance(body, dict):
            return {}

        for key in SECRET_FIELDS:
            if key in body:
                raise ValueError(
                    f"Security violation: '{key}' found in TOML config file. "
                    f"Secrets must only be provided via environment variables or CLI flags."
                )
        return body


class TransferSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with OFT_TRANSFER_)
    - Config file (TOML), lowest precedence
    """

    # --- connection ---
    rpc_url: str | None = None
    rpc_timeout: float = Field(default=30.0, gt=0)

    # --- signing ---
    private_key: SecretStr | None = None
    confirmation_timeout: float = Field(
        default=180.0,
        gt=0,
        description="Seconds to wait for a transaction receipt before giving up.",
    )

    # --- adapter defaults ---
    adapter_address: str | None = None
    default_decimals: int = Field(default=DEFAULT_DECIMALS, ge=0, le=255)
    probe_dst_eid: int = Field(default=DEFAULT_PROBE_DST_EID, gt=0)

    # --- links ---
    scan_url: str = LAYERZERO_SCAN_URL
    scan_testnet_url: str = LAYERZERO_SCAN_TESTNET_URL
    metadata_url: str = DEPLOYMENT_METADATA_URL

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="OFT_TRANSFER_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("private_key", mode="before")
    @classmethod
    def wrap_secrets(cls, v: Any) -> SecretStr | None:
        """Wrap string secrets in SecretStr."""
        if v is None or isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get(CONFIG_ENV_VAR)
        cfg_path = Path(env_cfg) if env_cfg else None
        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            dotenv_settings,  # .env
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a dict with secrets redacted."""
        data = self.model_dump()
        if self.private_key:
            data["private_key"] = "***redacted***"
        return data

    @property
    def rpc_url_required(self) -> str:
        if self.rpc_url is None:
            raise ValueError("rpc_url must be configured")
        return self.rpc_url

    @property
    def private_key_required(self) -> str:
        if self.private_key is None:
            raise ValueError("private_key must be provided via OFT_TRANSFER_PRIVATE_KEY")
        return self.private_key.get_secret_value()
