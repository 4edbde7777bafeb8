"""Database connection configuration."""

from __future__ import annotations

import os
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator


class DatabaseMode(StrEnum):
    FREEPDB = "freepdb"  # local / self-hosted instance
    ADB = "adb"  # hosted Autonomous Database


class DatabaseConfig(BaseModel):
    mode: DatabaseMode = DatabaseMode.FREEPDB
    host: str = "localhost"
    port: int = 1521
    service: str = "FREEPDB1"
    user: str = "picooraclaw"
    password: str = ""
    password_env: str = ""  # env var holding the password when ``password`` is empty
    dsn: str = ""  # full connection descriptor; adb mode only
    wallet_path: str = ""  # mTLS wallet directory; adb mode only
    wallet_password_env: str = ""
    pool_max_open: int = Field(default=10, ge=1)
    pool_max_idle: int = Field(default=2, ge=0)
    conn_max_lifetime: int = Field(default=1800, ge=0)  # seconds

    @model_validator(mode="after")
    def _validate_pool(self) -> DatabaseConfig:
        if self.pool_max_idle > self.pool_max_open:
            raise ValueError(
                f"pool_max_idle ({self.pool_max_idle}) must not exceed "
                f"pool_max_open ({self.pool_max_open})"
            )
        return self

    @property
    def is_adb(self) -> bool:
        return self.mode == DatabaseMode.ADB

    @property
    def uses_wallet(self) -> bool:
        return self.is_adb and bool(self.wallet_path) and not self.dsn

    @property
    def uses_tls(self) -> bool:
        """Wallet-less TLS: a hosted instance reached through a full descriptor."""
        return self.is_adb and bool(self.dsn)

    def resolve_password(self) -> str:
        if self.password:
            return self.password
        if self.password_env:
            return os.environ.get(self.password_env, "")
        return ""

    def resolve_wallet_password(self) -> str | None:
        if self.wallet_password_env:
            return os.environ.get(self.wallet_password_env) or None
        return None
