"""
Configuration for authflow runs.

Settings are read from the environment (optionally seeded from a .env file)
and validated with pydantic. Test accounts live in a YAML file so that
credentials never appear in code.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from authflow.errors import ConfigurationError

logger = structlog.get_logger(__name__)

WPCOM_HOST = "WPCOM"
DEFAULT_PRODUCT_NAME = "WordPress.com"


class Account(BaseModel):
    """A test account and the feature tags it exercises."""

    username: str = Field(description="Login name")
    email: str = Field(default="", description="Address the account receives mail at")
    password: str = Field(default="", description="Empty for passwordless accounts")
    features: frozenset[str] = Field(default_factory=frozenset)
    inbox_id: str | None = Field(default=None, description="Mailosaur server id")

    model_config = {"frozen": True}

    @field_validator("features", mode="before")
    @classmethod
    def normalize_features(cls, v: Any) -> frozenset[str]:
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(str(tag).strip().lower() for tag in v if str(tag).strip())

    def has_features(self, features: Iterable[str]) -> bool:
        return {f.lower() for f in features} <= self.features


class Settings(BaseModel):
    """Runtime settings for sessions, waits, inbox polling and accounts."""

    owl_url: str = "http://localhost:8080"
    owl_token: str = ""

    base_url: str = "https://wordpress.com"
    jetpack_host: str = WPCOM_HOST
    jetpack_site_url: str = ""
    product_name: str = DEFAULT_PRODUCT_NAME

    explicit_wait_ms: int = Field(default=20000, gt=0)
    poll_interval_ms: int = Field(default=250, gt=0)
    click_attempts: int = Field(default=3, ge=1)
    click_retry_delay_ms: int = Field(default=500, ge=0)

    inbox_poll_interval_ms: int = Field(default=2000, gt=0)
    inbox_timeout_ms: int = Field(default=30000, gt=0)
    mailosaur_api_key: str = ""

    visual_diff: bool = False
    accounts: list[Account] = Field(default_factory=list)

    @field_validator("base_url", "jetpack_site_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> Settings:
        """
        Build settings from environment variables.

        Args:
            env_file: Optional .env file loaded before reading the environment

        Returns:
            Validated Settings

        Raises:
            ConfigurationError: If a value fails validation
        """
        load_dotenv(env_file)

        values: dict[str, Any] = {}
        mapping = {
            "OWL_BROWSER_URL": "owl_url",
            "OWL_BROWSER_TOKEN": "owl_token",
            "AUTHFLOW_BASE_URL": "base_url",
            "AUTHFLOW_JETPACK_HOST": "jetpack_host",
            "AUTHFLOW_JETPACK_SITE_URL": "jetpack_site_url",
            "AUTHFLOW_PRODUCT_NAME": "product_name",
            "AUTHFLOW_EXPLICIT_WAIT_MS": "explicit_wait_ms",
            "AUTHFLOW_POLL_INTERVAL_MS": "poll_interval_ms",
            "AUTHFLOW_CLICK_ATTEMPTS": "click_attempts",
            "AUTHFLOW_CLICK_RETRY_DELAY_MS": "click_retry_delay_ms",
            "AUTHFLOW_INBOX_POLL_INTERVAL_MS": "inbox_poll_interval_ms",
            "AUTHFLOW_INBOX_TIMEOUT_MS": "inbox_timeout_ms",
            "MAILOSAUR_API_KEY": "mailosaur_api_key",
            "AUTHFLOW_VISDIFF": "visual_diff",
        }
        for env_name, field_name in mapping.items():
            raw = os.environ.get(env_name)
            if raw is not None and raw != "":
                values[field_name] = raw

        accounts_file = os.environ.get("AUTHFLOW_ACCOUNTS_FILE")
        if accounts_file:
            values["accounts"] = load_accounts(accounts_file)

        try:
            settings = cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e

        logger.debug(
            "Settings loaded",
            base_url=settings.base_url,
            jetpack_host=settings.jetpack_host,
            accounts=len(settings.accounts),
        )
        return settings

    @property
    def uses_jetpack_sso(self) -> bool:
        """Jetpack SSO only applies to self-hosted (non WordPress.com) hosts."""
        return self.jetpack_host.upper() != WPCOM_HOST

    def has_account_with_features(self, *features: str) -> bool:
        return any(account.has_features(features) for account in self.accounts)

    def account_for(self, features: Iterable[str] = ()) -> Account:
        """
        Pick the first account that carries every requested feature tag.

        Raises:
            ConfigurationError: If no configured account matches
        """
        wanted = list(features)
        candidates = [a for a in self.accounts if a.has_features(wanted)]
        if not wanted:
            # Default login needs a password; passwordless accounts can't use it
            candidates.sort(key=lambda a: not a.password)
        if candidates:
            return candidates[0]
        raise ConfigurationError(
            f"No configured account with features {sorted(wanted)}"
        )


def load_accounts(path: str | Path) -> list[Account]:
    """
    Load test accounts from a YAML file.

    The file holds either a list of accounts or a mapping with an
    ``accounts`` key.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Accounts file not found: {path}")

    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or []

    if isinstance(data, dict):
        data = data.get("accounts", [])
    if not isinstance(data, list):
        raise ConfigurationError(f"Accounts file must hold a list: {path}")

    try:
        return [Account(**entry) for entry in data]
    except (TypeError, ValidationError) as e:
        raise ConfigurationError(f"Invalid account entry in {path}: {e}") from e
