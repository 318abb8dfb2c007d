"""Runtime settings, read from the environment (and ``.env`` locally)."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from optout.errors import ConfigError


def _env(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    unsub_secret: str
    supabase_url: str | None = None
    supabase_key: str | None = None
    # Leave unset to render the inline page on GET instead of redirecting.
    visible_unsub_redirect: str | None = None
    brand_name: str = "our newsletter"
    brand_home_url: str | None = None
    support_email: str | None = None
    log_level: str = "INFO"

    @property
    def storage_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> Settings:
        """Build settings from env vars.

        Raises:
            ConfigError: UNSUB_SECRET is not set.
        """
        if dotenv:
            load_dotenv()  # for local development; Vercel uses env vars from dashboard

        secret = _env("UNSUB_SECRET")
        if secret is None:
            raise ConfigError("UNSUB_SECRET must be set")

        return cls(
            unsub_secret=secret,
            supabase_url=_env("SUPABASE_URL"),
            supabase_key=_env("SUPABASE_KEY"),
            visible_unsub_redirect=_env("VISIBLE_UNSUB_REDIRECT"),
            brand_name=_env("BRAND_NAME") or "our newsletter",
            brand_home_url=_env("BRAND_HOME_URL"),
            support_email=_env("SUPPORT_EMAIL"),
            log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        )
