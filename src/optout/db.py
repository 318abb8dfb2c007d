"""Suppression list storage: Supabase (Postgres) upserts keyed on email."""

from __future__ import annotations

import datetime
import logging
from typing import Callable

from supabase import Client, create_client

from optout.config import Settings
from optout.errors import StoreError, StoreUnavailable, StoreWriteFailed
from optout.models import SuppressionRecord, normalize_email
from optout.pages import mask_email

logger = logging.getLogger(__name__)

TABLE = "suppression"
ENSURE_SCHEMA_RPC = "ensure_suppression_table"
DEFAULT_REASON = "user-request"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def create_client_from_settings(settings: Settings) -> Client | None:
    """Return a Supabase client, or None when storage is not configured.

    The caller owns the client; the store never creates or closes one.
    """
    if not settings.storage_configured:
        logger.warning("SUPABASE_URL/SUPABASE_KEY not set; suppressions will not be persisted")
        return None
    return create_client(settings.supabase_url, settings.supabase_key)


class SuppressionStore:
    """Idempotent writer for the ``suppression`` table.

    A store without a client is a deliberate no-op so that a missing database
    never blocks an unsubscribe.
    """

    def __init__(
        self,
        client: Client | None,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self.client = client
        self.clock = clock or _utcnow
        self._schema_ready = False

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def ensure_schema(self) -> None:
        """Create the table if needed (runs ``CREATE TABLE IF NOT EXISTS``)."""
        if self._schema_ready:
            return
        try:
            self.client.rpc(ENSURE_SCHEMA_RPC).execute()
        except Exception as exc:
            raise StoreUnavailable(f"could not ensure {TABLE} table") from exc
        self._schema_ready = True

    def upsert(self, email: str, source: str, reason: str = DEFAULT_REASON) -> SuppressionRecord:
        """Insert or overwrite the suppression row for ``email``.

        One PostgREST upsert with ``on_conflict="email"``, i.e. a single
        ``INSERT ... ON CONFLICT (email) DO UPDATE`` statement.

        Raises:
            StoreUnavailable: no client, or the schema check failed.
            StoreWriteFailed: the upsert failed.
        """
        if self.client is None:
            raise StoreUnavailable("no storage client configured")

        self.ensure_schema()
        record = SuppressionRecord(
            email=normalize_email(email),
            source=source,
            reason=reason,
            ts=self.clock(),
        )
        try:
            (
                self.client.table(TABLE)
                .upsert(record.to_row(), on_conflict="email", ignore_duplicates=False)
                .execute()
            )
        except Exception as exc:
            raise StoreWriteFailed(f"upsert into {TABLE} failed") from exc
        return record

    def record(self, email: str, source: str, reason: str = DEFAULT_REASON) -> bool:
        """Record an opt-out. Never raises.

        Returns True when the row was written or storage is not configured,
        False when the write failed (the failure is logged).
        """
        if self.client is None:
            logger.debug("No storage configured; skipping suppression for %s", mask_email(email))
            return True
        try:
            self.upsert(email, source, reason)
        except StoreError:
            logger.exception("Suppression save failed for %s (source=%s)", mask_email(email), source)
            return False
        logger.info("Suppressed %s (source=%s)", mask_email(email), source)
        return True
