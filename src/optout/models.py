from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Claim:
    """A verified unsubscribe claim.

    Only built by ``optout.tokens.verify_token`` once every check has passed.
    """

    email: str  # trimmed + lowercased
    exp: float  # Unix seconds
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialize to a JSON-friendly dict."""
        return {"email": self.email, "exp": self.exp, **self.extra}


@dataclass
class SuppressionRecord:
    """A row of the ``suppression`` table."""

    email: str
    source: str  # "one-click", "web", "admin", ...
    reason: str = "user-request"
    ts: datetime.datetime | None = None

    def to_row(self) -> dict:
        return {
            "email": self.email,
            "source": self.source,
            "reason": self.reason,
            "ts": self.ts.isoformat() if self.ts else None,
        }


def normalize_email(email: str) -> str:
    return email.strip().lower()
