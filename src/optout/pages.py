"""Masked-email display helpers for the unsubscribe confirmation."""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def mask_email(email: str) -> str:
    """Hide most of the local part: 'jane@example.com' -> 'ja***@example.com'.

    For display only. Input without '@' is returned unchanged.
    """
    local, sep, domain = str(email).partition("@")
    if not sep:
        return email
    if len(local) <= 2:
        return f"{local[:1]}***@{domain}"
    return f"{local[:2]}***@{domain}"


def redirect_url(base: str, masked_email: str) -> str:
    """Add ``status=success`` and ``email=<masked>`` to the redirect target."""
    parts = urlsplit(base)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in ("status", "email")]
    query += [("status", "success"), ("email", masked_email)]
    return urlunsplit(parts._replace(query=urlencode(query)))
