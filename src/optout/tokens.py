"""HMAC-signed unsubscribe token decoding and verification.

Wire format (before URL-safe base64)::

    payload_bytes || b"." || HMAC-SHA256(secret, payload_bytes)

``payload_bytes`` is a UTF-8 JSON object holding at least ``email`` and
``exp`` (Unix seconds). Verification is pure: no I/O, no logging.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import math
import numbers
import time

from optout.errors import (
    MalformedToken,
    MissingToken,
    PayloadInvalid,
    SignatureInvalid,
    TokenExpired,
)
from optout.models import Claim, normalize_email

SEPARATOR = 0x2E  # "."
SIGNATURE_SIZE = hashlib.sha256().digest_size  # 32
MIN_TOKEN_SIZE = SIGNATURE_SIZE + 1


def _as_bytes(secret: bytes | str) -> bytes:
    if isinstance(secret, str):
        return secret.encode()
    return secret


def b64url_decode(value: str) -> bytes:
    """Decode URL-safe base64, restoring any stripped ``=`` padding."""
    pad = (4 - len(value) % 4) % 4
    std = value.replace("-", "+").replace("_", "/") + "=" * pad
    return base64.b64decode(std, validate=True)


def sign(payload: bytes, secret: bytes | str) -> bytes:
    return hmac.new(_as_bytes(secret), payload, hashlib.sha256).digest()


def decode_token(token: str) -> tuple[bytes, bytes]:
    """Split a token into ``(payload, signature)``.

    Raises:
        MalformedToken: bad base64, too short, or the separator byte is wrong.
    """
    try:
        raw = b64url_decode(token)
    except (binascii.Error, ValueError) as exc:
        raise MalformedToken("token is not valid base64") from exc

    if len(raw) < MIN_TOKEN_SIZE:
        raise MalformedToken("token too short")

    signature = raw[-SIGNATURE_SIZE:]
    if raw[-MIN_TOKEN_SIZE] != SEPARATOR:
        raise MalformedToken("separator byte missing")
    return raw[:-MIN_TOKEN_SIZE], signature


def _parse_exp(value) -> float:
    # bool is a numbers.Number subclass; JSON true/false is never an expiry
    if isinstance(value, bool):
        raise PayloadInvalid("exp is not a timestamp")
    if not isinstance(value, (numbers.Real, str)):
        raise PayloadInvalid("exp is not a timestamp")
    try:
        exp = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError) as exc:
        raise PayloadInvalid("exp is not a timestamp") from exc
    # json.loads accepts NaN and Infinity; 1e400 also becomes inf
    if not math.isfinite(exp):
        raise PayloadInvalid("exp is not a timestamp")
    return exp


def parse_claim(payload: bytes) -> tuple[str, float, dict]:
    """Parse the payload into ``(raw_email, exp, extra_fields)``."""
    try:
        doc = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise PayloadInvalid("payload is not JSON") from exc

    if not isinstance(doc, dict):
        raise PayloadInvalid("payload is not an object")

    email = doc.get("email")
    exp = doc.get("exp")
    if not email or not exp:
        raise PayloadInvalid("email and exp are required")
    if not isinstance(email, str) or not email.strip():
        raise PayloadInvalid("email is not a string")

    extra = {k: v for k, v in doc.items() if k not in ("email", "exp")}
    return email, _parse_exp(exp), extra


def verify_token(token: str | None, secret: bytes | str, now: float | None = None) -> Claim:
    """Verify an unsubscribe token and return its claim.

    Checks run in order and the first failure is raised: presence, base64,
    length, separator, signature, payload shape, expiry.

    Args:
        token: URL-safe base64 token from the unsubscribe link.
        secret: Shared HMAC secret.
        now: Current Unix time in seconds (defaults to ``time.time()``).

    Returns:
        A ``Claim`` with the normalized email.

    Raises:
        TokenError: one of its subclasses, carrying the client-facing reason.
    """
    if not token:
        raise MissingToken()

    payload, signature = decode_token(token)

    # compare_digest rejects differing lengths and never short-circuits on content
    if not hmac.compare_digest(sign(payload, secret), signature):
        raise SignatureInvalid()

    email, exp, extra = parse_claim(payload)

    if now is None:
        now = time.time()
    if now > exp:
        raise TokenExpired()

    return Claim(email=normalize_email(email), exp=exp, extra=extra)
