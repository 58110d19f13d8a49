"""
Token minting and session-token verification.

Two kinds of token live here:

* **Opaque tokens** (email verification, password reset) — context fields,
  a millisecond timestamp and 32 random bytes joined with ``:`` and
  base64url-encoded without padding.  They are never parsed back; the
  customer record that stores one is the only thing that gives it meaning.
* **Session tokens** — a base64url JSON payload followed by ``.`` and an
  HMAC-SHA256 signature (hex).  Secret and lifetime come from
  ``config.session_secret`` / ``config.session_expiry_seconds``.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import secrets
import time
from typing import Optional

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

SUBJECT_TYPE = "customer"
AUDIENCE = "customer"


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _b64decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def issue_token(*context: str) -> str:
    """Mint an opaque, URL-safe token bound to ``context`` (e.g. an email)."""
    parts = [*context, str(int(time.time() * 1000)), secrets.token_hex(32)]
    return _b64encode(":".join(parts).encode())


def issue_verification_token(email: str) -> str:
    return issue_token(email)


def issue_reset_token(customer_id: str, email: str) -> str:
    return issue_token(customer_id, email)


class SessionClaims(BaseModel):
    entity_id: str
    entity_type: str
    aud: str
    iat: int
    exp: int


class SessionTokenCodec:
    """Create and verify signed customer session tokens."""

    def __init__(self, secret: str, ttl_seconds: int) -> None:
        if not secret:
            raise ValueError("session secret must not be empty")
        self._secret = secret.encode()
        self._ttl = ttl_seconds

    def _sign(self, raw: bytes) -> str:
        return hmac.new(self._secret, raw, hashlib.sha256).hexdigest()

    def issue(self, customer_id: str, now: Optional[int] = None) -> str:
        iat = int(time.time()) if now is None else now
        claims = SessionClaims(
            entity_id=customer_id,
            entity_type=SUBJECT_TYPE,
            aud=AUDIENCE,
            iat=iat,
            exp=iat + self._ttl,
        )
        raw = json.dumps(claims.model_dump(), separators=(",", ":")).encode()
        return _b64encode(raw) + "." + self._sign(raw)

    def decode(self, token: str, now: Optional[int] = None) -> Optional[SessionClaims]:
        """
        Return the claims of a valid token, or ``None``.

        Malformed, tampered and expired tokens all come back as ``None``;
        the distinction is only logged.
        """
        try:
            encoded, signature = token.split(".")
            raw = _b64decode(encoded)
            claims = SessionClaims.model_validate_json(raw)
        except (ValueError, AttributeError, binascii.Error, ValidationError) as exc:
            logger.info("Rejected malformed session token: %s", exc)
            return None

        if not hmac.compare_digest(signature, self._sign(raw)):
            logger.warning("Rejected session token with bad signature for %s", claims.entity_id)
            return None
        if claims.entity_type != SUBJECT_TYPE or claims.aud != AUDIENCE:
            logger.warning("Rejected session token for audience %r", claims.aud)
            return None

        current = int(time.time()) if now is None else now
        if claims.exp <= current:
            logger.info("Rejected expired session token for %s", claims.entity_id)
            return None
        return claims
