"""Tests for opaque tokens and signed session tokens."""

import base64
import json
import re

import pytest

from auth.tokens import (
    SessionTokenCodec,
    issue_reset_token,
    issue_token,
    issue_verification_token,
)

_URLSAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def _decode_opaque(token: str) -> str:
    return base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode()


class TestOpaqueTokens:
    def test_unique_over_many_samples(self):
        tokens = {issue_token("a@x.com") for _ in range(10_000)}
        assert len(tokens) == 10_000

    def test_url_safe_without_padding(self):
        for _ in range(50):
            assert _URLSAFE.match(issue_verification_token("a+b@x.com"))

    def test_verification_token_layout(self):
        email, timestamp, nonce = _decode_opaque(issue_verification_token("a@x.com")).split(":")
        assert email == "a@x.com"
        assert timestamp.isdigit()
        assert re.fullmatch(r"[0-9a-f]{64}", nonce)

    def test_reset_token_layout(self):
        parts = _decode_opaque(issue_reset_token("cus_1", "a@x.com")).split(":")
        assert parts[:2] == ["cus_1", "a@x.com"]
        assert len(parts) == 4


class TestSessionTokenCodec:
    def setup_method(self):
        self.codec = SessionTokenCodec("secret", ttl_seconds=3600)

    def test_issue_and_decode(self):
        token = self.codec.issue("cus_1", now=1_000)
        claims = self.codec.decode(token, now=1_001)

        assert claims.model_dump() == {
            "entity_id": "cus_1",
            "entity_type": "customer",
            "aud": "customer",
            "iat": 1_000,
            "exp": 4_600,
        }

    def test_expired_at_exp(self):
        token = self.codec.issue("cus_1", now=1_000)
        assert self.codec.decode(token, now=4_599) is not None
        assert self.codec.decode(token, now=4_600) is None

    def test_tampered_payload_rejected(self):
        token = self.codec.issue("cus_1", now=1_000)
        _, signature = token.split(".")
        forged = json.dumps(
            {"entity_id": "cus_2", "entity_type": "customer", "aud": "customer", "iat": 1_000, "exp": 4_600}
        ).encode()
        forged_token = base64.urlsafe_b64encode(forged).rstrip(b"=").decode() + "." + signature

        assert self.codec.decode(forged_token, now=1_001) is None

    def test_other_secret_rejected(self):
        token = SessionTokenCodec("other", ttl_seconds=3600).issue("cus_1", now=1_000)
        assert self.codec.decode(token, now=1_001) is None

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c", "!!!.sig", "e30.sig"])
    def test_malformed_rejected(self, token):
        assert self.codec.decode(token, now=1_001) is None

    def test_token_is_url_safe(self):
        encoded, signature = self.codec.issue("cus_1").split(".")
        assert _URLSAFE.match(encoded)
        assert re.fullmatch(r"[0-9a-f]{64}", signature)

    def test_empty_secret_refused(self):
        with pytest.raises(ValueError):
            SessionTokenCodec("", ttl_seconds=60)
