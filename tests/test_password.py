"""Tests for scrypt password hashing."""

import re

import pytest

from auth.password import hash_password, verify_password


class TestPasswordHashing:
    def test_round_trip(self):
        stored = hash_password("Pw1!")
        assert verify_password("Pw1!", stored)

    def test_wrong_password(self):
        assert not verify_password("Pw2!", hash_password("Pw1!"))

    def test_stored_form(self):
        stored = hash_password("Pw1!")
        assert re.fullmatch(r"[0-9a-f]{32}:[0-9a-f]{128}", stored)
        assert "Pw1!" not in stored

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_unicode_password(self):
        assert verify_password("pässwörd ✓", hash_password("pässwörd ✓"))

    @pytest.mark.parametrize(
        "stored",
        [
            "",
            "no-delimiter",
            "a:b:c",
            ":" + "00" * 64,
            "0011:zz",
            "0011:" + "00" * 10,
            None,
        ],
    )
    def test_malformed_stored_value_fails_closed(self, stored):
        assert verify_password("Pw1!", stored) is False
