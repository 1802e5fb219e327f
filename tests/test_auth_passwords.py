#!/usr/bin/env python3
"""Unit tests for bcrypt password hashing."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from stackit.auth.passwords import DEFAULT_ROUNDS, PasswordHasher


class TestPasswordHasher:
    def test_default_rounds(self):
        assert PasswordHasher().rounds == DEFAULT_ROUNDS == 10

    def test_rejects_out_of_range_rounds(self):
        with pytest.raises(ValueError):
            PasswordHasher(rounds=3)
        with pytest.raises(ValueError):
            PasswordHasher(rounds=32)

    def test_hash_is_not_plaintext(self):
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("Secret123")
        assert "Secret123" not in hashed
        assert hashed.startswith("$2")

    def test_hash_encodes_cost_factor(self):
        hashed = PasswordHasher(rounds=5).hash("Secret123")
        assert hashed.split("$")[2] == "05"

    def test_verify(self):
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("Secret123")
        assert hasher.verify("Secret123", hashed) is True
        assert hasher.verify("wrong", hashed) is False

    def test_same_password_hashes_differently(self):
        """Fresh salt per hash: identical plaintexts never share a hash."""
        hasher = PasswordHasher(rounds=4)
        a = hasher.hash("Secret123")
        b = hasher.hash("Secret123")
        assert a != b
        assert hasher.verify("Secret123", a)
        assert hasher.verify("Secret123", b)

    def test_verify_across_cost_factors(self):
        hashed = PasswordHasher(rounds=5).hash("Secret123")
        assert PasswordHasher(rounds=4).verify("Secret123", hashed) is True

    def test_verify_garbage_hash(self):
        assert PasswordHasher(rounds=4).verify("Secret123", "not-a-hash") is False

    def test_verify_overlong_password(self):
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("a" * 72)
        assert hasher.verify("a" * 73, hashed) is False

    def test_unicode_password(self):
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("pässwörd-秘密")
        assert hasher.verify("pässwörd-秘密", hashed) is True
        assert hasher.verify("passwort-秘密", hashed) is False

    def test_burn_does_not_raise(self):
        hasher = PasswordHasher(rounds=4)
        hasher.burn("anything")
        hasher.burn("x" * 200)

    def test_verify_unencodable_password_is_mismatch(self):
        """A lone surrogate cannot be UTF-8 encoded; treated as a wrong password."""
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("Secret123")
        assert hasher.verify("Secret123\ud800", hashed) is False

    def test_burn_unencodable_password(self):
        PasswordHasher(rounds=4).burn("abcdefgh\ud800")
