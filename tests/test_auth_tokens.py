#!/usr/bin/env python3
"""Unit tests for JWT session tokens."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from stackit.auth import tokens

SECRET = "test-secret-with-enough-length-for-hs256"


class TestTokens:
    def test_round_trip(self):
        token = tokens.create_token("user-1", "a@x.com", SECRET)
        assert tokens.verify_token(token, SECRET) == {
            "identity_id": "user-1",
            "email": "a@x.com",
        }

    def test_wrong_secret(self):
        token = tokens.create_token("user-1", "a@x.com", SECRET)
        assert tokens.verify_token(token, SECRET + "-other") is None

    def test_expired(self):
        token = tokens.create_token("user-1", "a@x.com", SECRET, expiry_hours=-1)
        assert tokens.verify_token(token, SECRET) is None

    def test_expiry_claim(self):
        token = tokens.create_token("user-1", "a@x.com", SECRET, expiry_hours=2)
        payload = jwt.decode(
            token, SECRET, algorithms=["HS256"], audience=tokens.AUDIENCE
        )
        exp = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        remaining = exp - datetime.now(timezone.utc)
        assert timedelta(hours=1, minutes=59) < remaining <= timedelta(hours=2)

    def test_malformed(self):
        assert tokens.verify_token("not.a.token", SECRET) is None
        assert tokens.verify_token("", SECRET) is None

    def test_missing_claims(self):
        token = jwt.encode({"sub": "user-1"}, SECRET, algorithm="HS256")
        assert tokens.verify_token(token, SECRET) is None

    def test_scoped_to_issuer_and_audience(self):
        token = tokens.create_token("user-1", "a@x.com", SECRET)
        claims = jwt.decode(
            token, SECRET, algorithms=["HS256"], audience="stackit-web"
        )
        assert claims["iss"] == "stackit-auth"
        assert claims["aud"] == "stackit-web"
        assert claims["sub"] == "user-1"

    def test_foreign_issuer_rejected(self):
        """Same secret, different issuer: not one of ours."""
        now = datetime.now(timezone.utc)
        foreign = jwt.encode(
            {
                "iss": "someone-else",
                "aud": tokens.AUDIENCE,
                "sub": "user-1",
                "email": "a@x.com",
                "exp": now + timedelta(hours=1),
            },
            SECRET,
            algorithm="HS256",
        )
        assert tokens.verify_token(foreign, SECRET) is None

    def test_foreign_audience_rejected(self):
        now = datetime.now(timezone.utc)
        foreign = jwt.encode(
            {
                "iss": tokens.ISSUER,
                "aud": "admin-dashboard",
                "sub": "user-1",
                "email": "a@x.com",
                "exp": now + timedelta(hours=1),
            },
            SECRET,
            algorithm="HS256",
        )
        assert tokens.verify_token(foreign, SECRET) is None

    def test_missing_expiry_rejected(self):
        token = jwt.encode(
            {"iss": tokens.ISSUER, "aud": tokens.AUDIENCE, "sub": "user-1", "email": "a@x.com"},
            SECRET,
            algorithm="HS256",
        )
        assert tokens.verify_token(token, SECRET) is None
