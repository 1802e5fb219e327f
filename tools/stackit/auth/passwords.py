"""bcrypt password hashing with a tunable cost factor."""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 10

# bcrypt only looks at the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted one-way hashing and verification of plaintext passwords.

    Args:
        rounds: bcrypt cost factor (log2 of the iteration count), 4-31.
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds
        self._dummy_hash: bytes | None = None

    @staticmethod
    def _encode(password: str) -> bytes | None:
        try:
            return password.encode("utf-8")
        except UnicodeEncodeError:
            return None

    def hash(self, password: str) -> str:
        """Return a bcrypt hash string with a fresh random salt."""
        return bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a plaintext password against a stored bcrypt hash."""
        pw = self._encode(password)
        if pw is None or len(pw) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(pw, password_hash.encode("utf-8"))
        except ValueError:
            return False

    def burn(self, password: str) -> None:
        """Spend the cost of one verification without a real hash.

        Used when the account does not exist so the response time matches
        a password mismatch.
        """
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"dummy", bcrypt.gensalt(rounds=self.rounds))
        pw = self._encode(password) or b"dummy"
        try:
            bcrypt.checkpw(pw[:MAX_PASSWORD_BYTES], self._dummy_hash)
        except ValueError:
            pass
