"""Register/login orchestration over an injected CredentialStore."""

from __future__ import annotations

import asyncio
import enum
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from stackit import events

from . import tokens
from .passwords import MAX_PASSWORD_BYTES, PasswordHasher
from .store import CredentialStore, DuplicateEmailError, Identity, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 10.0

MAX_USERNAME_LENGTH = 32
MAX_EMAIL_LENGTH = 254
MIN_PASSWORD_LENGTH = 8

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthErrorKind(enum.Enum):
    """Failure kinds surfaced to clients, with their HTTP status and message."""

    INVALID_INPUT = (400, None)
    DUPLICATE_ACCOUNT = (400, "User already exists")
    INVALID_CREDENTIALS = (400, "Invalid credentials")
    UNAUTHORIZED = (401, "Unauthorized")
    SERVER_ERROR = (500, "Server error")

    @property
    def status(self) -> int:
        return self.value[0]

    @property
    def default_message(self) -> Optional[str]:
        return self.value[1]


@dataclass
class AuthResult:
    """Outcome of an auth operation.

    Exactly one of ``identity`` and ``error`` is set.
    """

    identity: Optional[Identity] = None
    error: Optional[AuthErrorKind] = None
    message: str = ""
    token: Optional[str] = None

    @classmethod
    def success(cls, identity: Identity, token: Optional[str] = None) -> "AuthResult":
        return cls(identity=identity, token=token)

    @classmethod
    def failure(cls, kind: AuthErrorKind, message: Optional[str] = None) -> "AuthResult":
        return cls(error=kind, message=message or kind.default_message or "")

    @property
    def ok(self) -> bool:
        return self.error is None

    def body(self) -> dict[str, Any]:
        """JSON body for the client. Never includes the password hash."""
        if self.error is not None:
            return {"message": self.message}
        body: dict[str, Any] = {"user": self.identity.public_view()}
        if self.token:
            body["token"] = self.token
        return body


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_encodable(value: str) -> bool:
    """False for strings holding lone surrogates, which JSON can carry but UTF-8 cannot."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def validate_registration(username: str, email: str, password: str) -> Optional[str]:
    """Return a human-readable problem with the input, or None if it is acceptable."""
    if not is_encodable(username):
        return "Invalid username"
    if not is_encodable(email):
        return "Invalid email address"
    if not is_encodable(password) or "\0" in password:
        return "Invalid password"
    if not username or len(username) > MAX_USERNAME_LENGTH:
        return f"Username must be 1-{MAX_USERNAME_LENGTH} characters"
    if len(email) > MAX_EMAIL_LENGTH or not _EMAIL_RE.match(email):
        return "Invalid email address"
    pw_bytes = len(password.encode("utf-8"))
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if pw_bytes > MAX_PASSWORD_BYTES:
        return f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
    return None


class AuthService:
    """Stateless register/login pipeline over a CredentialStore.

    Store access and bcrypt work run in worker threads, each call bounded by
    ``timeout`` seconds. Every failure is mapped to an :class:`AuthErrorKind`;
    nothing raises past ``register``/``login``.

    Args:
        store: Credential store handle, opened and closed by the caller.
        hasher: Password hasher (default: bcrypt at 10 rounds).
        jwt_secret: When set, successful register/login results carry a
                    signed session token.
        token_expiry_hours: JWT token validity duration in hours.
        timeout: Per-step timeout in seconds for blocking work.
    """

    def __init__(
        self,
        store: CredentialStore,
        hasher: Optional[PasswordHasher] = None,
        jwt_secret: str = "",
        token_expiry_hours: int = 24,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.store = store
        self.hasher = hasher or PasswordHasher()
        self._jwt_secret = jwt_secret
        self._token_expiry_hours = token_expiry_hours
        self.timeout = timeout

    @property
    def tokens_enabled(self) -> bool:
        return bool(self._jwt_secret)

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args), self.timeout)

    def _issue_token(self, identity: Identity) -> Optional[str]:
        if not self.tokens_enabled:
            return None
        return tokens.create_token(
            identity.id, identity.email, self._jwt_secret, self._token_expiry_hours
        )

    async def register(self, username: str, email: str, password: str) -> AuthResult:
        username = username.strip()
        email = normalize_email(email)

        problem = validate_registration(username, email, password)
        if problem:
            return AuthResult.failure(AuthErrorKind.INVALID_INPUT, problem)

        try:
            if await self._run(self.store.find_by_email, email) is not None:
                events.log_event("auth_register_duplicate", email=email)
                return AuthResult.failure(AuthErrorKind.DUPLICATE_ACCOUNT)

            password_hash = await self._run(self.hasher.hash, password)
            identity = await self._run(
                self.store.create, username, email, password_hash
            )
        except DuplicateEmailError:
            # lost a race against a concurrent registration
            events.log_event("auth_register_duplicate", email=email)
            return AuthResult.failure(AuthErrorKind.DUPLICATE_ACCOUNT)
        except Exception as e:
            return self._server_error("register", e)

        logger.info(f"Registered {identity.id}")
        events.log_event(
            "auth_register_success", identity_id=identity.id, email=identity.email
        )
        return AuthResult.success(identity, self._issue_token(identity))

    async def login(self, email: str, password: str) -> AuthResult:
        email = normalize_email(email)
        try:
            # an email that cannot be stored cannot match any identity
            if is_encodable(email):
                identity = await self._run(self.store.find_by_email, email)
            else:
                identity = None
            if identity is None:
                await self._run(self.hasher.burn, password)
                matched = False
            else:
                matched = await self._run(
                    self.hasher.verify, password, identity.password_hash
                )
        except Exception as e:
            return self._server_error("login", e)

        if not matched:
            events.log_event("auth_login_failed", email=email)
            return AuthResult.failure(AuthErrorKind.INVALID_CREDENTIALS)

        events.log_event("auth_login_success", identity_id=identity.id, email=email)
        return AuthResult.success(identity, self._issue_token(identity))

    async def resolve_token(self, token: str) -> AuthResult:
        """Map a session token back to its identity."""
        if not self.tokens_enabled or not token:
            return AuthResult.failure(AuthErrorKind.UNAUTHORIZED)
        claims = tokens.verify_token(token, self._jwt_secret)
        if claims is None:
            return AuthResult.failure(AuthErrorKind.UNAUTHORIZED)
        try:
            identity = await self._run(self.store.get_by_id, claims["identity_id"])
        except Exception as e:
            return self._server_error("resolve_token", e)
        # a token is bound to the email it was issued for
        if identity is None or identity.email != claims["email"]:
            return AuthResult.failure(AuthErrorKind.UNAUTHORIZED)
        return AuthResult.success(identity)

    def _server_error(self, operation: str, exc: BaseException) -> AuthResult:
        if isinstance(exc, asyncio.TimeoutError):
            logger.error(f"{operation} timed out after {self.timeout}s")
        elif isinstance(exc, StorageError):
            logger.error(f"{operation} storage failure: {exc}")
        else:
            logger.error(f"{operation} failed: {exc}", exc_info=exc)
        events.log_event(
            "auth_server_error", operation=operation, error=type(exc).__name__
        )
        return AuthResult.failure(AuthErrorKind.SERVER_ERROR)
