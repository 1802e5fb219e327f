"""
StackIt Auth — Credential storage and the register/login contract.

Provides a SQLite-backed credential store keyed by email, bcrypt password
hashing, optional JWT session tokens, and the AuthService that ties them
together.

Usage:
    from stackit.auth import AuthService, CredentialStore

    store = CredentialStore(db_path=".stackit/users.db")
    service = AuthService(store)
    result = await service.register("alice", "a@x.com", "Secret123")
    result.body()  # {"user": {"id": ..., "username": "alice", "email": "a@x.com"}}
"""

from .passwords import PasswordHasher
from .service import AuthErrorKind, AuthResult, AuthService
from .store import CredentialStore, DuplicateEmailError, Identity, StorageError

__all__ = [
    "AuthErrorKind",
    "AuthResult",
    "AuthService",
    "CredentialStore",
    "DuplicateEmailError",
    "Identity",
    "PasswordHasher",
    "StorageError",
]
