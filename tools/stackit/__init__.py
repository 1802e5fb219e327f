"""
StackIt — Authentication backend for the StackIt Q&A site.

The browser client keeps questions, answers and votes locally; this package
is the server side: account registration and login.

Architecture:
    Client → AuthServer (aiohttp) → AuthService → CredentialStore (SQLite)

Components:
    - CredentialStore: Identity records keyed by a unique email
    - AuthService: register/login pipeline returning explicit AuthResults
    - AuthServer: JSON API at /api/auth/register and /api/auth/login
    - events: JSONL audit trail of auth outcomes

Usage:
    stackit-server --config .stackit/config.json
    stackit-manage add-user --username alice --email a@x.com
"""

__version__ = "0.1.0"
