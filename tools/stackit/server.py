#!/usr/bin/env python3
"""StackIt auth server — entry point.

Opens the credential store once, wires it into the AuthService, and serves
the register/login API until SIGINT/SIGTERM.

Usage:
    stackit-server --config .stackit/config.json
    stackit-server --config .stackit/config.json --log-level DEBUG
    stackit-server --test-mode
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any

from stackit import events
from stackit.auth.passwords import PasswordHasher
from stackit.auth.service import AuthService
from stackit.auth.store import CredentialStore, StorageError
from stackit.config import DEFAULT_CONFIG_PATH, ConfigError, load_config
from stackit.web import AuthServer

logger = logging.getLogger("stackit.server")


def build_service(config: dict[str, Any], store: CredentialStore) -> AuthService:
    auth_config = config["auth"]
    jwt_secret = auth_config.get("jwt_secret", "")
    if not jwt_secret:
        logger.warning("auth.jwt_secret not configured, session tokens disabled")

    return AuthService(
        store,
        hasher=PasswordHasher(rounds=auth_config["bcrypt_rounds"]),
        jwt_secret=jwt_secret,
        token_expiry_hours=auth_config.get("token_expiry_hours", 24),
        timeout=auth_config["request_timeout"],
    )


async def run_server(config: dict[str, Any], test_mode: bool = False) -> int:
    """Main server coroutine.

    Args:
        config: Configuration dictionary
        test_mode: If True, validate config and exit without serving
    """
    events.configure(config.get("events", {}).get("path"))

    db_path = config["auth"]["db_path"]
    try:
        store = CredentialStore(db_path=db_path)
    except StorageError as e:
        logger.error(f"Credential store unavailable: {e}")
        return 1
    logger.info(f"CredentialStore initialized: {db_path}")

    try:
        service = build_service(config, store)
        server = AuthServer(config, service)

        if test_mode:
            print("StackIt auth server — test mode")
            print(f"  Store: {db_path} ({store.count()} identities)")
            print(f"  Listen: {server.host}:{server.port}")
            print(f"  Tokens: {'enabled' if service.tokens_enabled else 'disabled'}")
            print("Config valid. Exiting test mode.")
            return 0

        shutdown_event = asyncio.Event()

        def signal_handler():
            logger.info("Shutdown signal received")
            shutdown_event.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

        await server.start()
        events.log_event("server_started", port=server.port, db_path=db_path)
        try:
            await shutdown_event.wait()
        finally:
            logger.info("Shutting down...")
            await server.stop()
            events.log_event("server_stopped", port=server.port)
    finally:
        store.close()

    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="stackit-server",
        description="StackIt — register/login API",
    )
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help=f"Path to config.json (default: {DEFAULT_CONFIG_PATH} if present)",
    )
    parser.add_argument(
        "--test-mode",
        "-t",
        action="store_true",
        help="Validate config and exit without starting",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        return asyncio.run(run_server(config, test_mode=args.test_mode))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
