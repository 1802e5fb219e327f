"""AuthServer - aiohttp JSON API in front of the AuthService."""

import json
import logging
from typing import Any

import jsonschema
from aiohttp import web

from stackit.auth.service import AuthResult, AuthService

logger = logging.getLogger(__name__)

REGISTER_SCHEMA = {
    "type": "object",
    "required": ["username", "email", "password"],
    "properties": {
        "username": {"type": "string", "maxLength": 256},
        "email": {"type": "string", "maxLength": 512},
        "password": {"type": "string", "maxLength": 1024},
    },
}

LOGIN_SCHEMA = {
    "type": "object",
    "required": ["email", "password"],
    "properties": {
        "email": {"type": "string", "maxLength": 512},
        "password": {"type": "string", "maxLength": 1024},
    },
}

DEFAULT_CORS_ORIGINS = ["http://localhost:8080"]


class BadRequest(Exception):
    """Request body is not JSON or does not match the endpoint schema."""


async def read_body(request: web.Request, schema: dict[str, Any]) -> dict[str, Any]:
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadRequest(f"malformed JSON: {e}") from e
    try:
        jsonschema.validate(data, schema)
    except jsonschema.ValidationError as e:
        raise BadRequest(e.message) from e
    return data


def result_response(result: AuthResult, success_status: int = 200) -> web.Response:
    status = success_status if result.ok else result.error.status
    return web.json_response(result.body(), status=status)


def cors_middleware(allowed_origins: list[str]):
    allowed = set(allowed_origins)

    def add_headers(headers, origin: str | None) -> None:
        if origin and (origin in allowed or "*" in allowed):
            headers["Access-Control-Allow-Origin"] = origin
            headers["Access-Control-Allow-Credentials"] = "true"
            headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
            headers["Vary"] = "Origin"

    @web.middleware
    async def middleware(request: web.Request, handler):
        origin = request.headers.get("Origin")
        if request.method == "OPTIONS":
            response = web.Response(status=204)
        else:
            try:
                response = await handler(request)
            except web.HTTPException as exc:
                # 404/405 and other raised statuses must stay readable cross-origin
                add_headers(exc.headers, origin)
                raise
        add_headers(response.headers, origin)
        return response

    return middleware


class AuthServer:
    """HTTP front end for register/login.

    Routes:
        POST /api/auth/register
        POST /api/auth/login
        GET  /api/auth/me      (Bearer token; only when tokens are enabled)
        GET  /health

    Config keys:
        host (str): Bind address (default: 0.0.0.0)
        port (int): Listen port (default: 5000)
        cors_origins (list[str]): Origins allowed to call the API
    """

    def __init__(self, config: dict[str, Any], service: AuthService):
        if service is None:
            raise ValueError("AuthServer requires an AuthService instance")
        self.service = service
        self.host = config.get("host", "0.0.0.0")
        self.port = config.get("port", 5000)
        self.cors_origins = list(config.get("cors_origins", DEFAULT_CORS_ORIGINS))
        self.app = None
        self.runner = None
        self.site = None

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[cors_middleware(self.cors_origins)])
        app.router.add_post("/api/auth/register", self.handle_register)
        app.router.add_post("/api/auth/login", self.handle_login)
        app.router.add_get("/api/auth/me", self.handle_me)
        app.router.add_get("/health", self.handle_health)
        return app

    async def start(self) -> None:
        """Start aiohttp web server."""
        self.app = self.build_app()
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()
        logger.info(f"AuthServer listening on {self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop web server gracefully."""
        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()
        logger.info("AuthServer stopped")

    async def handle_register(self, request: web.Request) -> web.Response:
        try:
            data = await read_body(request, REGISTER_SCHEMA)
        except BadRequest as e:
            logger.debug(f"Rejected register body from {request.remote}: {e}")
            return web.json_response({"message": "Invalid request body"}, status=400)

        result = await self.service.register(
            data["username"], data["email"], data["password"]
        )
        if not result.ok:
            logger.info(f"Register rejected ({result.error.name}) from {request.remote}")
        return result_response(result, success_status=201)

    async def handle_login(self, request: web.Request) -> web.Response:
        try:
            data = await read_body(request, LOGIN_SCHEMA)
        except BadRequest as e:
            logger.debug(f"Rejected login body from {request.remote}: {e}")
            return web.json_response({"message": "Invalid request body"}, status=400)

        result = await self.service.login(data["email"], data["password"])
        if not result.ok:
            logger.info(f"Login rejected ({result.error.name}) from {request.remote}")
        return result_response(result)

    async def handle_me(self, request: web.Request) -> web.Response:
        if not self.service.tokens_enabled:
            raise web.HTTPNotFound()
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer":
            token = ""
        result = await self.service.resolve_token(token.strip())
        return result_response(result)

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "healthy"})
