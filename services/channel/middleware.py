"""Middleware for Channel Service."""

import base64
import json
import logging
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


def decode_token_subject(token: str) -> str:
    """Return the ``sub`` claim of a JWT without verifying its signature.

    Raises:
        ValueError: if the token is malformed or carries no subject
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError("Invalid token format")

    payload = parts[1]
    payload += "=" * (-len(payload) % 4)
    try:
        payload_data = json.loads(base64.urlsafe_b64decode(payload))
    except (ValueError, TypeError) as e:
        raise ValueError(f"Undecodable token payload: {e}") from e

    subject = payload_data.get("sub") if isinstance(payload_data, dict) else None
    if not subject:
        raise ValueError("Missing user ID in token")
    return str(subject)


class AuthMiddleware(BaseHTTPMiddleware):
    """Attach the caller's Keycloak id to ``request.state.user_id``.

    Tokens are verified by the auth proxy in front of this service, so only
    the payload is decoded here.
    """

    PUBLIC_PATHS = ["/", "/health", "/health/ready", "/docs", "/redoc", "/openapi.json"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.PUBLIC_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return self._unauthorized("Missing Authorization header")

        try:
            scheme, token = auth_header.split()
        except ValueError:
            return self._unauthorized("Invalid Authorization header format")
        if scheme.lower() != "bearer":
            return self._unauthorized("Invalid authentication scheme")

        try:
            request.state.user_id = decode_token_subject(token)
        except ValueError as e:
            logger.warning(f"Rejected bearer token: {e}")
            return self._unauthorized("Invalid token")

        return await call_next(request)

    @staticmethod
    def _unauthorized(detail: str) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": detail},
        )
