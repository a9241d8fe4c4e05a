"""FastAPI dependencies resolving the per-app component instances."""

import secrets

from fastapi import Depends, Request
from structlog import get_logger

from ..config import Settings
from ..domain.exceptions import Unauthorized
from ..repositories.base import Repository
from ..services.gateway import ChatGateway
from .rate_limiter import RateLimiter

logger = get_logger()


def get_settings(request: Request) -> Settings:
    """Returns the settings the app was built with"""
    return request.app.state.settings


def get_repository(request: Request) -> Repository:
    """Returns the chat storage instance"""
    return request.app.state.repository


def get_rate_limiter(request: Request) -> RateLimiter:
    """Returns the rate limiting service"""
    return request.app.state.rate_limiter


def get_gateway(request: Request) -> ChatGateway:
    """Returns the chat turn orchestrator"""
    return request.app.state.gateway


async def require_admin(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """Validate ``Authorization: Bearer <admin token>``.

    The comparison is constant-time. With no admin token configured every
    request is rejected.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise Unauthorized("Unauthorized access")

    token = auth_header.removeprefix("Bearer ").strip()
    expected = settings.admin_token
    if not expected or not secrets.compare_digest(token.encode(), expected.encode()):
        logger.warning("admin_auth_failed", path=request.url.path)
        raise Unauthorized("Unauthorized access")
