"""Application factory for the Auth0 portal."""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .auth0 import AuthenticationClient, ManagementClient
from .config import Auth0Settings, load_settings, resolve_public_path
from .database import Database, resolve_database_path
from .models import ProfileSource
from .sessions import SessionGuard
from .web import register_ui_routes

logger = logging.getLogger("portal.service")

SESSION_COOKIE_NAME = "portal_session"
SESSION_MAX_AGE = 60 * 60 * 24 * 7


def _use_secure_cookies() -> bool:
    raw = os.getenv("PORTAL_SESSION_SECURE")
    if raw is None:
        return False
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _trusted_proxy_hosts() -> list[str] | str:
    raw = os.getenv("PORTAL_TRUSTED_PROXIES")
    if not raw:
        return "*"
    hosts = [item.strip() for item in raw.split(",") if item.strip()]
    return hosts or "*"


def create_app(
    *,
    database: Optional[Database] = None,
    settings: Optional[Auth0Settings] = None,
    management: Optional[ProfileSource] = None,
    authentication: Optional[AuthenticationClient] = None,
    session_secret: Optional[str] = None,
    public_path: Optional[str] = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the portal."""

    if database is None:
        database = Database(resolve_database_path(os.getenv("PORTAL_DB_PATH")))
    database.initialize()

    if session_secret is None:
        session_secret = os.getenv("PORTAL_SESSION_SECRET")
    if not session_secret:
        raise RuntimeError("PORTAL_SESSION_SECRET must be configured to use the portal")

    if settings is None and (management is None or authentication is None):
        settings = load_settings()
    if management is None:
        management = ManagementClient.from_settings(settings)
    if authentication is None:
        authentication = AuthenticationClient.from_settings(settings)

    if public_path is None:
        public_path = resolve_public_path(os.getenv("PORTAL_PUBLIC_PATH"))

    app = FastAPI(
        title="Auth0 Portal",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=_trusted_proxy_hosts())

    secure_cookies = _use_secure_cookies()
    if not secure_cookies:
        logger.warning(
            "Session cookies are not marked as secure. Only disable secure cookies for"
            " local development."
        )
    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        session_cookie=SESSION_COOKIE_NAME,
        https_only=secure_cookies,
        same_site="lax",
        max_age=SESSION_MAX_AGE,
    )

    guard = SessionGuard(database, management=management, public_path=public_path)

    app.state.database = database
    app.state.guard = guard
    app.state.management = management
    app.state.authentication = authentication

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    register_ui_routes(
        app,
        database,
        guard=guard,
        authentication=authentication,
        callback_url=settings.callback_url if settings is not None else None,
    )

    return app


__all__ = ["create_app", "SESSION_COOKIE_NAME"]
