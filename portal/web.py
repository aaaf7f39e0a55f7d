"""Web interface for the Auth0 portal."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import anyio
from fastapi import APIRouter, FastAPI, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from .auth0 import Auth0Error, AuthenticationClient
from .database import Database
from .sessions import InvalidIdentityAssertion, LoginRequired, SessionGuard

logger = logging.getLogger("portal.web")

STATE_SESSION_KEY = "auth0_state"

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent / "static"


def _template_environment() -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))
    templates.env.filters["format_datetime"] = _format_datetime
    templates.env.globals["now"] = datetime.now
    return templates


def _format_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%d %b %Y • %H:%M %Z")


def register_ui_routes(
    app: FastAPI,
    database: Database,
    *,
    guard: SessionGuard,
    authentication: AuthenticationClient,
    callback_url: Optional[str] = None,
) -> None:
    """Expose the HTML pages and the Auth0 login hand-off on ``app``."""

    templates = _template_environment()
    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    router = APIRouter(include_in_schema=False)

    def _callback_url(request: Request) -> str:
        return callback_url or str(request.url_for("auth0_callback"))

    def _redirect_to_failure(request: Request, message: str) -> RedirectResponse:
        target = request.url_for("auth0_failure").include_query_params(message=message)
        return RedirectResponse(str(target), status_code=status.HTTP_303_SEE_OTHER)

    @router.get("/", name="root")
    async def root(request: Request):
        if guard.is_authenticated(request.session):
            return RedirectResponse(
                request.url_for("dashboard_show"),
                status_code=status.HTTP_303_SEE_OTHER,
            )
        return RedirectResponse(guard.public_path, status_code=status.HTTP_303_SEE_OTHER)

    @router.get("/public_pages/home", response_class=HTMLResponse, name="public_pages_home")
    async def public_home(request: Request):
        return templates.TemplateResponse(
            request,
            "home.html",
            {"signed_in": guard.is_authenticated(request.session)},
        )

    @router.get("/auth0/login", name="auth0_login")
    async def auth0_login(request: Request):
        state = secrets.token_urlsafe(24)
        request.session[STATE_SESSION_KEY] = state
        return RedirectResponse(
            authentication.authorize_url(_callback_url(request), state),
            status_code=status.HTTP_303_SEE_OTHER,
        )

    @router.get("/auth0/callback", name="auth0_callback")
    async def auth0_callback(
        request: Request,
        code: Optional[str] = None,
        state: Optional[str] = None,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ):
        if error:
            logger.warning("Auth0 reported a login error: %s", error)
            return _redirect_to_failure(request, error_description or error)

        expected_state = request.session.pop(STATE_SESSION_KEY, None)
        if not code or not state or not expected_state or not secrets.compare_digest(state, expected_state):
            logger.warning("Rejected Auth0 callback with a missing or mismatched state")
            return _redirect_to_failure(request, "Your login session expired. Please try again.")

        redirect_uri = _callback_url(request)
        try:
            tokens = await anyio.to_thread.run_sync(authentication.exchange_code, code, redirect_uri)
            userinfo = await anyio.to_thread.run_sync(authentication.userinfo, tokens["access_token"])
            assertion = guard.sign_in(request.session, userinfo)
        except Auth0Error as exc:
            logger.warning("Auth0 login failed: %s", exc)
            return _redirect_to_failure(request, exc.message)
        except InvalidIdentityAssertion as exc:
            logger.warning("Auth0 login returned an unusable profile: %s", exc)
            return _redirect_to_failure(request, str(exc))

        existing = await anyio.to_thread.run_sync(database.get_user_by_uid, assertion["uid"])
        if existing is not None:
            await anyio.to_thread.run_sync(database.touch_user, existing.id)

        return RedirectResponse(
            request.url_for("dashboard_show"),
            status_code=status.HTTP_303_SEE_OTHER,
        )

    @router.get("/auth0/failure", response_class=HTMLResponse, name="auth0_failure")
    async def auth0_failure(request: Request, message: Optional[str] = None):
        return templates.TemplateResponse(
            request,
            "failure.html",
            {"message": message or "Authentication failed."},
        )

    @router.get("/dashboard/show", response_class=HTMLResponse, name="dashboard_show")
    async def dashboard_show(request: Request):
        result = await anyio.to_thread.run_sync(guard.authenticate, request.session)
        if isinstance(result, LoginRequired):
            return RedirectResponse(result.path, status_code=status.HTTP_303_SEE_OTHER)

        user = result
        profile = await anyio.to_thread.run_sync(user.info)
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "user": user,
                "profile": profile,
                "display_name": user.info("name") or user.info("nickname") or user.auth0_uid,
                "attributes": sorted(
                    (key, value) for key, value in profile.items() if not isinstance(value, (dict, list))
                ),
            },
        )

    @router.get("/logout", name="logout")
    async def logout(request: Request):
        guard.sign_out(request.session)
        return_to = str(request.url_for("public_pages_home"))
        return RedirectResponse(
            authentication.logout_url(return_to),
            status_code=status.HTTP_303_SEE_OTHER,
        )

    app.include_router(router)


__all__ = ["register_ui_routes", "STATE_SESSION_KEY"]
