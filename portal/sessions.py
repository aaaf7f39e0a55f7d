"""Session-based authentication for the portal web interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, MutableMapping, Optional, Union

from .config import DEFAULT_PUBLIC_PATH
from .database import Database
from .models import ProfileSource, User

logger = logging.getLogger("portal.sessions")

USERINFO_KEY = "userinfo"

_ASSERTION_FIELDS = ("name", "nickname", "email", "picture")


class InvalidIdentityAssertion(ValueError):
    """The session holds an identity assertion without a usable ``uid``."""


@dataclass(frozen=True)
class LoginRequired:
    """Signals that the visitor must be sent to the public landing page."""

    path: str


def build_assertion(userinfo: Mapping[str, Any]) -> dict:
    """Reduce an OpenID Connect userinfo payload to what the session keeps."""

    uid = str(userinfo.get("uid") or userinfo.get("sub") or "").strip()
    if not uid:
        raise InvalidIdentityAssertion("Identity provider did not return a subject identifier")
    assertion = {"uid": uid, "provider": uid.split("|", 1)[0] if "|" in uid else "auth0"}
    for key in _ASSERTION_FIELDS:
        value = userinfo.get(key)
        if isinstance(value, str) and value:
            assertion[key] = value
    return assertion


class SessionGuard:
    """Resolve the signed-in user from the server-side session."""

    def __init__(
        self,
        database: Database,
        *,
        management: Optional[ProfileSource] = None,
        public_path: str = DEFAULT_PUBLIC_PATH,
    ) -> None:
        self._database = database
        self._management = management
        self._public_path = public_path

    @property
    def public_path(self) -> str:
        return self._public_path

    @staticmethod
    def assertion(session: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
        value = session.get(USERINFO_KEY)
        if not value:
            return None
        return value

    def is_authenticated(self, session: Mapping[str, Any]) -> bool:
        return self.assertion(session) is not None

    def authenticate(self, session: Mapping[str, Any]) -> Union[User, LoginRequired]:
        """Find or create the user for the session, or ask for a redirect."""

        assertion = self.assertion(session)
        if assertion is None:
            return LoginRequired(path=self._public_path)

        uid = assertion.get("uid") if isinstance(assertion, Mapping) else None
        if not isinstance(uid, str) or not uid.strip():
            raise InvalidIdentityAssertion("Session identity assertion is missing a uid")

        return self._database.find_or_create_user(uid, management=self._management)

    def sign_in(self, session: MutableMapping[str, Any], userinfo: Mapping[str, Any]) -> dict:
        assertion = build_assertion(userinfo)
        session.clear()
        session[USERINFO_KEY] = assertion
        logger.info("Identity %s signed in", assertion["uid"])
        return assertion

    def sign_out(self, session: MutableMapping[str, Any]) -> None:
        assertion = self.assertion(session)
        session.clear()
        if assertion is not None:
            logger.info("Identity %s signed out", assertion.get("uid"))


__all__ = [
    "InvalidIdentityAssertion",
    "LoginRequired",
    "SessionGuard",
    "USERINFO_KEY",
    "build_assertion",
]
