"""HTTP clients for the Auth0 authentication and management APIs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote, urlencode

import httpx

from .config import Auth0Settings

DEFAULT_SCOPE = "openid profile email"


class Auth0Error(RuntimeError):
    """Raised when a request to Auth0 fails."""

    def __init__(self, endpoint: str, status_code: int, message: str) -> None:
        super().__init__(f"Auth0 request to {endpoint} failed ({status_code}): {message}")
        self.endpoint = endpoint
        self.status_code = status_code
        self.message = message


@dataclass
class _ClientConfig:
    base_url: str
    client_id: str
    timeout: float


def _normalize_domain(domain: str) -> str:
    cleaned = (domain or "").strip()
    if not cleaned:
        raise ValueError("Auth0 domain must not be empty")
    if "://" not in cleaned:
        cleaned = f"https://{cleaned}"
    return cleaned.rstrip("/")


def _extract_error_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "error_description", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return default


def _decode_object(response: httpx.Response, endpoint: str) -> Dict[str, Any]:
    if response.status_code >= 400:
        default = f"HTTP {response.status_code}"
        try:
            parsed: object = response.json()
        except ValueError:
            parsed = response.text
        raise Auth0Error(endpoint, response.status_code, _extract_error_message(parsed, default))

    try:
        data = response.json()
    except ValueError as exc:
        raise Auth0Error(endpoint, response.status_code, "Response was not valid JSON") from exc

    if not isinstance(data, dict):
        raise Auth0Error(endpoint, response.status_code, "Response was not a JSON object")
    return data


class _BaseClient:
    def __init__(
        self,
        *,
        client_id: str,
        domain: str,
        timeout: float,
        transport: Optional[httpx.BaseTransport],
    ) -> None:
        self._config = _ClientConfig(
            base_url=_normalize_domain(domain),
            client_id=(client_id or "").strip(),
            timeout=timeout,
        )
        if not self._config.client_id:
            raise ValueError("Auth0 client_id must not be empty")
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def client_id(self) -> str:
        return self._config.client_id

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        json: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            with httpx.Client(
                base_url=self._config.base_url,
                timeout=self._config.timeout,
                transport=self._transport,
            ) as client:
                response = client.request(method, endpoint, headers=headers, json=json)
        except httpx.RequestError as exc:
            raise Auth0Error(endpoint, 0, f"Network error: {exc}") from exc
        return _decode_object(response, endpoint)


class ManagementClient(_BaseClient):
    """Read user profiles from the Auth0 Management API."""

    def __init__(
        self,
        *,
        client_id: str,
        token: str,
        domain: str,
        api_version: int = 2,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(client_id=client_id, domain=domain, timeout=timeout, transport=transport)
        self._token = (token or "").strip()
        if not self._token:
            raise ValueError("A management API token is required")
        self._api_version = int(api_version)

    @classmethod
    def from_settings(
        cls,
        settings: Auth0Settings,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "ManagementClient":
        if not settings.management_token:
            raise ValueError("AUTH0_MANAGEMENT_JWT must be configured to read user profiles")
        return cls(
            client_id=settings.client_id,
            token=settings.management_token,
            domain=settings.domain,
            api_version=settings.api_version,
            transport=transport,
        )

    @property
    def api_version(self) -> int:
        return self._api_version

    def user(self, user_id: str) -> Dict[str, Any]:
        """Return the profile stored by Auth0 for ``user_id``."""

        if not user_id:
            raise ValueError("User id must not be empty")
        endpoint = f"/api/v{self._api_version}/users/{quote(user_id, safe='')}"
        headers = {"Authorization": f"Bearer {self._token}"}
        return self._request("GET", endpoint, headers=headers)


class AuthenticationClient(_BaseClient):
    """Drive the hosted login page: authorize, exchange the code, read userinfo."""

    def __init__(
        self,
        *,
        client_id: str,
        domain: str,
        client_secret: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(client_id=client_id, domain=domain, timeout=timeout, transport=transport)
        self._client_secret = client_secret

    @classmethod
    def from_settings(
        cls,
        settings: Auth0Settings,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "AuthenticationClient":
        return cls(
            client_id=settings.client_id,
            domain=settings.domain,
            client_secret=settings.client_secret,
            transport=transport,
        )

    def authorize_url(self, redirect_uri: str, state: str, *, scope: str = DEFAULT_SCOPE) -> str:
        query = urlencode(
            {
                "response_type": "code",
                "client_id": self.client_id,
                "redirect_uri": redirect_uri,
                "scope": scope,
                "state": state,
            }
        )
        return f"{self.base_url}/authorize?{query}"

    def exchange_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        """Trade an authorization code for tokens."""

        if not self._client_secret:
            raise Auth0Error("/oauth/token", 0, "AUTH0_CLIENT_SECRET is not configured")
        payload = {
            "grant_type": "authorization_code",
            "client_id": self.client_id,
            "client_secret": self._client_secret,
            "code": code,
            "redirect_uri": redirect_uri,
        }
        tokens = self._request("POST", "/oauth/token", json=payload)
        if not tokens.get("access_token"):
            raise Auth0Error("/oauth/token", 200, "Token response did not include an access token")
        return tokens

    def userinfo(self, access_token: str) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"}
        return self._request("GET", "/userinfo", headers=headers)

    def logout_url(self, return_to: str) -> str:
        query = urlencode({"returnTo": return_to, "client_id": self.client_id})
        return f"{self.base_url}/v2/logout?{query}"


__all__ = ["Auth0Error", "AuthenticationClient", "ManagementClient", "DEFAULT_SCOPE"]
