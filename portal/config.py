"""Configuration management for the Auth0 portal."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

DEFAULT_PUBLIC_PATH = "/public_pages/home"

_ENV_FIELDS = {
    "domain": "AUTH0_DOMAIN",
    "client_id": "AUTH0_CLIENT_ID",
    "client_secret": "AUTH0_CLIENT_SECRET",
    "management_token": "AUTH0_MANAGEMENT_JWT",
    "api_version": "AUTH0_API_VERSION",
    "callback_url": "AUTH0_CALLBACK_URL",
}


@dataclass(frozen=True)
class Auth0Settings:
    """Credentials and endpoints for the Auth0 tenant."""

    domain: str
    client_id: str
    client_secret: Optional[str] = None
    management_token: Optional[str] = None
    api_version: int = 2
    callback_url: Optional[str] = None

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "Auth0Settings":
        """Create :class:`Auth0Settings` from raw dictionary data."""
        required_fields = {"domain", "client_id"}
        missing = {name for name in required_fields if not str(data.get(name) or "").strip()}
        if missing:
            raise ValueError(f"Missing required Auth0 configuration fields: {', '.join(sorted(missing))}")

        raw_version = data.get("api_version")
        try:
            api_version = int(raw_version) if raw_version not in (None, "") else 2
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid Auth0 api_version: {raw_version!r}") from exc

        def _optional(name: str) -> Optional[str]:
            value = data.get(name)
            if value is None:
                return None
            cleaned = str(value).strip()
            return cleaned or None

        return Auth0Settings(
            domain=str(data["domain"]).strip(),
            client_id=str(data["client_id"]).strip(),
            client_secret=_optional("client_secret"),
            management_token=_optional("management_token"),
            api_version=api_version,
            callback_url=_optional("callback_url"),
        )


def _read_secrets_file(config_path: Path) -> Dict[str, object]:
    if not config_path.exists():
        return {}
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Secrets file {config_path} must contain a mapping")
    section = raw.get("auth0", {})
    if not isinstance(section, dict):
        raise ValueError("The 'auth0' section of the secrets file must be a mapping")
    return dict(section)


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Auth0Settings:
    """Load Auth0 settings from a YAML secrets file, overridden by ``AUTH0_*`` variables."""
    env = os.environ if environ is None else environ
    path = config_path if config_path is not None else resolve_config_path(env.get("PORTAL_SECRETS_PATH"))

    data = _read_secrets_file(path)
    for name, variable in _ENV_FIELDS.items():
        value = env.get(variable)
        if value:
            data[name] = value
    return Auth0Settings.from_dict(data)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the secrets file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "secrets.yaml").resolve(strict=False)
    return candidate


def resolve_public_path(env_value: Optional[str]) -> str:
    """Return the path unauthenticated visitors are redirected to."""
    cleaned = (env_value or "").strip()
    if not cleaned:
        return DEFAULT_PUBLIC_PATH
    if not cleaned.startswith("/"):
        cleaned = "/" + cleaned
    return cleaned


__all__ = [
    "Auth0Settings",
    "DEFAULT_PUBLIC_PATH",
    "load_settings",
    "resolve_config_path",
    "resolve_public_path",
]
