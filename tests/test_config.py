from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from portal.config import (
    DEFAULT_PUBLIC_PATH,
    Auth0Settings,
    load_settings,
    resolve_config_path,
    resolve_public_path,
)


def _write_secrets(path: Path, body: str) -> Path:
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_load_settings_from_yaml(tmp_path: Path) -> None:
    secrets = _write_secrets(
        tmp_path / "secrets.yaml",
        """
        auth0:
          domain: tenant.auth0.com
          client_id: abc
          client_secret: shh
          management_token: jwt
          api_version: 2
          callback_url: http://localhost:8000/auth0/callback
        """,
    )

    settings = load_settings(secrets, environ={})

    assert settings == Auth0Settings(
        domain="tenant.auth0.com",
        client_id="abc",
        client_secret="shh",
        management_token="jwt",
        api_version=2,
        callback_url="http://localhost:8000/auth0/callback",
    )


def test_environment_overrides_file(tmp_path: Path) -> None:
    secrets = _write_secrets(
        tmp_path / "secrets.yaml",
        """
        auth0:
          domain: tenant.auth0.com
          client_id: abc
        """,
    )

    settings = load_settings(
        secrets,
        environ={"AUTH0_CLIENT_ID": "from-env", "AUTH0_MANAGEMENT_JWT": "env-jwt", "AUTH0_API_VERSION": "3"},
    )

    assert settings.domain == "tenant.auth0.com"
    assert settings.client_id == "from-env"
    assert settings.management_token == "env-jwt"
    assert settings.api_version == 3
    assert settings.client_secret is None


def test_missing_file_falls_back_to_environment(tmp_path: Path) -> None:
    settings = load_settings(
        tmp_path / "absent.yaml",
        environ={"AUTH0_DOMAIN": "tenant.auth0.com", "AUTH0_CLIENT_ID": "abc"},
    )
    assert settings.domain == "tenant.auth0.com"
    assert settings.api_version == 2


def test_secrets_path_comes_from_environment(tmp_path: Path) -> None:
    secrets = _write_secrets(
        tmp_path / "custom.yaml",
        """
        auth0:
          domain: custom.auth0.com
          client_id: abc
        """,
    )
    settings = load_settings(environ={"PORTAL_SECRETS_PATH": str(secrets)})
    assert settings.domain == "custom.auth0.com"


def test_missing_required_fields_are_reported(tmp_path: Path) -> None:
    with pytest.raises(ValueError) as excinfo:
        load_settings(tmp_path / "absent.yaml", environ={})
    assert "client_id" in str(excinfo.value)
    assert "domain" in str(excinfo.value)


def test_invalid_secrets_layout_is_rejected(tmp_path: Path) -> None:
    secrets = _write_secrets(tmp_path / "secrets.yaml", "auth0: just-a-string\n")
    with pytest.raises(ValueError):
        load_settings(secrets, environ={})


def test_invalid_api_version_is_rejected() -> None:
    with pytest.raises(ValueError):
        Auth0Settings.from_dict({"domain": "tenant.auth0.com", "client_id": "abc", "api_version": "two"})


def test_resolve_config_path_default() -> None:
    default = resolve_config_path(None)
    assert default.name == "secrets.yaml"
    assert default.parent.name == "config"


def test_resolve_public_path() -> None:
    assert resolve_public_path(None) == DEFAULT_PUBLIC_PATH
    assert resolve_public_path("  ") == DEFAULT_PUBLIC_PATH
    assert resolve_public_path("welcome") == "/welcome"
    assert resolve_public_path("/landing") == "/landing"
