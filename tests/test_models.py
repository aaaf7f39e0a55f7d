from __future__ import annotations

from datetime import datetime, timezone

import pytest

from portal.auth0 import Auth0Error
from portal.models import User


class _CountingSource:
    def __init__(self, profile: dict) -> None:
        self.profile = profile
        self.calls: list[str] = []

    def user(self, user_id: str) -> dict:
        self.calls.append(user_id)
        return self.profile


class _FailingSource:
    def user(self, user_id: str) -> dict:
        raise Auth0Error(f"/api/v2/users/{user_id}", 401, "Unauthorized")


def _make_user(source) -> User:
    now = datetime.now(timezone.utc)
    return User(id=1, auth0_uid="auth0|abc", created_at=now, updated_at=now, profile_source=source)


def test_profile_is_fetched_once_per_instance() -> None:
    source = _CountingSource({"email": "ada@example.com", "name": "Ada"})
    user = _make_user(source)

    assert user.profile is None
    assert user.info() == {"email": "ada@example.com", "name": "Ada"}
    assert user.info() == {"email": "ada@example.com", "name": "Ada"}
    assert user.info("name") == "Ada"
    assert source.calls == ["auth0|abc"]


def test_separate_instances_fetch_independently() -> None:
    source = _CountingSource({"email": "ada@example.com"})

    _make_user(source).info()
    _make_user(source).info()

    assert len(source.calls) == 2


def test_info_key_lookup() -> None:
    user = _make_user(_CountingSource({"email": "ada@example.com", "logins_count": 3}))

    assert user.info("email") == "ada@example.com"
    assert user.info("missing") is None


def test_info_key_is_converted_to_string() -> None:
    user = _make_user(_CountingSource({"3": "three"}))
    assert user.info(3) == "three"


def test_fetch_failure_propagates_and_leaves_profile_unset() -> None:
    user = _make_user(_FailingSource())

    with pytest.raises(Auth0Error) as excinfo:
        user.info("email")
    assert excinfo.value.status_code == 401
    assert user.profile is None


def test_fetch_without_source_is_an_error() -> None:
    user = _make_user(None)
    with pytest.raises(RuntimeError):
        user.info()


def test_preloaded_profile_skips_remote_call() -> None:
    source = _CountingSource({"email": "remote@example.com"})
    user = _make_user(source)
    user.profile = {"email": "cached@example.com"}

    assert user.fetch_profile() == {"email": "cached@example.com"}
    assert source.calls == []


def test_profile_is_excluded_from_equality() -> None:
    source = _CountingSource({"email": "ada@example.com"})
    loaded = _make_user(source)
    loaded.info()
    fresh = _make_user(source)
    fresh.created_at = loaded.created_at
    fresh.updated_at = loaded.updated_at

    assert loaded == fresh
