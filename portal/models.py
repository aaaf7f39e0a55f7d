"""Domain models for the Auth0 portal."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Protocol


class ProfileSource(Protocol):
    """Anything able to look up an identity provider profile by subject id."""

    def user(self, user_id: str) -> Dict[str, Any]:
        ...


@dataclass
class User:
    """A local account keyed by the identity provider's subject identifier.

    ``profile`` is not persisted. It stays ``None`` until the first call to
    :meth:`fetch_profile` (directly or through :meth:`info`) and is then kept
    for the lifetime of this instance.
    """

    id: int
    auth0_uid: str
    created_at: datetime
    updated_at: datetime
    profile_source: Optional[ProfileSource] = field(default=None, repr=False, compare=False)
    profile: Optional[Dict[str, Any]] = field(default=None, repr=False, compare=False)

    def fetch_profile(self) -> Dict[str, Any]:
        """Load the profile from the identity provider unless it is already loaded."""

        if self.profile is None:
            if self.profile_source is None:
                raise RuntimeError(f"User {self.id} has no profile source to fetch from")
            self.profile = dict(self.profile_source.user(self.auth0_uid))
        return self.profile

    def info(self, key: Optional[object] = None) -> Any:
        profile = self.fetch_profile()
        if key is None:
            return profile
        return profile.get(str(key))


__all__ = ["ProfileSource", "User"]
