"""
Profile Module

Provider credentials for the caller. The profile is looked up once per request
and passed explicitly to every client call that talks to the provider, so the
completion and embedding calls always use the same key.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from chat_proxy.core.config import Settings, settings
from chat_proxy.core.errors import AuthError


@dataclass(frozen=True)
class Profile:
    """Credentials stored for a caller"""
    openai_api_key: Optional[str] = None
    openai_organization_id: Optional[str] = None

    def __repr__(self) -> str:
        key_state = "set" if self.openai_api_key else "missing"
        return (
            f"Profile(openai_api_key=<{key_state}>, "
            f"openai_organization_id={self.openai_organization_id!r})"
        )


class ProfileStore(ABC):
    """Source of caller profiles"""

    @abstractmethod
    def get_profile(self) -> Profile:
        """Return the profile of the current caller"""
        pass


class SettingsProfileStore(ProfileStore):
    """Single-tenant store backed by OPENAI_API_KEY / OPENAI_ORGANIZATION_ID."""

    def __init__(self, config: Settings = settings):
        self.config = config

    def get_profile(self) -> Profile:
        return Profile(
            openai_api_key=self.config.OPENAI_API_KEY,
            openai_organization_id=self.config.OPENAI_ORGANIZATION_ID,
        )


def check_api_key(api_key: Optional[str], key_name: str) -> None:
    """
    Ensure a provider key is configured.

    Raises:
        AuthError: If the key is missing or empty
    """
    if api_key is None or not api_key.strip():
        raise AuthError(f"{key_name} API Key not found")
