"""Authorization engine configuration via pydantic-settings."""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from packages.authz.hierarchy import STANDARD_HIERARCHIES


class AuthzSettings(BaseSettings):
    """Authorization settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHZ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Hierarchy template used when the engine is built without one
    default_hierarchy: str = "saas"

    # Ignore assignments whose expires_at has passed
    enforce_expiry: bool = True

    # Resource types whose owner/admin/editor/viewer/guest roles are preloaded
    standard_role_types: list[str] = []

    @field_validator("default_hierarchy")
    @classmethod
    def _known_hierarchy(cls, value: str) -> str:
        if value not in STANDARD_HIERARCHIES:
            raise ValueError(
                f"Unknown hierarchy {value!r}. Available: {sorted(STANDARD_HIERARCHIES)}"
            )
        return value
