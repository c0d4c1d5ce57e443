"""
Entity Store configuration — environment variables in one place.

Read from environment at import time.
"""

from __future__ import annotations

import os

RECIPROCAL_POLICIES: set[str] = {"first", "strict"}


class Settings:
    """Entity store settings from environment variables."""

    # Attribute holding the primary key when a schema does not override it
    ENTITY_STORE_ID_ATTRIBUTE: str = os.environ.get("ENTITY_STORE_ID_ATTRIBUTE", "id")

    # How the resolver treats several attributes pointing back at the same type:
    #   first:  first declared attribute wins, a warning is logged
    #   strict: resolution fails until the reciprocal is named explicitly
    ENTITY_STORE_RECIPROCAL_POLICY: str = os.environ.get("ENTITY_STORE_RECIPROCAL_POLICY", "first")


# Singleton instance
settings = Settings()

if not settings.ENTITY_STORE_ID_ATTRIBUTE:
    raise RuntimeError("ENTITY_STORE_ID_ATTRIBUTE must not be empty")
if settings.ENTITY_STORE_RECIPROCAL_POLICY not in RECIPROCAL_POLICIES:
    raise RuntimeError(
        f"ENTITY_STORE_RECIPROCAL_POLICY must be one of {sorted(RECIPROCAL_POLICIES)}, "
        f"got {settings.ENTITY_STORE_RECIPROCAL_POLICY!r}"
    )
