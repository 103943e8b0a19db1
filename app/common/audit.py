"""
Audit helpers: actor fallback and timestamps.
"""
from datetime import datetime, timezone
from typing import Optional

from app.core.config import settings


def resolve_actor(actor: Optional[str] = None) -> str:
    """Missing actor context never blocks an operation; it is attributed to the system actor."""
    if actor is None or not actor.strip():
        return settings.DEFAULT_ACTOR
    return actor.strip()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
