"""Utility helpers for the models package."""

from __future__ import annotations

import secrets
import string
from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase


def generate_giveaway_id(
    session: Optional[Session] = None,
    length: int = 12,
    max_attempts: int = 32,
) -> str:
    """Return an opaque giveaway identifier made of base62 random characters.

    When a session is provided, the helper retries if the generated value is
    already present (or pending) in ``Giveaway.id``.
    """
    from .giveaway import Giveaway

    for _ in range(max_attempts):
        candidate = "".join(secrets.choice(BASE62_ALPHABET) for _ in range(length))
        if session is None:
            return candidate

        pending = any(
            isinstance(obj, Giveaway) and obj.id == candidate for obj in session.new
        )
        if pending:
            continue
        if session.scalar(select(Giveaway.id).where(Giveaway.id == candidate)) is None:
            return candidate

    raise RuntimeError(
        "Unable to generate a unique giveaway identifier after multiple attempts"
    )
