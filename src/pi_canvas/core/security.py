"""Bearer token helpers for participant identity."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from pi_canvas.core.settings import settings


class InvalidIdentityError(ValueError):
    """Raised when a token does not identify a participant."""


def create_access_token(
    participant_id: str,
    *,
    name: str | None = None,
    handle: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Mint a signed token whose subject is the opaque participant id."""
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict[str, Any] = {"sub": participant_id, "exp": expire}
    if name:
        claims["name"] = name
    if handle:
        claims["handle"] = handle
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> dict[str, Any]:
    """Decode ``token`` and return its claims.

    Raises:
        InvalidIdentityError: If the signature, expiry or subject is invalid.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise InvalidIdentityError("Could not validate credentials") from err
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise InvalidIdentityError("Token has no subject")
    return payload
