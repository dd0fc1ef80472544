"""Shared API dependencies for identity and service access."""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pi_canvas.core.security import InvalidIdentityError, verify_access_token
from pi_canvas.db.session import begin_write, get_db
from pi_canvas.models import Participant
from pi_canvas.services.container import PiServices

logger = logging.getLogger(__name__)

# auto_error is off so a missing header is a 401 rather than FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)

SessionDep = Annotated[Session, Depends(get_db)]


@dataclass(frozen=True)
class Identity:
    """Verified caller identity with its optional public attributes."""

    participant_id: str
    display_name: str | None = None
    handle: str | None = None


def get_services(request: Request) -> PiServices:
    """Return the service container built at application startup."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return services


ServicesDep = Annotated[PiServices, Depends(get_services)]


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _needs_update(participant: Participant, identity: Identity) -> bool:
    if identity.display_name is not None and participant.display_name != identity.display_name:
        return True
    return identity.handle is not None and participant.handle != identity.handle


def sync_participant(db: Session, identity: Identity) -> Participant:
    """Mirror the identity's public attributes into the participant table.

    Writes only when the row is missing or an attribute changed. A concurrent
    first request for the same participant loses the insert in its savepoint
    and updates the row the winner created.
    """
    participant = db.get(Participant, identity.participant_id)
    if participant is not None and not _needs_update(participant, identity):
        return participant

    begin_write(db)
    if participant is None:
        try:
            with db.begin_nested():
                participant = Participant(participant_id=identity.participant_id)
                db.add(participant)
        except IntegrityError:
            logger.debug("Participant %s created concurrently; re-reading", identity.participant_id)
            participant = db.get(Participant, identity.participant_id)
            if participant is None:
                raise

    if identity.display_name is not None:
        participant.display_name = identity.display_name
    if identity.handle is not None:
        participant.handle = identity.handle
    db.commit()
    return participant


def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    x_handle: Annotated[str | None, Header()] = None,
) -> Identity:
    """Verify the bearer token and return the caller's identity.

    Raises:
        HTTPException: 401 when the token is missing or invalid.
    """
    if credentials is None:
        raise _unauthorized()
    try:
        claims = verify_access_token(credentials.credentials)
    except InvalidIdentityError as err:
        raise _unauthorized() from err

    handle = (x_handle or "").strip() or claims.get("handle")
    return Identity(
        participant_id=claims["sub"],
        display_name=claims.get("name"),
        handle=handle,
    )


CurrentIdentityDep = Annotated[Identity, Depends(get_current_identity)]


def get_claiming_identity(identity: CurrentIdentityDep, db: SessionDep) -> Identity:
    """Identity for write endpoints; mirrors its public attributes first."""
    sync_participant(db, identity)
    return identity


ClaimingIdentityDep = Annotated[Identity, Depends(get_claiming_identity)]
