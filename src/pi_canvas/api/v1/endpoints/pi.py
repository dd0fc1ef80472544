"""Digit claiming, timeline and wallpaper endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request

from pi_canvas.api.v1.dependencies import (
    ClaimingIdentityDep,
    CurrentIdentityDep,
    ServicesDep,
    SessionDep,
)
from pi_canvas.core.settings import settings
from pi_canvas.models import Assignment
from pi_canvas.schemas.pi import (
    AssignmentResponse,
    ClaimantOut,
    StateResponse,
    TimelineEntryOut,
    WallpaperUrls,
)
from pi_canvas.services.digits import DigitSource

router = APIRouter(prefix="/pi", tags=["pi"])


def to_assignment_response(assignment: Assignment, digits: DigitSource) -> AssignmentResponse:
    """Convert an Assignment row to its API schema."""
    position = int(assignment.position)
    return AssignmentResponse(
        position=position,
        digit_at_position=int(assignment.digit_value),
        from_digit=digits.digit_at_position(position - 1) if position > 1 else None,
        assigned_at=assignment.assigned_at,
    )


@router.get("/state", response_model=StateResponse)
def get_state(db: SessionDep, services: ServicesDep) -> StateResponse:
    """Return the shared counter; the first read creates it at zero."""
    state = services.allocator.get_state(db)
    count = int(state.assigned_count)
    return StateResponse(
        total_assigned=count,
        current_position=count,
        last_rendered_at=state.last_rendered_at,
    )


@router.get("/my-assignment", response_model=AssignmentResponse | None)
def get_my_assignment(
    identity: CurrentIdentityDep, db: SessionDep, services: ServicesDep
) -> AssignmentResponse | None:
    """Return the caller's assignment, or null before they claimed one."""
    assignment = services.allocator.get_assignment(db, identity.participant_id)
    if assignment is None:
        return None
    return to_assignment_response(assignment, services.digit_source)


@router.post("/assign-digit", response_model=AssignmentResponse)
def assign_digit(
    identity: ClaimingIdentityDep, db: SessionDep, services: ServicesDep
) -> AssignmentResponse:
    """Claim the next position for the caller, or return the one they hold.

    The wallpapers are re-rendered before the response for a new claim.
    """
    assignment = services.allocator.assign(db, identity.participant_id)
    return to_assignment_response(assignment, services.digit_source)


@router.get("/timeline", response_model=list[TimelineEntryOut])
def get_timeline(db: SessionDep, services: ServicesDep) -> list[TimelineEntryOut]:
    """Return claimed positions in order, starting with the origin digit."""
    return [
        TimelineEntryOut(
            position=entry.position,
            digit_value=entry.digit_value,
            is_origin=entry.is_origin,
            claimant=(
                ClaimantOut(display_name=entry.claimant.display_name, handle=entry.claimant.handle)
                if entry.claimant is not None
                else None
            ),
        )
        for entry in services.timeline.project(db)
    ]


@router.get("/wallpaper-urls", response_model=WallpaperUrls)
def get_wallpaper_urls(request: Request, services: ServicesDep) -> WallpaperUrls:
    """Return cache-busted addresses for every resolution and the latest alias."""
    base_url = settings.public_base_url or str(request.base_url)
    urls = services.publisher.get_urls(base_url, services.render_service.resolution_names)
    return WallpaperUrls.model_validate(urls)
