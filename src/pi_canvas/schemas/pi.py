"""Digit claiming Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class StateResponse(BaseModel):
    """Snapshot of the shared counter."""

    total_assigned: int = Field(..., alias="totalAssigned", description="Participants with a position")
    current_position: int = Field(..., alias="currentPosition", description="Highest claimed position")
    last_rendered_at: datetime | None = Field(None, alias="lastRenderedAt")

    model_config = ConfigDict(populate_by_name=True)


class AssignmentResponse(BaseModel):
    """A participant's claimed position."""

    position: int = Field(..., description="1-based rank in allocation order")
    digit_at_position: int = Field(..., alias="digitAtPosition", ge=0, le=9)
    from_digit: int | None = Field(
        None, alias="fromDigit", description="Digit of the previous position, if any"
    )
    assigned_at: datetime = Field(..., alias="assignedAt")

    model_config = ConfigDict(populate_by_name=True)


class ClaimantOut(BaseModel):
    """Public claimant attributes; never the internal identifier."""

    display_name: str | None = Field(None, alias="displayName")
    handle: str | None = None

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class TimelineEntryOut(BaseModel):
    position: int
    digit_value: int = Field(..., alias="digitValue")
    is_origin: bool = Field(..., alias="isOrigin")
    claimant: ClaimantOut | None = None

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class WallpaperUrls(BaseModel):
    """Cache-busted wallpaper addresses."""

    latest: str
    resolutions: dict[str, str]
