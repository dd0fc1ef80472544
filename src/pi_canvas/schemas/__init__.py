"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .pi import (
    AssignmentResponse,
    ClaimantOut,
    StateResponse,
    TimelineEntryOut,
    WallpaperUrls,
)

__all__ = [
    "AssignmentResponse",
    "ClaimantOut",
    "StateResponse",
    "TimelineEntryOut",
    "WallpaperUrls",
]
