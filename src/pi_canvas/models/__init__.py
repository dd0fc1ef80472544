"""SQLAlchemy models for the Pi Canvas service."""

from .assignment import Assignment
from .global_state import GLOBAL_STATE_ID, GlobalState
from .participant import Participant

__all__ = [
    "Assignment",
    "GLOBAL_STATE_ID", "GlobalState",
    "Participant",
]
