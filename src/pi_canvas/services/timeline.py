"""Read-only timeline of claimed positions."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from pi_canvas.models import Assignment, Participant
from pi_canvas.services.digits import DigitSource

ORIGIN_POSITION = 1


@dataclass(frozen=True)
class Claimant:
    """Public attributes of the participant holding a position."""

    display_name: str | None
    handle: str | None


@dataclass(frozen=True)
class TimelineEntry:
    position: int
    digit_value: int
    is_origin: bool
    claimant: Claimant | None = None


class TimelineProjector:
    """Projects assignments into an ordered timeline starting at the origin.

    Position 1 is the sequence's leading digit and is always present. If a
    participant holds it, their public attributes ride on the origin entry.
    Internal participant identifiers never leave this projection.
    """

    def __init__(self, digit_source: DigitSource) -> None:
        self.digit_source = digit_source

    def project(self, db: Session) -> list[TimelineEntry]:
        rows = db.execute(
            select(Assignment.position, Assignment.digit_value, Participant)
            .outerjoin(Participant, Participant.participant_id == Assignment.participant_id)
            .order_by(Assignment.position.asc())
        ).all()

        origin_claimant = None
        entries: list[TimelineEntry] = []
        for position, digit_value, participant in rows:
            claimant = _claimant(participant)
            if position == ORIGIN_POSITION:
                origin_claimant = claimant
                continue
            entries.append(
                TimelineEntry(
                    position=int(position),
                    digit_value=int(digit_value),
                    is_origin=False,
                    claimant=claimant,
                )
            )

        origin = TimelineEntry(
            position=ORIGIN_POSITION,
            digit_value=self.digit_source.digit_at_position(ORIGIN_POSITION),
            is_origin=True,
            claimant=origin_claimant,
        )
        return [origin, *entries]


def _claimant(participant: Participant | None) -> Claimant | None:
    if participant is None:
        return None
    return Claimant(display_name=participant.display_name, handle=participant.handle)
