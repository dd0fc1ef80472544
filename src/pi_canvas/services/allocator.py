"""Race-free allocation of positions to participants."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from pi_canvas.db.session import begin_write
from pi_canvas.models import GLOBAL_STATE_ID, Assignment, GlobalState
from pi_canvas.services.digits import DigitSource

if TYPE_CHECKING:
    from pi_canvas.services.render_service import RenderService

logger = logging.getLogger(__name__)


class ResetError(RuntimeError):
    """Raised when an administrative reset could not be applied."""


@dataclass
class ReconcileReport:
    """Outcome of recomputing the counter from the assignment rows."""

    counter_before: int
    counter_after: int
    assignment_count: int
    missing_positions: list[int] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return self.counter_before == self.assignment_count and not self.missing_positions


def get_or_create_state(db: Session) -> GlobalState:
    """Return the single counter row, creating it with a zero count if absent.

    Safe to call concurrently: a losing insert rolls back its savepoint and
    re-reads the row the winner created.
    """
    state = db.get(GlobalState, GLOBAL_STATE_ID)
    if state is not None:
        return state

    try:
        with db.begin_nested():
            db.add(GlobalState(id=GLOBAL_STATE_ID, assigned_count=0))
    except IntegrityError:
        logger.debug("Counter row created concurrently; re-reading")

    state = db.get(GlobalState, GLOBAL_STATE_ID)
    if state is None:
        raise RuntimeError("Failed to initialise the global counter")
    return state


class Allocator:
    """Hands out contiguous positions starting at 1, one per participant.

    The counter moves only through a single ``UPDATE ... RETURNING`` issued in
    the same savepoint as the assignment insert. When the insert trips the
    participant uniqueness constraint, the savepoint (increment included) is
    rolled back and the existing row is returned, so a duplicate request can
    never consume a position.
    """

    def __init__(
        self,
        digit_source: DigitSource,
        render_service: RenderService | None = None,
    ) -> None:
        self.digit_source = digit_source
        self.render_service = render_service

    def get_state(self, db: Session) -> GlobalState:
        """Return the counter row, committing its lazy creation."""
        state = db.get(GlobalState, GLOBAL_STATE_ID)
        if state is None:
            begin_write(db)
            state = get_or_create_state(db)
        db.commit()
        return state

    def get_assignment(self, db: Session, participant_id: str) -> Assignment | None:
        """Return the participant's assignment, if any. Never mutates."""
        return db.scalars(
            select(Assignment).where(Assignment.participant_id == participant_id)
        ).first()

    def assign(self, db: Session, participant_id: str) -> Assignment:
        """Get or create the participant's assignment.

        A new assignment triggers a synchronous re-render before returning;
        render failures are logged by the render service and do not affect the
        committed assignment.
        """
        if not participant_id:
            raise ValueError("participant_id must be a non-empty string")

        existing = self.get_assignment(db, participant_id)
        if existing is not None:
            return existing

        begin_write(db)
        get_or_create_state(db)
        try:
            with db.begin_nested():
                position = db.execute(
                    update(GlobalState)
                    .where(GlobalState.id == GLOBAL_STATE_ID)
                    .values(assigned_count=GlobalState.assigned_count + 1)
                    .returning(GlobalState.assigned_count)
                ).scalar_one()
                assignment = Assignment(
                    participant_id=participant_id,
                    position=position,
                    digit_value=self.digit_source.digit_at_position(position),
                )
                db.add(assignment)
                db.flush()
        except IntegrityError:
            existing = self.get_assignment(db, participant_id)
            if existing is None:
                db.rollback()
                raise
            db.commit()
            logger.info("Concurrent assign for %s resolved to position %d", participant_id, existing.position)
            return existing

        db.commit()
        logger.info("Assigned position %d (digit %d)", assignment.position, assignment.digit_value)

        if self.render_service is not None:
            self.render_service.safe_render_and_publish(db)
        return assignment

    def reset(self, db: Session) -> int:
        """Delete every assignment and zero the counter in one transaction.

        Returns the number of assignments removed. Re-renders afterwards when a
        render service is attached.
        """
        try:
            begin_write(db)
            state = get_or_create_state(db)
            removed = db.execute(delete(Assignment)).rowcount or 0
            state.assigned_count = 0
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise ResetError(f"Reset failed; nothing was changed: {exc}") from exc

        logger.info("Reset removed %d assignments", removed)
        if self.render_service is not None:
            self.render_service.reset_publication(db)
        return removed

    def reconcile(self, db: Session) -> ReconcileReport:
        """Realign the counter with the stored assignments.

        The counter is set to the highest stored position so the next
        allocation can never collide; gaps below it are reported, not filled.
        """
        begin_write(db)
        state = get_or_create_state(db)
        before = int(state.assigned_count)
        count, highest = db.execute(
            select(func.count(Assignment.id), func.max(Assignment.position))
        ).one()
        highest = int(highest or 0)
        taken = set(db.scalars(select(Assignment.position)))
        missing = [position for position in range(1, highest + 1) if position not in taken]

        state.assigned_count = highest
        db.commit()
        report = ReconcileReport(
            counter_before=before,
            counter_after=highest,
            assignment_count=int(count),
            missing_positions=missing,
        )
        if not report.consistent:
            logger.warning(
                "Counter was %d with %d assignments; set to %d (%d missing positions)",
                before,
                count,
                highest,
                len(missing),
            )
        return report
