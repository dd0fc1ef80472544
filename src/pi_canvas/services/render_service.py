"""Render the current counter and publish the result."""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pi_canvas.db.session import begin_write
from pi_canvas.db.time import utcnow
from pi_canvas.models import GLOBAL_STATE_ID, GlobalState
from pi_canvas.services.allocator import get_or_create_state
from pi_canvas.services.publisher import WallpaperPublisher
from pi_canvas.services.renderer import RenderError, SequenceRenderer

logger = logging.getLogger(__name__)


class RenderService:
    """Couples the renderer to the publisher and the ``last_rendered_at`` stamp."""

    def __init__(
        self,
        renderer: SequenceRenderer,
        publisher: WallpaperPublisher,
        latest_resolution: str,
    ) -> None:
        if latest_resolution not in renderer.resolutions:
            raise ValueError(f"Unknown latest resolution {latest_resolution!r}")
        self.renderer = renderer
        self.publisher = publisher
        self.latest_resolution = latest_resolution
        self._lock = threading.Lock()

    @property
    def resolution_names(self) -> list[str]:
        return list(self.renderer.resolutions)

    def render_and_publish(self, db: Session) -> datetime:
        """Render every resolution for the committed count and publish it.

        No database transaction is held while drawing: the count is read and
        the read transaction closed before rendering, and ``last_rendered_at``
        is stamped in a separate short write. Renders run one at a time and
        read the count only once they hold the render lock, so a slower render
        can never publish an older count over a newer one.

        Returns the new ``last_rendered_at`` value. Errors propagate.
        """
        with self._lock:
            count = db.scalar(
                select(GlobalState.assigned_count).where(GlobalState.id == GLOBAL_STATE_ID)
            ) or 0
            db.commit()

            images = self.renderer.render(count)
            self.publisher.publish(images, latest=self.latest_resolution)

            rendered_at = utcnow()
            begin_write(db)
            get_or_create_state(db).last_rendered_at = rendered_at
            db.commit()
        logger.info("Rendered and published %d positions", count)
        return rendered_at

    def safe_render_and_publish(self, db: Session) -> datetime | None:
        """Variant used after an assignment: failures are logged, never raised."""
        try:
            return self.render_and_publish(db)
        except (RenderError, SQLAlchemyError, OSError, ValueError):
            logger.error("Wallpaper render failed; assignment kept", exc_info=True)
            db.rollback()
            return None

    def reset_publication(self, db: Session) -> datetime | None:
        """Drop cached layers and published files, then render from scratch."""
        self.renderer.clear_cache()
        removed = self.publisher.clear()
        logger.info("Cleared %d published wallpapers", removed)
        return self.safe_render_and_publish(db)
