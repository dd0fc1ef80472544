"""Filesystem publisher for rendered wallpapers."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
import time
from collections.abc import Mapping
from pathlib import Path

from pi_canvas.services.renderer import RenderError

logger = logging.getLogger(__name__)

LATEST_NAME = "latest"
IMAGE_SUFFIX = ".png"


class PublishError(RenderError):
    """Raised when rendered images cannot be stored."""


class WallpaperPublisher:
    """Stores one image per logical name, replacing the previous version.

    A publish first writes the whole set into a staging directory next to the
    published files and only then moves each file into place with
    ``os.replace``, so readers never see a truncated image. If any move fails,
    the files already moved are restored from copies taken before the swap, so
    a failed publish leaves the previous set in place rather than a mix.
    """

    def __init__(self, directory: Path, url_path: str = "/wallpapers") -> None:
        self.directory = Path(directory)
        self.url_path = "/" + url_path.strip("/")
        self._lock = threading.Lock()
        self._last_stamp = 0

    def path_for(self, name: str) -> Path:
        return self.directory / f"{name}{IMAGE_SUFFIX}"

    def publish(self, images: Mapping[str, bytes], latest: str | None = None) -> list[str]:
        """Publish ``images``; ``latest`` names the image copied to the alias.

        Returns the logical names that were written, alias included.
        """
        if not images:
            raise PublishError("Refusing to publish an empty image set")
        if latest is not None and latest not in images:
            raise PublishError(f"Latest alias target {latest!r} was not rendered")

        names = dict(images)
        if latest is not None:
            names[LATEST_NAME] = images[latest]

        with self._lock:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=self.directory))
            except OSError as exc:
                raise PublishError(f"Cannot prepare {self.directory}: {exc}") from exc
            try:
                self._swap_in(staging, names)
            finally:
                shutil.rmtree(staging, ignore_errors=True)

        logger.info("Published %d wallpapers to %s", len(names), self.directory)
        return list(names)

    def _swap_in(self, staging: Path, names: Mapping[str, bytes]) -> None:
        """Move the staged set into place, or leave the previous set intact."""
        backup = staging / "previous"
        replaced: list[str] = []
        try:
            backup.mkdir()
            for name, data in names.items():
                (staging / f"{name}{IMAGE_SUFFIX}").write_bytes(data)
                if self.path_for(name).exists():
                    shutil.copy2(self.path_for(name), backup / f"{name}{IMAGE_SUFFIX}")
            for name in names:
                os.replace(staging / f"{name}{IMAGE_SUFFIX}", self.path_for(name))
                replaced.append(name)
        except OSError as exc:
            self._restore(backup, replaced)
            raise PublishError(f"Failed to publish wallpapers: {exc}") from exc

    def _restore(self, backup: Path, replaced: list[str]) -> None:
        for name in reversed(replaced):
            previous = backup / f"{name}{IMAGE_SUFFIX}"
            try:
                if previous.exists():
                    os.replace(previous, self.path_for(name))
                else:
                    self.path_for(name).unlink(missing_ok=True)
            except OSError:
                logger.error("Could not restore %s after a failed publish", name, exc_info=True)
        if replaced:
            logger.warning("Rolled back %d wallpapers after a failed publish", len(replaced))

    def published_names(self) -> list[str]:
        """Return the logical names currently on disk, sorted."""
        if not self.directory.is_dir():
            return []
        return sorted(path.stem for path in self.directory.glob(f"*{IMAGE_SUFFIX}"))

    def has_published(self) -> bool:
        return bool(self.published_names())

    def clear(self) -> int:
        """Delete every published image; returns how many were removed."""
        removed = 0
        with self._lock:
            for name in self.published_names():
                self.path_for(name).unlink(missing_ok=True)
                removed += 1
        return removed

    def _cache_buster(self) -> int:
        # Strictly increasing even when called twice within one clock tick.
        with self._lock:
            stamp = max(time.time_ns() // 1000, self._last_stamp + 1)
            self._last_stamp = stamp
        return stamp

    def get_urls(self, base_url: str, names: list[str]) -> dict[str, object]:
        """Return cache-busted addresses for ``names`` and the ``latest`` alias.

        Every call yields a new query value, even when nothing was re-rendered.
        """
        stamp = self._cache_buster()
        root = base_url.rstrip("/") + self.url_path

        def address(name: str) -> str:
            return f"{root}/{name}{IMAGE_SUFFIX}?t={stamp}"

        return {
            "latest": address(LATEST_NAME),
            "resolutions": {name: address(name) for name in names},
        }
