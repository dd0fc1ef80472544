"""Process-wide service wiring."""

from __future__ import annotations

from dataclasses import dataclass

from pi_canvas.core.settings import Settings
from pi_canvas.services.allocator import Allocator
from pi_canvas.services.digits import DigitSource
from pi_canvas.services.publisher import WallpaperPublisher
from pi_canvas.services.render_service import RenderService
from pi_canvas.services.renderer import SequenceRenderer
from pi_canvas.services.timeline import TimelineProjector


@dataclass
class PiServices:
    """Services built once at startup and shared by every request."""

    digit_source: DigitSource
    allocator: Allocator
    render_service: RenderService
    timeline: TimelineProjector

    @property
    def publisher(self) -> WallpaperPublisher:
        return self.render_service.publisher


def build_services(config: Settings, digit_source: DigitSource | None = None) -> PiServices:
    """Wire the digit source, renderer, publisher, allocator and timeline."""
    if digit_source is None:
        digit_source = DigitSource.load(config.pi_digits_path)
    render_service = RenderService(
        SequenceRenderer(digit_source, config.render_resolutions),
        WallpaperPublisher(config.wallpaper_dir, config.wallpaper_url_path),
        latest_resolution=config.latest_resolution,
    )
    return PiServices(
        digit_source=digit_source,
        allocator=Allocator(digit_source, render_service),
        render_service=render_service,
        timeline=TimelineProjector(digit_source),
    )
