"""Business logic services for the Pi Canvas application."""

from .allocator import Allocator, ReconcileReport, ResetError
from .container import PiServices, build_services
from .digits import DigitSource
from .publisher import PublishError, WallpaperPublisher
from .render_service import RenderService
from .renderer import RenderError, SequenceRenderer, render
from .timeline import TimelineProjector

__all__ = [
    "Allocator", "ReconcileReport", "ResetError",
    "PiServices", "build_services",
    "DigitSource",
    "PublishError", "WallpaperPublisher",
    "RenderService",
    "RenderError", "SequenceRenderer", "render",
    "TimelineProjector",
]
