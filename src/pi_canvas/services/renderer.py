"""Chord diagram renderer for the claimed prefix of the digit sequence.

Every resolution is drawn independently onto a black canvas:

* a ring of ten coloured segments, one per digit value, starting at 12 o'clock
  and running clockwise;
* one translucent curved chord per consecutive pair of claimed positions,
  blended from the colour of the first digit to the colour of the second;
* dots outside the ring marking runs of repeated digits.

Endpoints are scattered inside their segment with a golden-ratio sequence of the
position index, so the same inputs always produce the same PNG bytes. The
background, ring and chord layer is cached per resolution and extended in place
when the count grows, which keeps a render after one new assignment cheap.
"""

from __future__ import annotations

import io
import logging
import math
import threading
import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from PIL import Image, ImageDraw

from pi_canvas.services.digits import DigitSource

logger = logging.getLogger(__name__)

Color = tuple[int, int, int]
Point = tuple[float, float]

BACKGROUND: Color = (0, 0, 0)

# Neon spectrum indexed by digit value.
PALETTE: tuple[Color, ...] = (
    (0xFF, 0x00, 0x00),
    (0xFF, 0x7F, 0x00),
    (0xFF, 0xFF, 0x00),
    (0x7F, 0xFF, 0x00),
    (0x00, 0xFF, 0x00),
    (0x00, 0xFF, 0x7F),
    (0x00, 0xFF, 0xFF),
    (0x00, 0x7F, 0xFF),
    (0x00, 0x00, 0xFF),
    (0x7F, 0x00, 0xFF),
)

RING_RADIUS_FRACTION = 0.42
CHORD_INNER_FRACTION = 0.25
SEGMENT_COUNT = 10
SEGMENT_SPAN = 2 * math.pi / SEGMENT_COUNT
SEGMENT_GAP = math.radians(2.0)
RING_START = -math.pi / 2  # 12 o'clock; angles grow clockwise in image space
GOLDEN_RATIO_CONJUGATE = (math.sqrt(5) - 1) / 2

CHORD_ALPHA = 77
CURVE_STEPS = 16
MARKER_ALPHA = 230
# Minimum run length for each marker size tier.
MARKER_TIERS: tuple[int, ...] = (2, 3, 4, 6)


class RenderError(RuntimeError):
    """Raised when a wallpaper cannot be drawn, encoded or published."""


@dataclass(frozen=True)
class Geometry:
    """Pixel measurements derived from one output resolution."""

    width: int
    height: int

    @property
    def center(self) -> Point:
        return (self.width / 2, self.height / 2)

    @property
    def radius(self) -> float:
        return min(self.width, self.height) * RING_RADIUS_FRACTION

    @property
    def inner_radius(self) -> float:
        return self.radius * CHORD_INNER_FRACTION

    @property
    def unit(self) -> float:
        """Base stroke unit; roughly one pixel on a 600px short side."""
        return min(self.width, self.height) / 600

    @property
    def ring_width(self) -> int:
        return max(2, round(self.unit * 6))

    @property
    def chord_width(self) -> int:
        return max(1, round(self.unit))


@dataclass(frozen=True)
class Run:
    """A maximal stretch of consecutive positions sharing one digit."""

    digit: int
    start: int
    length: int


def golden_offset(index: int) -> float:
    """Return the low-discrepancy fraction in ``[0, 1)`` for ``index``."""
    return (index * GOLDEN_RATIO_CONJUGATE) % 1.0


def segment_angle(digit: int, fraction: float) -> float:
    """Return the angle (radians) ``fraction`` of the way through ``digit``'s segment."""
    start = RING_START + digit * SEGMENT_SPAN + SEGMENT_GAP / 2
    return start + fraction * (SEGMENT_SPAN - SEGMENT_GAP)


def polar(center: Point, radius: float, angle: float) -> Point:
    return (center[0] + math.cos(angle) * radius, center[1] + math.sin(angle) * radius)


def control_point(geometry: Geometry, start_angle: float, end_angle: float) -> Point:
    """Bezier control point on the inner circle, between both endpoints."""
    x = math.cos(start_angle) + math.cos(end_angle)
    y = math.sin(start_angle) + math.sin(end_angle)
    if math.hypot(x, y) < 1e-9:
        bisector = start_angle + math.pi / 2
    else:
        bisector = math.atan2(y, x)
    return polar(geometry.center, geometry.inner_radius, bisector)


def quadratic_curve(p0: Point, c: Point, p2: Point, steps: int = CURVE_STEPS) -> list[Point]:
    points = []
    for step in range(steps + 1):
        t = step / steps
        u = 1 - t
        points.append(
            (
                u * u * p0[0] + 2 * u * t * c[0] + t * t * p2[0],
                u * u * p0[1] + 2 * u * t * c[1] + t * t * p2[1],
            )
        )
    return points


def blend(a: Color, b: Color, t: float) -> Color:
    return (
        round(a[0] + (b[0] - a[0]) * t),
        round(a[1] + (b[1] - a[1]) * t),
        round(a[2] + (b[2] - a[2]) * t),
    )


def iter_runs(digits: list[int]) -> Iterator[Run]:
    """Yield runs of equal digits; ``digits[0]`` belongs to position 1."""
    start = 0
    for index in range(1, len(digits) + 1):
        if index == len(digits) or digits[index] != digits[start]:
            yield Run(digit=digits[start], start=start + 1, length=index - start)
            start = index


def marker_tier(length: int) -> int:
    """Size tier for a run, or -1 when the run gets no marker."""
    tier = -1
    for index, minimum in enumerate(MARKER_TIERS):
        if length >= minimum:
            tier = index
    return tier


def draw_ring(draw: ImageDraw.ImageDraw, geometry: Geometry) -> None:
    cx, cy = geometry.center
    r = geometry.radius
    bbox = (cx - r, cy - r, cx + r, cy + r)
    for digit, color in enumerate(PALETTE):
        start = math.degrees(segment_angle(digit, 0.0))
        end = math.degrees(segment_angle(digit, 1.0))
        draw.arc(bbox, start=start, end=end, fill=color, width=geometry.ring_width)


def draw_chord(
    draw: ImageDraw.ImageDraw,
    geometry: Geometry,
    position: int,
    previous_digit: int,
    digit: int,
) -> None:
    """Draw the chord joining ``position - 1`` to ``position``.

    Each endpoint's offset depends only on its own position, so consecutive
    chords meet at the same ring point.
    """
    start_angle = segment_angle(previous_digit, golden_offset(position - 1))
    end_angle = segment_angle(digit, golden_offset(position))
    p0 = polar(geometry.center, geometry.radius, start_angle)
    p2 = polar(geometry.center, geometry.radius, end_angle)
    curve = quadratic_curve(p0, control_point(geometry, start_angle, end_angle), p2)

    start_color = PALETTE[previous_digit]
    end_color = PALETTE[digit]
    steps = len(curve) - 1
    for step in range(steps):
        r, g, b = blend(start_color, end_color, (step + 0.5) / steps)
        draw.line(
            [curve[step], curve[step + 1]],
            fill=(r, g, b, CHORD_ALPHA),
            width=geometry.chord_width,
        )


def draw_markers(draw: ImageDraw.ImageDraw, geometry: Geometry, digits: list[int]) -> None:
    base = geometry.radius + geometry.ring_width * 2
    for run in iter_runs(digits):
        tier = marker_tier(run.length)
        if tier < 0:
            continue
        size = geometry.unit * (3 + 2 * tier)
        angle = segment_angle(run.digit, golden_offset(run.start))
        x, y = polar(geometry.center, base + size + geometry.unit * 4, angle)
        r, g, b = PALETTE[run.digit]
        draw.ellipse((x - size, y - size, x + size, y + size), fill=(r, g, b, MARKER_ALPHA))


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="PNG")
    except (OSError, ValueError) as exc:
        raise RenderError(f"Failed to encode wallpaper: {exc}") from exc
    return buffer.getvalue()


@dataclass
class _ChordLayer:
    count: int
    image: Image.Image


class SequenceRenderer:
    """Renders the claimed prefix at every configured resolution.

    The background, ring and chord layer of the last render is kept per
    resolution. A later render with a larger count draws only the new chords on
    top of a copy, which produces exactly the bytes a full redraw would.
    """

    def __init__(self, digit_source: DigitSource, resolutions: Mapping[str, tuple[int, int]]):
        if not resolutions:
            raise ValueError("At least one resolution is required")
        for name, (width, height) in resolutions.items():
            if width <= 0 or height <= 0:
                raise ValueError(f"Invalid resolution {name!r}: {width}x{height}")
        self.digit_source = digit_source
        self.resolutions = dict(resolutions)
        self._layers: dict[str, _ChordLayer] = {}
        self._lock = threading.Lock()

    def render(self, assigned_count: int) -> dict[str, bytes]:
        """Return PNG bytes keyed by resolution name for ``assigned_count`` positions."""
        if assigned_count < 0:
            raise ValueError("assigned_count must be non-negative")
        digits = self.digit_source.digits_for_positions(assigned_count)
        images: dict[str, bytes] = {}
        with self._lock:
            for name, (width, height) in self.resolutions.items():
                started = time.perf_counter()
                images[name] = self._render_one(name, Geometry(width, height), digits)
                logger.debug(
                    "Rendered %s with %d positions in %.1f ms",
                    name,
                    assigned_count,
                    (time.perf_counter() - started) * 1000,
                )
        return images

    def _render_one(self, name: str, geometry: Geometry, digits: list[int]) -> bytes:
        layer = self._chord_layer(name, geometry, digits)
        canvas = layer.copy()
        draw_markers(ImageDraw.Draw(canvas, "RGBA"), geometry, digits)
        return encode_png(canvas)

    def _chord_layer(self, name: str, geometry: Geometry, digits: list[int]) -> Image.Image:
        count = len(digits)
        cached = self._layers.get(name)
        if cached is not None and cached.count <= count:
            image = cached.image.copy()
            first = max(cached.count + 1, 2)
        else:
            image = Image.new("RGB", (geometry.width, geometry.height), BACKGROUND)
            draw_ring(ImageDraw.Draw(image), geometry)
            first = 2

        draw = ImageDraw.Draw(image, "RGBA")
        for position in range(first, count + 1):
            draw_chord(draw, geometry, position, digits[position - 2], digits[position - 1])

        self._layers[name] = _ChordLayer(count=count, image=image)
        return image

    def clear_cache(self) -> None:
        """Forget cached chord layers, e.g. after an administrative reset."""
        with self._lock:
            self._layers.clear()


def render(
    assigned_count: int,
    digit_source: DigitSource,
    resolutions: Mapping[str, tuple[int, int]],
) -> dict[str, bytes]:
    """Render ``assigned_count`` positions without any cached state."""
    return SequenceRenderer(digit_source, resolutions).render(assigned_count)
