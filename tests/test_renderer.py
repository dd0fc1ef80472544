"""Tests for the chord diagram renderer."""

import io
import math

import pytest
from PIL import Image

from pi_canvas.services.digits import DigitSource
from pi_canvas.services.renderer import (
    PALETTE,
    SEGMENT_SPAN,
    Geometry,
    Run,
    SequenceRenderer,
    golden_offset,
    iter_runs,
    marker_tier,
    polar,
    render,
    segment_angle,
)
from tests.conftest import TEST_RESOLUTIONS


def _open(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))


def test_golden_offset_is_pure_and_in_unit_interval():
    values = [golden_offset(i) for i in range(500)]
    assert values == [golden_offset(i) for i in range(500)]
    assert all(0.0 <= v < 1.0 for v in values)
    # Low discrepancy: neighbouring indices never collapse onto one point.
    assert len({round(v, 6) for v in values}) == len(values)


def test_segment_angles_start_at_twelve_and_run_clockwise():
    assert segment_angle(0, 0.0) > -math.pi / 2
    assert segment_angle(0, 0.0) - (-math.pi / 2) < math.radians(2)
    for digit in range(9):
        assert segment_angle(digit + 1, 0.0) == pytest.approx(
            segment_angle(digit, 0.0) + SEGMENT_SPAN
        )
        assert segment_angle(digit, 1.0) < segment_angle(digit + 1, 0.0)


def test_iter_runs_groups_consecutive_digits():
    runs = list(iter_runs([3, 1, 1, 1, 5, 5, 9]))
    assert runs == [
        Run(digit=3, start=1, length=1),
        Run(digit=1, start=2, length=3),
        Run(digit=5, start=5, length=2),
        Run(digit=9, start=7, length=1),
    ]
    assert list(iter_runs([])) == []


def test_marker_tiers_grow_with_run_length():
    assert marker_tier(1) == -1
    tiers = [marker_tier(length) for length in (2, 3, 4, 5, 6, 40)]
    assert tiers == [0, 1, 2, 2, 3, 3]


def test_render_returns_png_per_resolution(digit_source):
    images = render(10, digit_source, TEST_RESOLUTIONS)
    assert set(images) == set(TEST_RESOLUTIONS)
    for name, data in images.items():
        image = _open(data)
        assert image.format == "PNG"
        assert image.size == TEST_RESOLUTIONS[name]


def test_render_is_byte_for_byte_deterministic(digit_source):
    first = render(30, digit_source, TEST_RESOLUTIONS)
    second = render(30, DigitSource.from_text("3.14159265358979323846264338327950288"), TEST_RESOLUTIONS)
    assert first == second


def test_incremental_render_matches_full_render(digit_source):
    renderer = SequenceRenderer(digit_source, TEST_RESOLUTIONS)
    renderer.render(4)
    renderer.render(11)
    grown = renderer.render(25)
    assert grown == render(25, digit_source, TEST_RESOLUTIONS)

    shrunk = renderer.render(7)
    assert shrunk == render(7, digit_source, TEST_RESOLUTIONS)


def test_chords_change_the_image(digit_source):
    assert render(1, digit_source, TEST_RESOLUTIONS) == render(0, digit_source, TEST_RESOLUTIONS)
    assert render(2, digit_source, TEST_RESOLUTIONS) != render(1, digit_source, TEST_RESOLUTIONS)


def test_ring_is_drawn_without_assignments(digit_source):
    geometry = Geometry(400, 400)
    data = render(0, digit_source, {"square": (400, 400)})["square"]
    image = _open(data).convert("RGB")
    for digit, color in enumerate(PALETTE):
        x, y = polar(geometry.center, geometry.radius - 2, segment_angle(digit, 0.5))
        assert image.getpixel((int(x), int(y))) == color
    assert image.getpixel((0, 0)) == (0, 0, 0)


def test_render_beyond_digit_source_completes():
    short = DigitSource.from_text("3.14")
    images = render(60, short, TEST_RESOLUTIONS)
    assert all(_open(data).size == TEST_RESOLUTIONS[name] for name, data in images.items())


def test_render_with_empty_source_is_well_defined():
    images = render(20, DigitSource(), TEST_RESOLUTIONS)
    assert images == render(20, DigitSource(), TEST_RESOLUTIONS)


def test_invalid_arguments_are_rejected(digit_source):
    with pytest.raises(ValueError):
        SequenceRenderer(digit_source, {})
    with pytest.raises(ValueError):
        SequenceRenderer(digit_source, {"bad": (0, 100)})
    with pytest.raises(ValueError):
        SequenceRenderer(digit_source, TEST_RESOLUTIONS).render(-1)
