"""Tests for the immutable digit source."""

import logging
from pathlib import Path

import pytest

from pi_canvas.services.digits import DigitSource
from tests.conftest import DIGITS_FILE


def test_from_text_starts_at_canonical_marker():
    """Text before the ``3.`` marker is discarded along with non-digits."""
    source = DigitSource.from_text("pi, 1M digits (v2)\n3.14 159\n26-5")
    assert len(source) == 9
    assert [source.get_digit(i) for i in range(9)] == [3, 1, 4, 1, 5, 9, 2, 6, 5]


def test_from_text_without_marker_keeps_all_digits():
    source = DigitSource.from_text("31 41")
    assert len(source) == 4
    assert source.get_digit(0) == 3


def test_out_of_range_lookups_return_zero(digit_source):
    assert digit_source.get_digit(-1) == 0
    assert digit_source.get_digit(len(digit_source)) == 0
    assert digit_source.get_digit(10**9) == 0


def test_digit_at_position_is_offset_by_one(digit_source):
    for n in range(0, 50):
        assert digit_source.digit_at_position(n + 1) == digit_source.get_digit(n)


def test_digits_for_positions_pads_with_zero():
    source = DigitSource.from_text("3.14")
    assert source.digits_for_positions(6) == [3, 1, 4, 0, 0, 0]
    assert source.digits_for_positions(0) == []


def test_constructor_rejects_non_digits():
    with pytest.raises(ValueError):
        DigitSource("3.14")


def test_load_missing_file_behaves_as_zeros(tmp_path: Path, caplog):
    with caplog.at_level(logging.WARNING, logger="pi_canvas.services.digits"):
        source = DigitSource.load(tmp_path / "missing.txt")
    assert len(source) == 0
    assert source.get_digit(0) == 0
    assert "not found" in caplog.text


def test_load_bundled_digits():
    source = DigitSource.load(DIGITS_FILE)
    assert len(source) > 1000
    assert "".join(str(source.get_digit(i)) for i in range(11)) == "31415926535"
    # The Feynman point: six nines starting at decimal place 762.
    assert [source.get_digit(i) for i in range(762, 768)] == [9] * 6
