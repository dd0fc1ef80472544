"""Immutable digit source backing every position."""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

CANONICAL_START = "3."
_NON_DIGITS = re.compile(r"[^0-9]")


class DigitSource:
    """Read-only sequence of single digits indexed from zero.

    Lookups past the end return ``0`` so rendering stays well defined when
    more positions are claimed than the file provides.
    """

    def __init__(self, digits: str = "") -> None:
        if _NON_DIGITS.search(digits):
            raise ValueError("DigitSource accepts only the characters 0-9")
        self._digits = digits

    @classmethod
    def from_text(cls, raw: str) -> DigitSource:
        """Build a source from raw text, starting at the ``3.`` marker."""
        start = raw.find(CANONICAL_START)
        if start >= 0:
            raw = raw[start:]
        return cls(_NON_DIGITS.sub("", raw))

    @classmethod
    def load(cls, path: Path) -> DigitSource:
        """Load digits from ``path``; a missing file yields an all-zero source."""
        try:
            raw = path.read_text(encoding="utf-8", errors="ignore")
        except FileNotFoundError:
            logger.warning("Digit file %s not found; rendering an all-zero sequence", path)
            return cls()
        source = cls.from_text(raw)
        logger.info("Loaded %d digits from %s", len(source), path)
        return source

    def __len__(self) -> int:
        return len(self._digits)

    def get_digit(self, offset: int) -> int:
        """Return the digit at ``offset`` or ``0`` when out of range."""
        if 0 <= offset < len(self._digits):
            return int(self._digits[offset])
        return 0

    def digit_at_position(self, position: int) -> int:
        """Return the digit claimed by the 1-based ``position``."""
        return self.get_digit(position - 1)

    def digits_for_positions(self, count: int) -> list[int]:
        """Return the digits of positions ``1..count`` in order."""
        available = self._digits[: max(count, 0)]
        digits = [int(ch) for ch in available]
        digits.extend(0 for _ in range(count - len(digits)))
        return digits
