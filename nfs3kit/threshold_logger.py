"""Logging of collection sizes at growing thresholds (10k, 20k, 50k, 100k, ...)."""

from __future__ import annotations

import logging
import threading

__all__ = ["ThresholdLogger", "billion_bounds", "calculate_threshold", "format_number"]

_log = logging.getLogger(__name__)

BILLION = 1_000_000_000
_USIZE_MAX = 2**64 - 1

PREDEFINED_RANGES: tuple[range, ...] = (
    range(0, 10_000),
    range(10_000, 20_000),
    range(20_000, 50_000),
    range(50_000, 100_000),
    range(100_000, 200_000),
    range(200_000, 500_000),
    range(500_000, 1_000_000),
    range(1_000_000, 2_000_000),
    range(2_000_000, 5_000_000),
    range(5_000_000, 10_000_000),
    range(10_000_000, 20_000_000),
    range(20_000_000, 50_000_000),
    range(50_000_000, 100_000_000),
    range(100_000_000, 200_000_000),
    range(200_000_000, 500_000_000),
    range(500_000_000, 750_000_000),
    range(750_000_000, 1_000_000_000),
)


def billion_bounds(size: int) -> range:
    """Return the billion-wide range that holds ``size``."""
    if size < BILLION:
        return range(0, BILLION)
    current = (size // BILLION) * BILLION
    return range(current, min(current + BILLION, _USIZE_MAX))


def calculate_threshold(size: int) -> range:
    """Return the threshold range ``size`` falls in; ``start`` is 0 below the first threshold."""
    for entry in PREDEFINED_RANGES:
        if size in entry:
            return entry
    return billion_bounds(size)


def format_number(n: int) -> str:
    """Format ``n`` in at most 7 characters, using K, M and B units for large values."""
    if n <= 999_999:
        return str(n)
    if n <= 9_999_999:
        return f"{n // 1_000}K" if n % 1_000 == 0 else f"{n / 1_000:.2f}K"
    if n <= 99_999_999:
        return f"{n // 1_000_000}M" if n % 1_000_000 == 0 else f"{n / 1_000_000:.2f}M"
    if n <= 999_999_999:
        return f"{n // 1_000_000}M" if n % 1_000_000 == 0 else f"{n / 1_000_000:.1f}M"
    if n <= 9_999_999_999:
        return f"{n // BILLION}B" if n % BILLION == 0 else f"{n / BILLION:.2f}B"
    if n <= 99_999_999_999:
        return f"{n // BILLION}B" if n % BILLION == 0 else f"{n / BILLION:.1f}B"
    return f"{n // BILLION}B"


class ThresholdLogger:
    """Tracks a collection size and logs once each time a new threshold is reached."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._next_threshold = PREDEFINED_RANGES[0].stop
        self._lock = threading.Lock()

    @property
    def next_threshold(self) -> int:
        return self._next_threshold

    def check_and_log(self, current_size: int) -> None:
        """Log if ``current_size`` has reached the next threshold."""
        with self._lock:
            if current_size < self._next_threshold:
                return
            self._next_threshold = calculate_threshold(current_size).stop
        formatted = format_number(current_size)
        _log.info(
            "new threshold reached: %s=%d (%s)",
            self.name,
            current_size,
            formatted,
            extra={"counter": self.name, "count": current_size, "formatted_count": formatted},
        )

    def __repr__(self) -> str:
        return f"ThresholdLogger(name={self.name!r}, next_threshold={self._next_threshold})"