"""
Worked-time conversion for the posting layer.

Pure functions with deterministic behavior. No I/O.

Durations arrive in seconds.  Experience weighting scales a duration by a
percentage before it is converted to hours; the billing engines only ever
see the weighted hours.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

_SECONDS_PER_HOUR = Decimal("3600")
_TWO_PLACES = Decimal("0.01")


def duration_to_hours(duration_secs: int) -> Decimal:
    """Convert seconds to hours, rounded to 2 decimal places half-up."""
    if duration_secs < 0:
        raise ValueError("duration_secs must be non-negative")
    return (Decimal(duration_secs) / _SECONDS_PER_HOUR).quantize(
        _TWO_PLACES, rounding=ROUND_HALF_UP
    )


def weight_duration(duration_secs: int, percentage: Decimal | int) -> int:
    """Scale a duration by an experience weighting percentage.

    The result is truncated to whole seconds.
    """
    if percentage < 0:
        raise ValueError("percentage must be non-negative")
    return int(Decimal(duration_secs) * Decimal(str(percentage)) / Decimal("100"))
