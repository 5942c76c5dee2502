"""Service for expanding a recurring booking request into concrete occurrences."""

from __future__ import annotations

from dateutil.relativedelta import relativedelta
from dateutil.rrule import MONTHLY, WEEKLY, rrule

from agenda.domain.models import Interval, RecurrenceFrequency

_FREQ_MAP = {
    RecurrenceFrequency.WEEKLY: WEEKLY,
    RecurrenceFrequency.MONTHLY: MONTHLY,
}


def expand(seed: Interval, frequency: RecurrenceFrequency, count: int) -> list[Interval]:
    """Return ``count`` occurrences of ``seed``, the first being the seed itself.

    Occurrence *i* is the seed shifted by *i* weeks or *i* calendar months,
    always computed from the seed rather than from the previous occurrence.
    A monthly seed on a day the target month lacks is clamped to that month's
    last day (Jan 31 -> Feb 28 -> Mar 31), keeping time of day and duration.
    Conflicts are not considered here.
    """
    duration = seed.end - seed.start
    occurrences: list[Interval] = []
    for i in range(count):
        if frequency == RecurrenceFrequency.WEEKLY:
            offset = relativedelta(weeks=i)
        else:
            offset = relativedelta(months=i)
        start = seed.start + offset
        occurrences.append(Interval(start=start, end=start + duration))
    return occurrences


def occurrence_note(index: int, count: int) -> str:
    """Notes prefix identifying occurrence ``index`` (zero based) of a series."""
    return f"[Reserva Recorrente {index + 1}/{count}] "


def to_rrule(seed: Interval, frequency: RecurrenceFrequency, count: int) -> str:
    """RFC 5545 rule describing the series, e.g. ``FREQ=WEEKLY;COUNT=4``."""
    rule = rrule(_FREQ_MAP[frequency], dtstart=seed.start, count=count)
    # str(rrule) renders "DTSTART:...\nRRULE:..."; keep the rule line only.
    return str(rule).splitlines()[-1].removeprefix("RRULE:")
