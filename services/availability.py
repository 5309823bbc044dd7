"""
Best common date range for a trip.

Members pick a contiguous range of days they are available. The aggregator
counts, for each calendar day, how many JOINED members are available and then
looks for the window of `num_days` consecutive days with the highest total.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, Optional

from models.TripMember import MemberStatus
from utils.dates import parse_ymd


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def as_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def _field(member: Any, name: str):
    if isinstance(member, dict):
        return member.get(name)
    return getattr(member, name, None)


def _is_joined(member: Any) -> bool:
    status = _field(member, "status")
    if isinstance(status, MemberStatus):
        return status is MemberStatus.JOINED
    return str(status or "").upper() == MemberStatus.JOINED.value


def member_range(member: Any) -> Optional[DateRange]:
    """The member's usable selection, or None when it should be ignored."""
    if not _is_joined(member):
        return None
    start = parse_ymd(_field(member, "selected_start_date"))
    end = parse_ymd(_field(member, "selected_end_date"))
    if start is None or end is None or start > end:
        return None
    return DateRange(start, end)


def build_date_histogram(members: Iterable[Any]) -> Counter:
    """Count available JOINED members per calendar day."""
    counts: Counter = Counter()
    for member in members:
        selection = member_range(member)
        if selection is None:
            continue
        day = selection.start
        while day <= selection.end:
            counts[day] += 1
            day += timedelta(days=1)
    return counts


def compute_best_date_range(members: Iterable[Any], num_days: int, dense: bool = True) -> Optional[DateRange]:
    """
    Return the `num_days`-long window most JOINED members can attend.

    `members` may be TripMember rows or plain dicts with the same keys; rows
    that are not JOINED or carry missing/unparseable/inverted dates are ignored.
    Ties go to the earliest window. Returns None when nobody has a usable
    selection or when no window of the requested length fits.

    With `dense=True` days nobody selected count as zero and windows slide
    over the calendar. `dense=False` slides over the sorted distinct selected
    days instead, so a window may jump over an uncovered gap; the result is
    still reported as `start + num_days - 1`.
    """
    try:
        num_days = int(num_days)
    except (TypeError, ValueError):
        return None
    if num_days < 1:
        return None

    counts = build_date_histogram(members)
    if not counts:
        return None
    days = sorted(counts)

    if num_days == 1:
        best_day, best_count = days[0], counts[days[0]]
        for day in days[1:]:
            if counts[day] > best_count:
                best_day, best_count = day, counts[day]
        return DateRange(best_day, best_day)

    if dense:
        first, last = days[0], days[-1]
        span = (last - first).days + 1
        if span < num_days:
            return None
        calendar = [first + timedelta(days=i) for i in range(span)]
    else:
        if len(days) < num_days:
            return None
        calendar = days

    window = sum(counts.get(day, 0) for day in calendar[:num_days])
    best_start, best_count = calendar[0], window
    for i in range(1, len(calendar) - num_days + 1):
        window += counts.get(calendar[i + num_days - 1], 0) - counts.get(calendar[i - 1], 0)
        if window > best_count:
            best_start, best_count = calendar[i], window

    return DateRange(best_start, best_start + timedelta(days=num_days - 1))
