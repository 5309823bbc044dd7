"""Tests for the best common date range aggregator."""

from datetime import date
from types import SimpleNamespace

from models.TripMember import MemberStatus
from services.availability import build_date_histogram, compute_best_date_range


def joined(start, end, status="JOINED"):
    return {"status": status, "selected_start_date": start, "selected_end_date": end}


def june(day: int) -> date:
    return date(2025, 6, day)


def test_two_day_window_picks_highest_overlap():
    members = [joined("2025-06-10", "2025-06-14"), joined("2025-06-11", "2025-06-12")]

    counts = build_date_histogram(members)
    assert [counts[june(d)] for d in range(10, 15)] == [1, 2, 2, 1, 1]

    best = compute_best_date_range(members, 2)
    assert (best.start, best.end) == (june(11), june(12))


def test_returns_none_without_joined_members():
    assert compute_best_date_range([], 1) is None
    members = [
        joined("2025-06-10", "2025-06-12", status="PENDING"),
        joined("2025-06-10", "2025-06-12", status="CANCELLED"),
        joined(None, None),
        joined("2025-06-10", None),
    ]
    assert compute_best_date_range(members, 2) is None


def test_single_day_tie_goes_to_earliest_date():
    members = [joined("2025-06-12", "2025-06-12"), joined("2025-06-10", "2025-06-10"), joined("2025-06-14", "2025-06-14")]
    best = compute_best_date_range(members, 1)
    assert (best.start, best.end) == (june(10), june(10))


def test_single_day_prefers_higher_count_over_earlier_date():
    members = [joined("2025-06-10", "2025-06-11"), joined("2025-06-11", "2025-06-13")]
    best = compute_best_date_range(members, 1)
    assert best.start == best.end == june(11)


def test_inverted_range_is_ignored():
    members = [joined("2025-06-14", "2025-06-10"), joined("2025-06-12", "2025-06-13")]
    best = compute_best_date_range(members, 2)
    assert (best.start, best.end) == (june(12), june(13))
    assert compute_best_date_range([joined("2025-06-14", "2025-06-10")], 1) is None


def test_unparseable_dates_are_dropped():
    members = [joined("not-a-date", "2025-06-12"), joined("2025-13-40", "2025-06-12"), joined("2025-06-11", "2025-06-11")]
    best = compute_best_date_range(members, 1)
    assert best.start == june(11)


def test_window_longer_than_available_span_has_no_result():
    members = [joined("2025-06-01", "2025-06-02")]
    assert compute_best_date_range(members, 3) is None
    assert compute_best_date_range(members, 3, dense=False) is None


def test_gaps_count_as_zero_on_calendar_windows():
    members = [
        joined("2025-06-01", "2025-06-01"),
        joined("2025-06-05", "2025-06-05"),
        joined("2025-06-05", "2025-06-05"),
        joined("2025-06-09", "2025-06-09"),
        joined("2025-06-09", "2025-06-09"),
    ]
    dense = compute_best_date_range(members, 2)
    assert (dense.start, dense.end) == (june(4), june(5))

    # positional windows pair 06-05 with 06-09 across the uncovered days
    positional = compute_best_date_range(members, 2, dense=False)
    assert (positional.start, positional.end) == (june(5), june(6))


def test_accepts_rows_with_enum_status_and_date_objects():
    rows = [
        SimpleNamespace(status=MemberStatus.JOINED, selected_start_date=june(3), selected_end_date=june(5)),
        SimpleNamespace(status=MemberStatus.PENDING, selected_start_date=june(1), selected_end_date=june(2)),
    ]
    best = compute_best_date_range(rows, 3)
    assert best.as_dict() == {"start": "2025-06-03", "end": "2025-06-05"}


def test_invalid_duration_yields_no_recommendation():
    members = [joined("2025-06-10", "2025-06-12")]
    assert compute_best_date_range(members, 0) is None
    assert compute_best_date_range(members, "three") is None
