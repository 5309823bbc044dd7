"""
Trip lifecycle: phase derivation and the scheduled notification scan.

A trip crosses three independent boundaries: the vote close date (vote trips
only), the join deadline and the first day of the trip window. Each crossing
sends one notification, guarded by a `*_notified` flag on the trip. The scan
is driven by an external scheduler and takes the target date explicitly.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.Trip import Trip
from models.TripMember import TripMember, MemberStatus
from services import notifications
from services.voting import is_voting_open

logger = logging.getLogger("grouptrip.lifecycle")


class TripPhase(str, enum.Enum):
    VOTING = "VOTING"
    JOIN_OPEN = "JOIN_OPEN"
    JOIN_CLOSED = "JOIN_CLOSED"


def trip_phase(trip: Trip, today: date) -> TripPhase:
    if is_voting_open(trip, today):
        return TripPhase.VOTING
    if today <= trip.join_deadline:
        return TripPhase.JOIN_OPEN
    return TripPhase.JOIN_CLOSED


def is_join_open(trip: Trip, today: date) -> bool:
    return today <= trip.join_deadline


def has_started(trip: Trip, today: date) -> bool:
    return today >= trip.date_range_start


def is_trip_failed(trip: Trip, members: Iterable[TripMember], today: date) -> bool:
    """Joining has closed and nobody joined."""
    if is_join_open(trip, today):
        return False
    return not any(m.status == MemberStatus.JOINED for m in members)


def trip_status(trip: Trip, today: date) -> Dict:
    return {
        "phase": trip_phase(trip, today),
        "join_open": is_join_open(trip, today),
        "vote_open": trip_phase(trip, today) is TripPhase.VOTING,
        "has_started": has_started(trip, today),
    }


# ───────────────── scheduled scan ─────────────────

@dataclass(frozen=True)
class NotificationKind:
    name: str
    date_column: str
    flag_column: str
    notifier: Callable[..., dict]
    # notifier takes the scan date as `today`
    needs_date: bool = False


NOTIFICATION_KINDS: List[NotificationKind] = [
    NotificationKind("deadline", "join_deadline", "join_deadline_notified", notifications.notify_join_deadline),
    NotificationKind("start", "date_range_start", "trip_start_notified", notifications.notify_trip_start),
    NotificationKind("vote", "vote_close_date", "vote_close_notified", notifications.notify_vote_closed,
                     needs_date=True),
]

KINDS_BY_NAME = {kind.name: kind for kind in NOTIFICATION_KINDS}


def pending_trip_ids(db: Session, kind: NotificationKind, target_date: date) -> List[int]:
    """Trips whose boundary falls exactly on `target_date` and were not notified yet."""
    date_col = getattr(Trip, kind.date_column)
    flag_col = getattr(Trip, kind.flag_column)
    rows = (
        db.query(Trip.trip_id)
        .filter(date_col == target_date)
        .filter(or_(flag_col.is_(None), flag_col == False))  # noqa: E712
        .order_by(Trip.trip_id)
        .all()
    )
    return [trip_id for (trip_id,) in rows]


def mark_notified(db: Session, kind: NotificationKind, trip_id: int) -> None:
    flag_col = getattr(Trip, kind.flag_column)
    db.query(Trip).filter(Trip.trip_id == trip_id).update({flag_col: True}, synchronize_session=False)
    db.commit()


def run_notification_job(db: Session, kind: NotificationKind, target_date: date) -> Dict:
    """
    Notify every pending trip of one kind and flag the ones that went out.

    A failing trip is rolled back and left unflagged so the next scan for the
    same date retries it; the other trips are still processed.
    """
    report = {"scanned": 0, "sent": 0, "notified": [], "failed": [], "error": None}
    try:
        trip_ids = pending_trip_ids(db, kind, target_date)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("%s scan query failed for %s", kind.name, target_date)
        report["error"] = "query_failed"
        return report

    report["scanned"] = len(trip_ids)
    extra = {"today": target_date} if kind.needs_date else {}
    for trip_id in trip_ids:
        try:
            result = kind.notifier(db, trip_id, **extra)
            mark_notified(db, kind, trip_id)
        except Exception:
            db.rollback()
            logger.exception("%s notification failed for trip %s", kind.name, trip_id)
            report["failed"].append(trip_id)
            continue
        report["sent"] += (result or {}).get("sent", 0)
        report["notified"].append(trip_id)

    logger.info("%s scan for %s: scanned=%d notified=%d failed=%d sent=%d",
                kind.name, target_date, report["scanned"], len(report["notified"]),
                len(report["failed"]), report["sent"])
    return report


def scan_and_notify(db: Session, target_date: date, kinds: Optional[Iterable[str]] = None) -> Dict:
    """Run the deadline, start and vote-close jobs (or the named subset) for `target_date`."""
    selected = [KINDS_BY_NAME[name] for name in kinds] if kinds else NOTIFICATION_KINDS
    reports = {kind.name: run_notification_job(db, kind, target_date) for kind in selected}
    return {
        "date": target_date.isoformat(),
        "scanned": {name: r["scanned"] for name, r in reports.items()},
        "sent": {name: r["sent"] for name, r in reports.items()},
        "notified": {name: r["notified"] for name, r in reports.items()},
        "failed": {name: r["failed"] for name, r in reports.items()},
        "errors": {name: r["error"] for name, r in reports.items() if r["error"]},
        "total_sent": sum(r["sent"] for r in reports.values()),
    }
