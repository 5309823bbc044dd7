"""
Email (plus push, where a device token is registered) notifications.

Every notifier looks up its recipients and message content from the current
database state when it runs. Notifiers return {"ok": True, "sent": n} with the
number of email recipients and let delivery errors propagate.
"""

import logging
import os
from datetime import date
from html import escape
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from models.Group import Group
from models.GroupMember import GroupMember
from models.Profile import Profile
from models.Trip import Trip
from models.TripMember import TripMember, MemberStatus
from services import email_service, fcm_service
from services.availability import compute_best_date_range
from services.voting import resolve_vote_if_closed, tally_votes

logger = logging.getLogger("grouptrip.notifications")

APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:3000")


# ───────────────── helpers ─────────────────

def _group_label(db: Session, group_id: int) -> str:
    group = db.query(Group).filter(Group.group_id == group_id).first()
    return group.group_name if group and group.group_name else "your group"


def _trip_label(trip: Trip) -> str:
    return trip.trip_name or f"Trip #{trip.trip_id}"


def _trip_link(trip: Trip) -> str:
    return f'<p><a href="{APP_BASE_URL}/trip/{trip.trip_id}">Open the trip</a></p>'


def _display_name(profile: Profile) -> str:
    return profile.full_name or profile.email or "A new member"


def group_member_profiles(db: Session, group_id: int) -> List[Profile]:
    return (
        db.query(Profile)
        .join(GroupMember, GroupMember.user_id == Profile.id)
        .filter(GroupMember.group_id == group_id)
        .order_by(GroupMember.id)
        .all()
    )


def trip_member_profiles(
    db: Session,
    trip_id: int,
    statuses: Optional[Sequence[MemberStatus]] = None,
    exclude_user_id: Optional[str] = None,
) -> List[Profile]:
    q = (
        db.query(Profile)
        .join(TripMember, TripMember.user_id == Profile.id)
        .filter(TripMember.trip_id == trip_id)
    )
    if statuses:
        q = q.filter(TripMember.status.in_(list(statuses)))
    if exclude_user_id:
        q = q.filter(TripMember.user_id != exclude_user_id)
    return q.order_by(TripMember.id).all()


def _exclude(profiles: Iterable[Profile], joiner: Optional[Profile]) -> List[Profile]:
    if joiner is None:
        return list(profiles)
    me = (joiner.email or "").lower()
    return [p for p in profiles if p.id != joiner.id and (p.email or "").lower() != me]


def _dispatch(recipients: List[Profile], subject: str, html: str, push_body: str, data: dict) -> int:
    emails = email_service.normalize_recipients(p.email for p in recipients)
    if not emails:
        return 0
    sent = email_service.send_email(emails, subject, html)

    tokens = [p.fcm_token for p in recipients if p.fcm_token]
    if tokens:
        result = fcm_service.send_notification_to_multiple(tokens, subject, push_body, data)
        if result.get("failure"):
            logger.warning("Push for '%s': %s", subject, result)
    return sent


def _load_trip(db: Session, trip_id: int) -> Optional[Trip]:
    trip = db.query(Trip).filter(Trip.trip_id == trip_id).first()
    if trip is None:
        logger.warning("Trip %s not found; nothing to notify", trip_id)
    return trip


# ───────────────── group ─────────────────

def notify_group_joined(db: Session, group_id: int, joiner: Profile, exclude_self: bool = True) -> dict:
    recipients = group_member_profiles(db, group_id)
    if exclude_self:
        recipients = _exclude(recipients, joiner)
    if not recipients:
        return {"ok": True, "sent": 0}

    group_label = escape(_group_label(db, group_id))
    display = escape(_display_name(joiner))
    subject = f"{_display_name(joiner)} joined {_group_label(db, group_id)}"
    html = f"""
    <p>Hello members of <b>{group_label}</b>,</p>
    <p><b>{display}</b> just joined the group.</p>
    <hr/>
    <p>Ready for the next trip together!</p>
    """.strip()
    sent = _dispatch(recipients, subject, html, f"{_display_name(joiner)} joined the group",
                     {"type": "group_joined", "group_id": group_id})
    return {"ok": True, "sent": sent}


# ───────────────── trip created / joined ─────────────────

def notify_trip_created(db: Session, trip: Trip) -> dict:
    recipients = group_member_profiles(db, trip.group_id)
    if not recipients:
        return {"ok": True, "sent": 0}

    group_label = _group_label(db, trip.group_id)
    date_line = (
        f"<p>Trip window: <b>{trip.date_range_start.isoformat()}</b> – "
        f"<b>{trip.date_range_end.isoformat()}</b></p>"
    )
    if trip.is_vote_trip:
        action = f"<p>Vote for a destination before <b>{trip.vote_close_date.isoformat()}</b>.</p>"
    else:
        action = f"<p>Destination: <b>{escape(trip.location or '-')}</b></p>"

    subject = f"New trip in {group_label}: {_trip_label(trip)}"
    html = f"""
    <p>A new trip was created in <b>{escape(group_label)}</b></p>
    <p>Trip name: <b>{escape(_trip_label(trip))}</b></p>
    {date_line}
    {action}
    <p>Join before <b>{trip.join_deadline.isoformat()}</b>.</p>
    <hr/>
    {_trip_link(trip)}
    """.strip()
    sent = _dispatch(recipients, subject, html, f"{_trip_label(trip)} is open for joining",
                     {"type": "trip_created", "trip_id": trip.trip_id})
    return {"ok": True, "sent": sent}


def notify_trip_joined(db: Session, trip: Trip, joiner: Profile, exclude_self: bool = True) -> dict:
    recipients = trip_member_profiles(
        db, trip.trip_id,
        statuses=[MemberStatus.JOINED],
        exclude_user_id=joiner.id if exclude_self else None,
    )
    if exclude_self:
        recipients = _exclude(recipients, joiner)
    if not recipients:
        return {"ok": True, "sent": 0}

    group_label = _group_label(db, trip.group_id)
    display = _display_name(joiner)
    subject = f"{display} joined the trip: {_trip_label(trip)}"
    html = f"""
    <p>A member joined <b>{escape(_trip_label(trip))}</b> in <b>{escape(group_label)}</b></p>
    <p>New participant: <b>{escape(display)}</b></p>
    <hr/>
    {_trip_link(trip)}
    """.strip()
    sent = _dispatch(recipients, subject, html, f"{display} is in",
                     {"type": "trip_joined", "trip_id": trip.trip_id})
    return {"ok": True, "sent": sent}


# ───────────────── scheduled digests ─────────────────

def notify_join_deadline(db: Session, trip_id: int) -> dict:
    """Join deadline digest: who joined and the best dates, to everyone still on the trip."""
    trip = _load_trip(db, trip_id)
    if trip is None:
        return {"ok": True, "sent": 0}

    members = db.query(TripMember).filter(TripMember.trip_id == trip_id).order_by(TripMember.id).all()
    joined = [m for m in members if m.status == MemberStatus.JOINED]
    recipients = trip_member_profiles(db, trip_id, statuses=[MemberStatus.PENDING, MemberStatus.JOINED])
    if not recipients:
        return {"ok": True, "sent": 0}

    label = _trip_label(trip)
    if joined:
        names = "".join(f"<li>{escape(m.name or m.user_id)}</li>" for m in joined)
        best = compute_best_date_range(members, trip.num_days)
        if best:
            dates = f"<p>Best dates: <b>{best.start.isoformat()}</b> – <b>{best.end.isoformat()}</b></p>"
        else:
            dates = "<p>No common dates yet. Members, please pick your available days.</p>"
        body = f"<p>{len(joined)} member(s) joined:</p><ul>{names}</ul>{dates}"
        push_body = f"{len(joined)} member(s) joined"
    else:
        body = "<p>Nobody joined this trip before the deadline, so it will not go ahead.</p>"
        push_body = "Nobody joined this trip"

    subject = f"Joining closed: {label}"
    html = f"""
    <p>The join deadline for <b>{escape(label)}</b> has been reached.</p>
    {body}
    <hr/>
    {_trip_link(trip)}
    """.strip()
    sent = _dispatch(recipients, subject, html, push_body,
                     {"type": "join_deadline", "trip_id": trip_id})
    return {"ok": True, "sent": sent}


def notify_trip_start(db: Session, trip_id: int) -> dict:
    trip = _load_trip(db, trip_id)
    if trip is None:
        return {"ok": True, "sent": 0}

    recipients = trip_member_profiles(db, trip_id, statuses=[MemberStatus.JOINED])
    if not recipients:
        return {"ok": True, "sent": 0}

    label = _trip_label(trip)
    subject = f"Your trip starts today: {label}"
    html = f"""
    <p><b>{escape(label)}</b> starts today ({trip.date_range_start.isoformat()}).</p>
    <p>Destination: <b>{escape(trip.location or 'to be decided')}</b></p>
    <p>Budget per person: <b>{trip.budget_per_person:,.2f}</b> · {trip.num_days} day(s)</p>
    <hr/>
    <p>Have a great trip!</p>
    {_trip_link(trip)}
    """.strip()
    sent = _dispatch(recipients, subject, html, f"{label} starts today",
                     {"type": "trip_start", "trip_id": trip_id})
    return {"ok": True, "sent": sent}


def notify_vote_closed(db: Session, trip_id: int, today: Optional[date] = None) -> dict:
    """Vote close digest. Resolves the winner first so the email reports the decided location."""
    trip = _load_trip(db, trip_id)
    if trip is None:
        return {"ok": True, "sent": 0}

    winner = resolve_vote_if_closed(db, trip, today or trip.vote_close_date)
    recipients = trip_member_profiles(db, trip_id, statuses=[MemberStatus.PENDING, MemberStatus.JOINED])
    if not recipients:
        return {"ok": True, "sent": 0}

    label = _trip_label(trip)
    rows = "".join(
        f"<li>{escape(row['location_name'])}: {row['votes']}</li>" for row in tally_votes(db, trip)
    )
    if winner:
        result = f"<p>The destination is <b>{escape(winner)}</b>.</p>"
        push_body = f"Destination: {winner}"
    else:
        result = "<p>No votes were cast, so the destination is still open.</p>"
        push_body = "No votes were cast"

    subject = f"Voting closed: {label}"
    html = f"""
    <p>Voting for <b>{escape(label)}</b> has closed.</p>
    {result}
    <ul>{rows}</ul>
    <hr/>
    {_trip_link(trip)}
    """.strip()
    sent = _dispatch(recipients, subject, html, push_body,
                     {"type": "vote_closed", "trip_id": trip_id})
    return {"ok": True, "sent": sent}
