"""
Shared pytest fixtures for the group trip API tests.

This module provides:
- An in-memory SQLite database, recreated for every test
- A TestClient wired to that database with a pinned "today"
- An outbox that captures email and push instead of sending them
- Factories for profiles, groups, trips and votes
"""
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# ─────────────────────────── ENVIRONMENT ───────────────────────────

TEST_ROOT = Path(__file__).resolve().parent
LOG_DIR = Path(tempfile.mkdtemp(prefix="grouptrip-test-logs-"))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_LOG_PATH"] = str(LOG_DIR / "api.log")
os.environ["SMTP_HOST"] = ""
os.environ.pop("FIREBASE_CREDENTIALS_PATH", None)
os.environ.pop("GOOGLE_APPLICATION_CREDENTIALS", None)

from main import app  # noqa: E402
from database import Base, get_db  # noqa: E402
from models import Group, GroupMember, Profile, Trip, TripLocation, TripMember, TripVote, MemberStatus  # noqa: E402
from services import email_service, fcm_service  # noqa: E402
from utils.dates import get_today  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_TODAY = date(2025, 5, 20)

# ─────────────────────────── FIXTURES ───────────────────────────

@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def set_today():
    def _set(value: date):
        app.dependency_overrides[get_today] = lambda: value
    _set(DEFAULT_TODAY)
    return _set


@pytest.fixture
def client(db, set_today):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


class Outbox:
    """Captured outgoing messages."""

    def __init__(self):
        self.emails: List[Dict[str, Any]] = []
        self.pushes: List[Dict[str, Any]] = []
        self.fail_when: Optional[Callable[[Dict[str, Any]], bool]] = None

    def send_email(self, to, subject, html):
        message = {"to": list(to), "subject": subject, "html": html}
        if self.fail_when and self.fail_when(message):
            raise email_service.EmailDeliveryError("relay unavailable")
        if not message["to"]:
            return 0
        self.emails.append(message)
        return len(message["to"])

    def send_push(self, fcm_tokens, title, body, data=None):
        self.pushes.append({"tokens": list(fcm_tokens), "title": title, "body": body, "data": data})
        return {"success": len(fcm_tokens), "failure": 0}

    def subjects(self) -> List[str]:
        return [m["subject"] for m in self.emails]


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    box = Outbox()
    monkeypatch.setattr(email_service, "send_email", box.send_email)
    monkeypatch.setattr(fcm_service, "send_notification_to_multiple", box.send_push)
    return box

# ─────────────────────────── TEST DATA FACTORIES ───────────────────────────

def make_profile(db, user_id: str, full_name: Optional[str] = None, email: Optional[str] = None,
                 fcm_token: Optional[str] = None) -> Profile:
    profile = Profile(
        id=user_id,
        email=email or f"{user_id}@example.com",
        full_name=full_name if full_name is not None else user_id.capitalize(),
        fcm_token=fcm_token,
    )
    db.add(profile)
    db.commit()
    return profile


def make_group(db, creator: Profile, members: List[Profile] = (), name: str = "Weekend Crew",
               join_code: str = "ABCD1234") -> Group:
    group = Group(group_name=name, join_code=join_code, created_by=creator.id)
    db.add(group)
    db.flush()
    for profile in [creator, *members]:
        db.add(GroupMember(group_id=group.group_id, user_id=profile.id))
    db.commit()
    return group


def make_trip(db, group: Group, seed_members: bool = True, locations: List[str] = (), **overrides) -> Trip:
    values = dict(
        group_id=group.group_id,
        created_by=group.created_by,
        trip_name="Beach Escape",
        location="Hua Hin",
        budget_per_person=3000,
        num_days=2,
        date_range_start=date(2025, 6, 10),
        date_range_end=date(2025, 6, 14),
        join_deadline=date(2025, 6, 1),
        vote_close_date=None,
        join_deadline_notified=False,
        trip_start_notified=False,
        vote_close_notified=False,
    )
    values.update(overrides)
    trip = Trip(**values)
    db.add(trip)
    db.flush()
    for name in locations:
        db.add(TripLocation(trip_id=trip.trip_id, location_name=name))
    if seed_members:
        for gm in db.query(GroupMember).filter(GroupMember.group_id == group.group_id).order_by(GroupMember.id):
            db.add(TripMember(trip_id=trip.trip_id, user_id=gm.user_id, name=gm.user_id,
                              status=MemberStatus.PENDING))
    db.commit()
    db.refresh(trip)
    return trip


def set_member(db, trip: Trip, user_id: str, status: MemberStatus = MemberStatus.JOINED,
               start: Optional[date] = None, end: Optional[date] = None) -> TripMember:
    member = db.query(TripMember).filter_by(trip_id=trip.trip_id, user_id=user_id).one()
    member.status = status
    member.selected_start_date = start
    member.selected_end_date = end
    db.commit()
    return member


def add_vote(db, trip: Trip, user_id: str, location_name: str) -> TripVote:
    location = db.query(TripLocation).filter_by(trip_id=trip.trip_id, location_name=location_name).one()
    vote = TripVote(trip_id=trip.trip_id, user_id=user_id, location_id=location.location_id)
    db.add(vote)
    db.commit()
    return vote
