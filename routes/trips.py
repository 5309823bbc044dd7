import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from models.Group import Group
from models.GroupMember import GroupMember
from models.Trip import Trip
from models.TripLocation import TripLocation
from models.TripMember import TripMember, MemberStatus
from schemas import TripWrite, TripRead, TripDetail, BestDatesRead, TripDashboard
from database import get_db
from services.availability import compute_best_date_range
from services.lifecycle import trip_status, is_trip_failed
from services.notifications import notify_trip_created
from services.voting import resolve_vote_if_closed
from utils.dates import get_today

logger = logging.getLogger("grouptrip.trips")

router = APIRouter(prefix="/trips", tags=["Trips"])

NO_COMMON_DATES = "No common dates found yet: no joined member has picked a usable date range"


def get_trip_or_404(db: Session, trip_id: int) -> Trip:
    trip = db.query(Trip).filter(Trip.trip_id == trip_id).first()
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip


def _validate_trip(payload: TripWrite) -> List[str]:
    """Check the date rules shared by both trip types; return vote candidates (empty for fixed trips)."""
    if payload.date_range_start > payload.date_range_end:
        raise HTTPException(status_code=400, detail="Trip start date must be on or before the end date")
    window = (payload.date_range_end - payload.date_range_start).days + 1
    if payload.num_days > window:
        raise HTTPException(status_code=400, detail=f"Trip duration cannot exceed the {window}-day date window")
    if payload.join_deadline >= payload.date_range_start:
        raise HTTPException(status_code=400, detail="Join deadline must be before the trip start date")

    if payload.trip_type == "fixed":
        if not (payload.location or "").strip():
            raise HTTPException(status_code=400, detail="Location is required for a fixed trip")
        return []

    candidates = []
    for name in payload.locations:
        name = (name or "").strip()
        if name and name.lower() not in (c.lower() for c in candidates):
            candidates.append(name)
    if len(candidates) < 2:
        raise HTTPException(status_code=400, detail="A vote trip needs at least two different locations")
    if payload.vote_close_date is None:
        raise HTTPException(status_code=400, detail="Vote close date is required for a vote trip")
    if payload.vote_close_date >= payload.join_deadline:
        raise HTTPException(status_code=400, detail="Vote close date must be before the join deadline")
    return candidates


def _best_dates(members: List[TripMember], num_days: int):
    best = compute_best_date_range(members, num_days)
    if best is None:
        return None, NO_COMMON_DATES
    return {"start": best.start, "end": best.end}, None


@router.post("/", response_model=TripRead, status_code=status.HTTP_201_CREATED)
def create_trip(payload: TripWrite, db: Session = Depends(get_db)):
    candidates = _validate_trip(payload)

    group = db.query(Group).filter(Group.group_id == payload.group_id).first()
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")

    group_members = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group.group_id)
        .order_by(GroupMember.id)
        .all()
    )
    if not any(m.user_id == payload.created_by for m in group_members):
        raise HTTPException(status_code=403, detail="Only group members can create trips for this group")

    trip = Trip(
        group_id=group.group_id,
        created_by=payload.created_by,
        trip_name=payload.trip_name.strip(),
        location=payload.location.strip() if payload.trip_type == "fixed" else None,
        budget_per_person=payload.budget_per_person,
        num_days=payload.num_days,
        date_range_start=payload.date_range_start,
        date_range_end=payload.date_range_end,
        join_deadline=payload.join_deadline,
        vote_close_date=payload.vote_close_date if payload.trip_type == "vote" else None,
        join_deadline_notified=False,
        trip_start_notified=False,
        vote_close_notified=False,
    )
    db.add(trip)
    db.flush()

    for name in candidates:
        db.add(TripLocation(trip_id=trip.trip_id, location_name=name))

    for m in group_members:
        db.add(TripMember(
            trip_id=trip.trip_id,
            user_id=m.user_id,
            name=m.profile.full_name if m.profile else None,
            status=MemberStatus.PENDING,
        ))

    db.commit()
    db.refresh(trip)

    try:
        notify_trip_created(db, trip)
    except Exception:
        logger.exception("Trip created notification failed for trip %s", trip.trip_id)

    return trip


@router.get("/", response_model=List[TripRead])
def list_trips(group_id: Optional[int] = Query(None), db: Session = Depends(get_db)):
    q = db.query(Trip)
    if group_id is not None:
        q = q.filter(Trip.group_id == group_id)
    return q.order_by(Trip.date_range_start, Trip.trip_id).all()


@router.get("/by_user/{user_id}", response_model=List[TripRead])
def list_trips_for_user(user_id: str, db: Session = Depends(get_db)):
    return (
        db.query(Trip)
        .join(TripMember, TripMember.trip_id == Trip.trip_id)
        .filter(TripMember.user_id == user_id)
        .order_by(Trip.date_range_start, Trip.trip_id)
        .all()
    )


@router.get("/{trip_id}", response_model=TripDetail)
def get_trip(trip_id: int, db: Session = Depends(get_db), today: date = Depends(get_today)):
    trip = get_trip_or_404(db, trip_id)
    # a closed vote is settled here too, in case the scheduler has not run yet
    resolve_vote_if_closed(db, trip, today)
    return {"trip": trip, "status": trip_status(trip, today), "today": today}


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_trip(
    trip_id: int,
    user_id: str = Query(..., description="Profile deleting the trip"),  # In production, take from the auth token
    db: Session = Depends(get_db)
):
    trip = get_trip_or_404(db, trip_id)
    if trip.created_by != user_id:
        raise HTTPException(status_code=403, detail="Only the trip organizer can delete this trip")
    db.delete(trip)
    db.commit()


@router.get("/{trip_id}/best-dates", response_model=BestDatesRead)
def get_best_dates(trip_id: int, db: Session = Depends(get_db)):
    trip = get_trip_or_404(db, trip_id)
    members = db.query(TripMember).filter(TripMember.trip_id == trip_id).all()
    best, warning = _best_dates(members, trip.num_days)
    return {"trip_id": trip.trip_id, "num_days": trip.num_days, "best_dates": best, "warning": warning}


@router.get("/{trip_id}/dashboard", response_model=TripDashboard)
def get_dashboard(trip_id: int, db: Session = Depends(get_db), today: date = Depends(get_today)):
    trip = get_trip_or_404(db, trip_id)
    resolve_vote_if_closed(db, trip, today)

    members = db.query(TripMember).filter(TripMember.trip_id == trip_id).order_by(TripMember.id).all()
    joined = [m for m in members if m.status == MemberStatus.JOINED]
    failed = is_trip_failed(trip, members, today)
    best, warning = (None, None) if failed else _best_dates(members, trip.num_days)

    return {
        "trip": trip,
        "status": trip_status(trip, today),
        "joined_members": joined,
        "best_dates": best,
        "warning": warning,
        "is_failed": failed,
    }
