import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from models.GroupMember import GroupMember
from models.Profile import Profile
from models.Trip import Trip
from models.TripMember import TripMember, MemberStatus
from schemas import TripMemberRead, TripJoin, AvailabilityWrite
from database import get_db
from routes.trips import get_trip_or_404
from services.lifecycle import is_join_open
from services.notifications import notify_trip_joined
from utils.dates import get_today

logger = logging.getLogger("grouptrip.trip_members")

router = APIRouter(prefix="/trips/{trip_id}/members", tags=["Trip Members"])


def _get_member(db: Session, trip_id: int, user_id: str) -> Optional[TripMember]:
    return db.query(TripMember).filter_by(trip_id=trip_id, user_id=user_id).first()


def _require_join_open(trip: Trip, today: date) -> None:
    if not is_join_open(trip, today):
        raise HTTPException(status_code=400, detail="The join deadline for this trip has passed")


@router.get("/", response_model=List[TripMemberRead])
def list_members(
    trip_id: int,
    member_status: Optional[MemberStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db)
):
    get_trip_or_404(db, trip_id)
    q = db.query(TripMember).filter(TripMember.trip_id == trip_id)
    if member_status is not None:
        q = q.filter(TripMember.status == member_status)
    return q.order_by(TripMember.id).all()


@router.post("/join", response_model=TripMemberRead)
def join_trip(
    trip_id: int,
    payload: Optional[TripJoin] = None,
    user_id: str = Query(..., description="Profile joining the trip"),  # In production, take from the auth token
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    trip = get_trip_or_404(db, trip_id)
    _require_join_open(trip, today)

    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")

    name = (payload.name or "").strip() if payload else ""
    member = _get_member(db, trip_id, user_id)
    if member is None:
        in_group = db.query(GroupMember).filter_by(group_id=trip.group_id, user_id=user_id).first()
        if not in_group:
            raise HTTPException(status_code=403, detail="Only members of the trip's group can join")
        member = TripMember(trip_id=trip_id, user_id=user_id, status=MemberStatus.PENDING)
        db.add(member)
    elif member.status == MemberStatus.JOINED:
        if name and name != member.name:
            member.name = name
            db.commit()
            db.refresh(member)
        return member

    member.status = MemberStatus.JOINED
    member.name = name or member.name or profile.full_name
    db.commit()
    db.refresh(member)

    try:
        notify_trip_joined(db, trip, profile, exclude_self=True)
    except Exception:
        logger.exception("Trip joined notification failed for trip %s", trip_id)

    return member


@router.post("/cancel", response_model=TripMemberRead)
def cancel_trip(
    trip_id: int,
    user_id: str = Query(..., description="Profile leaving the trip"),  # In production, take from the auth token
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    trip = get_trip_or_404(db, trip_id)
    _require_join_open(trip, today)

    member = _get_member(db, trip_id, user_id)
    if not member:
        raise HTTPException(status_code=404, detail="You are not a member of this trip")

    member.status = MemberStatus.CANCELLED
    db.commit()
    db.refresh(member)
    return member


@router.put("/{user_id}/availability", response_model=TripMemberRead)
def submit_availability(trip_id: int, user_id: str, payload: AvailabilityWrite, db: Session = Depends(get_db)):
    """Save the days a joined member can travel; the range must be exactly the trip's length."""
    trip = get_trip_or_404(db, trip_id)
    member = _get_member(db, trip_id, user_id)
    if not member:
        raise HTTPException(status_code=404, detail="You are not a member of this trip")
    if member.status != MemberStatus.JOINED:
        raise HTTPException(status_code=400, detail="Join the trip before choosing dates")

    start, end = payload.selected_start_date, payload.selected_end_date
    if start > end:
        raise HTTPException(status_code=400, detail="Start date must be on or before the end date")
    if start < trip.date_range_start or end > trip.date_range_end:
        raise HTTPException(
            status_code=400,
            detail=f"Dates must fall between {trip.date_range_start.isoformat()} and {trip.date_range_end.isoformat()}",
        )
    if (end - start).days + 1 != trip.num_days:
        raise HTTPException(status_code=400, detail=f"Please select exactly {trip.num_days} day(s)")

    member.selected_start_date = start
    member.selected_end_date = end
    db.commit()
    db.refresh(member)
    return member
