from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from models.TripMember import TripMember, MemberStatus
from schemas import TripLocationRead, VoteWrite, VoteRead, VoteTally
from database import get_db
from routes.trips import get_trip_or_404
from services.voting import (
    VoteRejected,
    cast_vote,
    is_voting_open,
    leading_location,
    resolve_vote_if_closed,
    tally_votes,
)
from utils.dates import get_today

router = APIRouter(prefix="/trips/{trip_id}", tags=["Trip Votes"])


def _tally(db: Session, trip, today: date) -> dict:
    return {
        "trip_id": trip.trip_id,
        "voting_open": is_voting_open(trip, today),
        "location": trip.location,
        "leader": leading_location(db, trip.trip_id),
        "tally": tally_votes(db, trip),
    }


@router.get("/locations", response_model=List[TripLocationRead])
def list_locations(trip_id: int, db: Session = Depends(get_db)):
    return get_trip_or_404(db, trip_id).locations


@router.put("/votes", response_model=VoteRead)
def vote(
    trip_id: int,
    payload: VoteWrite,
    user_id: str = Query(..., description="Profile casting the vote"),  # In production, take from the auth token
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    trip = get_trip_or_404(db, trip_id)
    member = db.query(TripMember).filter_by(trip_id=trip_id, user_id=user_id).first()
    if not member or member.status == MemberStatus.CANCELLED:
        raise HTTPException(status_code=403, detail="Only trip members can vote")
    try:
        return cast_vote(db, trip, user_id, payload.location_id, today)
    except VoteRejected as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/votes/tally", response_model=VoteTally)
def get_tally(trip_id: int, db: Session = Depends(get_db), today: date = Depends(get_today)):
    trip = get_trip_or_404(db, trip_id)
    return _tally(db, trip, today)


@router.post("/votes/resolve", response_model=VoteTally)
def resolve_vote(trip_id: int, db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Settle the winning location if voting has closed; a decided location is never changed."""
    trip = get_trip_or_404(db, trip_id)
    if trip.vote_close_date is None:
        raise HTTPException(status_code=400, detail="This trip has a fixed location; there is nothing to vote on")
    resolve_vote_if_closed(db, trip, today)
    return _tally(db, trip, today)
