import logging
from collections import Counter
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.Trip import Trip
from models.TripLocation import TripLocation
from models.TripVote import TripVote

logger = logging.getLogger("grouptrip.voting")


class VoteRejected(ValueError):
    """A vote the trip cannot accept; the message is shown to the user."""


def vote_counts(db: Session, trip_id: int) -> Counter:
    """Votes per location_id, keyed in the order locations first received a vote."""
    rows = (
        db.query(TripVote.location_id)
        .filter(TripVote.trip_id == trip_id)
        .order_by(TripVote.vote_id)
        .all()
    )
    return Counter(location_id for (location_id,) in rows)


def leading_location(db: Session, trip_id: int) -> Optional[Dict]:
    """The location with the most votes; ties go to the one voted for first."""
    counts = vote_counts(db, trip_id)
    if not counts:
        return None
    location_id, votes = counts.most_common(1)[0]
    location = db.query(TripLocation).filter(TripLocation.location_id == location_id).first()
    if location is None:
        return None
    return {"location_id": location_id, "location_name": location.location_name, "votes": votes}


def tally_votes(db: Session, trip: Trip) -> List[Dict]:
    counts = vote_counts(db, trip.trip_id)
    return [
        {"location_id": loc.location_id, "location_name": loc.location_name, "votes": counts.get(loc.location_id, 0)}
        for loc in trip.locations
    ]


def is_voting_open(trip: Trip, today: date) -> bool:
    return trip.vote_close_date is not None and not trip.location and today < trip.vote_close_date


def _find_vote(db: Session, trip_id: int, user_id: str) -> Optional[TripVote]:
    return db.query(TripVote).filter_by(trip_id=trip_id, user_id=user_id).first()


def cast_vote(db: Session, trip: Trip, user_id: str, location_id: int, today: date) -> TripVote:
    """
    Record `user_id`'s vote, replacing any earlier one for this trip.

    Raises VoteRejected when the trip is not accepting votes or the location is
    not one of its candidates.
    """
    if trip.vote_close_date is None:
        raise VoteRejected("This trip has a fixed location; there is nothing to vote on")
    if trip.location:
        raise VoteRejected("The location for this trip has already been decided")
    if not is_voting_open(trip, today):
        raise VoteRejected("Voting for this trip is closed")
    if not any(loc.location_id == location_id for loc in trip.locations):
        raise VoteRejected("Location is not a candidate for this trip")

    vote = _find_vote(db, trip.trip_id, user_id)
    if vote:
        vote.location_id = location_id
        db.commit()
    else:
        vote = TripVote(trip_id=trip.trip_id, user_id=user_id, location_id=location_id)
        db.add(vote)
        try:
            db.commit()
        except IntegrityError:
            # a concurrent request inserted the row first; last write wins
            db.rollback()
            vote = db.query(TripVote).filter_by(trip_id=trip.trip_id, user_id=user_id).one()
            vote.location_id = location_id
            db.commit()
    db.refresh(vote)
    return vote


def resolve_vote_if_closed(db: Session, trip: Trip, today: date) -> Optional[str]:
    """
    Persist the winning location once voting has closed.

    Returns the trip's location (None while voting is open or nobody voted).
    The update only applies while `location` is still empty, so a decided
    winner is never replaced.
    """
    if trip.vote_close_date is None or trip.location:
        return trip.location
    if today < trip.vote_close_date:
        return None

    winner = leading_location(db, trip.trip_id)
    if winner is None:
        logger.info("Vote closed for trip %s with no votes; location left open", trip.trip_id)
        return None

    updated = (
        db.query(Trip)
        .filter(Trip.trip_id == trip.trip_id, Trip.location.is_(None))
        .update({Trip.location: winner["location_name"]}, synchronize_session=False)
    )
    db.commit()
    db.refresh(trip)
    if updated:
        logger.info("Trip %s location resolved to %r with %d vote(s)",
                    trip.trip_id, winner["location_name"], winner["votes"])
    return trip.location
