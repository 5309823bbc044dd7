from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, func, Float, Boolean
from sqlalchemy.orm import relationship
from database import Base

class Trip(Base):
    __tablename__ = "trips"

    trip_id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("group.group_id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(String(64), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    trip_name = Column(String(150), nullable=False)
    # Null on vote trips until the vote is resolved
    location = Column(String(250), nullable=True)
    budget_per_person = Column(Float, nullable=False, default=0)
    num_days = Column(Integer, nullable=False)
    date_range_start = Column(Date, nullable=False, index=True)
    date_range_end = Column(Date, nullable=False)
    join_deadline = Column(Date, nullable=False, index=True)
    vote_close_date = Column(Date, nullable=True, index=True)

    # Set once the matching notification went out; never reset
    join_deadline_notified = Column(Boolean, default=False, nullable=True)
    trip_start_notified = Column(Boolean, default=False, nullable=True)
    vote_close_notified = Column(Boolean, default=False, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    group = relationship("Group", back_populates="trips")
    members = relationship("TripMember", back_populates="trip", cascade="all, delete-orphan")
    locations = relationship("TripLocation", back_populates="trip", cascade="all, delete-orphan",
                             order_by="TripLocation.location_id")
    votes = relationship("TripVote", back_populates="trip", cascade="all, delete-orphan")

    @property
    def is_vote_trip(self) -> bool:
        return self.vote_close_date is not None
