import enum

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum, func
from sqlalchemy.orm import relationship
from database import Base

class MemberStatus(str, enum.Enum):
    PENDING = "PENDING"
    JOINED = "JOINED"
    CANCELLED = "CANCELLED"

class TripMember(Base):
    __tablename__ = "trip_members"
    __table_args__ = (
        UniqueConstraint("trip_id", "user_id", name="uq_trip_member"),
    )

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.trip_id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(150), nullable=True)
    status = Column(SQLEnum(MemberStatus), default=MemberStatus.PENDING, nullable=False, index=True)
    selected_start_date = Column(Date, nullable=True)
    selected_end_date = Column(Date, nullable=True)
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    trip = relationship("Trip", back_populates="members")
    profile = relationship("Profile")
