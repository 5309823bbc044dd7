from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from database import Base

class TripLocation(Base):
    __tablename__ = "trip_locations"

    location_id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.trip_id", ondelete="CASCADE"), nullable=False, index=True)
    location_name = Column(String(250), nullable=False)

    trip = relationship("Trip", back_populates="locations")
