from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from database import Base

class Group(Base):
    __tablename__ = "group"

    group_id = Column(Integer, primary_key=True, index=True)
    group_name = Column(String(150), nullable=False)
    join_code = Column(String(8), unique=True, index=True, nullable=False)
    created_by = Column(String(64), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    members = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan")
    trips = relationship("Trip", back_populates="group", cascade="all, delete-orphan")
