# schemas.py (Pydantic v2)
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Dict, Literal
from datetime import date, datetime

from models.TripMember import MemberStatus
from services.lifecycle import TripPhase


# ---------- Profiles ----------
class ProfileBase(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None

class ProfileWrite(ProfileBase):
    id: str = Field(..., min_length=1, max_length=64)

class ProfileRead(ProfileBase):
    id: str
    created_at: datetime

    class Config:
        from_attributes = True

class FCMTokenUpdate(BaseModel):
    fcm_token: Optional[str] = None


# ---------- Groups ----------
class GroupWrite(BaseModel):
    group_name: str = Field(..., min_length=1, max_length=150)
    created_by: str

class GroupRead(BaseModel):
    group_id: int
    group_name: str
    join_code: str
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class GroupMemberRead(BaseModel):
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    joined_at: datetime

class JoinByCode(BaseModel):
    code: str

class GroupJoinResult(BaseModel):
    ok: bool = True
    group_id: int
    notified: int = 0


# ---------- Trips ----------
class TripBase(BaseModel):
    trip_name: str = Field(..., min_length=1, max_length=150)
    budget_per_person: float = Field(..., ge=0)
    num_days: int = Field(..., ge=1)
    date_range_start: date
    date_range_end: date
    join_deadline: date

class TripWrite(TripBase):
    group_id: int
    created_by: str
    trip_type: Literal["fixed", "vote"] = "fixed"
    # fixed trips
    location: Optional[str] = None
    # vote trips
    vote_close_date: Optional[date] = None
    locations: List[str] = []

class TripRead(TripBase):
    trip_id: int
    group_id: int
    created_by: Optional[str] = None
    location: Optional[str] = None
    vote_close_date: Optional[date] = None
    join_deadline_notified: Optional[bool] = None
    trip_start_notified: Optional[bool] = None
    vote_close_notified: Optional[bool] = None
    created_at: datetime

    class Config:
        from_attributes = True

class TripStatus(BaseModel):
    phase: TripPhase
    join_open: bool
    vote_open: bool
    has_started: bool

class TripDetail(BaseModel):
    trip: TripRead
    status: TripStatus
    today: date


# ---------- Trip Members ----------
class TripMemberRead(BaseModel):
    id: int
    trip_id: int
    user_id: str
    name: Optional[str] = None
    status: MemberStatus
    selected_start_date: Optional[date] = None
    selected_end_date: Optional[date] = None
    joined_at: datetime

    class Config:
        from_attributes = True

class TripJoin(BaseModel):
    name: Optional[str] = Field(None, max_length=150)

class AvailabilityWrite(BaseModel):
    selected_start_date: date
    selected_end_date: date


# ---------- Best dates / dashboard ----------
class BestDates(BaseModel):
    start: date
    end: date

class BestDatesRead(BaseModel):
    trip_id: int
    num_days: int
    best_dates: Optional[BestDates] = None
    warning: Optional[str] = None

class TripDashboard(BaseModel):
    trip: TripRead
    status: TripStatus
    joined_members: List[TripMemberRead] = []
    best_dates: Optional[BestDates] = None
    warning: Optional[str] = None
    is_failed: bool = False


# ---------- Locations & Votes ----------
class TripLocationRead(BaseModel):
    location_id: int
    trip_id: int
    location_name: str

    class Config:
        from_attributes = True

class VoteWrite(BaseModel):
    location_id: int

class VoteRead(BaseModel):
    vote_id: int
    trip_id: int
    user_id: str
    location_id: int

    class Config:
        from_attributes = True

class VoteTallyRow(BaseModel):
    location_id: int
    location_name: str
    votes: int

class VoteTally(BaseModel):
    trip_id: int
    voting_open: bool
    location: Optional[str] = None
    leader: Optional[VoteTallyRow] = None
    tally: List[VoteTallyRow] = []


# ---------- Scheduler jobs ----------
class JobRequest(BaseModel):
    date: Optional[str] = None

class JobReport(BaseModel):
    ok: bool = True
    date: str
    scanned: Dict[str, int]
    sent: Dict[str, int]
    notified: Dict[str, List[int]]
    failed: Dict[str, List[int]]
    errors: Dict[str, str] = {}
    total_sent: int
