from .Profile import Profile
from .Group import Group
from .GroupMember import GroupMember
from .Trip import Trip
from .TripMember import TripMember, MemberStatus
from .TripLocation import TripLocation
from .TripVote import TripVote

__all__ = [
    "Profile",
    "Group",
    "GroupMember",
    "Trip",
    "TripMember",
    "MemberStatus",
    "TripLocation",
    "TripVote",
]
