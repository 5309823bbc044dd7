from . import profiles
from . import groups
from . import trips
from . import trip_members
from . import trip_votes
from . import jobs

__all__ = [
    "profiles",
    "groups",
    "trips",
    "trip_members",
    "trip_votes",
    "jobs",
]
