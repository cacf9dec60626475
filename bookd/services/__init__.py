"""
Per-entity services wrapping the database client.
"""

from bookd.services.base import ServiceError
from bookd.services.experience import ExperienceService
from bookd.services.gigs import GigFilters, GigsService
from bookd.services.performances import PerformancesService
from bookd.services.profiles import IndividualProfilesService
from bookd.services.users import UsersService

__all__ = [
    "ExperienceService",
    "GigFilters",
    "GigsService",
    "IndividualProfilesService",
    "PerformancesService",
    "ServiceError",
    "UsersService",
]
