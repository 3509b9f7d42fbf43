"""Data access layer repositories.

Each repository module provides async functions for database operations
plus a small class that adapts them to the protocols the simulation
service depends on. All code uses SQLAlchemy ORM models from
`app.database.orm` with the `get_session()` context manager.

ORM-based repositories:
- day_control_orm: day-control singleton, day-open effects, reset cascade
- participants_orm: participants with their holdings
- prices_orm: price-as-of-day lookups
- settings_orm: persisted key-value settings
"""

from . import day_control_orm
from . import participants_orm
from . import prices_orm
from . import settings_orm
from .day_control_orm import SqlDayControlStore
from .participants_orm import SqlParticipantRepository
from .prices_orm import SqlPriceLookup
from .settings_orm import SqlSettingsRepository

__all__ = [
    "day_control_orm",
    "participants_orm",
    "prices_orm",
    "settings_orm",
    "SqlDayControlStore",
    "SqlParticipantRepository",
    "SqlPriceLookup",
    "SqlSettingsRepository",
]
