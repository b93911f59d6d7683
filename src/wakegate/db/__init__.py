"""WakeGate database layer."""

from wakegate.db.base import Base, close_db, get_session, init_db
from wakegate.db.repositories import NEVER, ScheduleStateRepository
from wakegate.db.tables import ScheduleStateTable

__all__ = [
    "Base",
    "NEVER",
    "ScheduleStateRepository",
    "ScheduleStateTable",
    "close_db",
    "get_session",
    "init_db",
]
