"""Core functionality for goal tracking."""

from goal_audit.core.database import Database
from goal_audit.core.exceptions import (
    GoalAuditError,
    InconsistentStateError,
    InvalidArgumentError,
    NotFoundError,
    PersistenceError,
)
from goal_audit.core.models import ActiveTimer, Entry, Status
from goal_audit.core.tracker import GoalTracker

__all__ = [
    "ActiveTimer",
    "Database",
    "Entry",
    "GoalAuditError",
    "GoalTracker",
    "InconsistentStateError",
    "InvalidArgumentError",
    "NotFoundError",
    "PersistenceError",
    "Status",
]
