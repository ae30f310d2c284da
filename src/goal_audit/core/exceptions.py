"""Exception hierarchy for Goal Audit."""


class GoalAuditError(Exception):
    """Base class for all Goal Audit errors."""

    pass


class InvalidArgumentError(GoalAuditError, ValueError):
    """An argument was rejected (negative time delta, malformed estimate, ...)."""

    pass


class NotFoundError(GoalAuditError, LookupError):
    """No entry exists with the requested id."""

    pass


class InconsistentStateError(GoalAuditError):
    """The active timer references an entry that no longer exists."""

    pass


class PersistenceError(GoalAuditError):
    """Reading or writing the database file failed."""

    pass
