"""Core data models for goal tracking."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from goal_audit.core.exceptions import InvalidArgumentError

# Fields that may be assigned once and never changed afterwards.
_IMMUTABLE_FIELDS = ("id", "created_at")


class Status(str, Enum):
    """Lifecycle status of a goal."""

    IN_THE_FUTURE = "in-the-future"
    ON_THE_MOVE = "on-the-move"
    WAITING = "waiting"

    @classmethod
    def parse(cls, value: Union["Status", str]) -> "Status":
        """Convert a status or its string form into a Status.

        Args:
            value: Status member or one of its string values

        Returns:
            Matching Status

        Raises:
            InvalidArgumentError: If value names no known status
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise InvalidArgumentError(f"Unknown status: {value!r} (expected one of {valid})")


def parse_estimate(value: Any) -> float:
    """Validate a user-supplied estimate in hours.

    Args:
        value: Number or numeric string

    Returns:
        Estimate as a float

    Raises:
        InvalidArgumentError: If the estimate is not a non-negative number
    """
    if isinstance(value, bool):
        raise InvalidArgumentError(f"Malformed estimate: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        hours = float(value)
    elif isinstance(value, str):
        try:
            hours = float(value.strip())
        except ValueError:
            raise InvalidArgumentError(f"Malformed estimate: {value!r}")
    else:
        raise InvalidArgumentError(f"Malformed estimate: {value!r}")

    if math.isnan(hours) or math.isinf(hours) or hours < 0:
        raise InvalidArgumentError(f"Estimate must be a non-negative number of hours: {value!r}")
    return hours


@dataclass
class Entry:
    """A trackable goal.

    Attributes:
        goal: What the goal is about
        category: Category used for grouping and filtering
        estimate: Estimated effort in hours
        accumulated_time: Seconds spent working on the goal so far
        completed: Whether the goal is done
        status: Lifecycle status
        created_at: When the goal was created (immutable)
        last_touched_at: Last activity on the goal (None if never touched)
        id: Database identifier, None until the entry is inserted (immutable once set)
    """

    goal: str
    category: str
    estimate: float = 0.0
    accumulated_time: float = 0.0
    completed: bool = False
    status: Status = Status.IN_THE_FUTURE
    created_at: datetime = field(default_factory=datetime.now)
    last_touched_at: Optional[datetime] = None
    id: Optional[int] = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _IMMUTABLE_FIELDS:
            current = self.__dict__.get(name)
            if current is not None and value != current:
                raise InvalidArgumentError(f"{name} cannot be changed once set")
        elif name == "estimate":
            value = parse_estimate(value)
        elif name == "status":
            value = Status.parse(value)
        elif name == "accumulated_time":
            if value < 0:
                raise InvalidArgumentError("accumulated_time cannot be negative")
            current = self.__dict__.get(name)
            if current is not None and value < current:
                raise InvalidArgumentError(
                    f"accumulated_time cannot decrease ({current} -> {value})"
                )
            value = float(value)
        object.__setattr__(self, name, value)

    def mark_complete(self) -> None:
        """Mark the goal as completed."""
        self.completed = True

    def mark_incomplete(self) -> None:
        """Mark the goal as not completed."""
        self.completed = False

    def set_status(self, status: Union[Status, str]) -> None:
        """Move the goal to another status. Any status is reachable from any other."""
        self.status = status

    def touch(self, now: Optional[datetime] = None) -> None:
        """Record activity on the goal.

        Args:
            now: Timestamp to record. Defaults to the current time
        """
        self.last_touched_at = now or datetime.now()

    def add_time(self, delta: float) -> None:
        """Add worked seconds to the goal.

        Args:
            delta: Seconds to add

        Raises:
            InvalidArgumentError: If delta is negative
        """
        if delta < 0:
            raise InvalidArgumentError(f"Time delta must not be negative: {delta}")
        self.accumulated_time = self.accumulated_time + delta

    @property
    def estimate_seconds(self) -> float:
        """Estimate converted to seconds."""
        return self.estimate * 3600

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "goal": self.goal,
            "category": self.category,
            "estimate": self.estimate,
            "accumulated_time": self.accumulated_time,
            "completed": self.completed,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "last_touched_at": self.last_touched_at.isoformat() if self.last_touched_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entry":
        """Create Entry from dictionary (JSON deserialization)."""
        return cls(
            id=int(data["id"]) if data.get("id") is not None else None,
            goal=data["goal"],
            category=data["category"],
            estimate=data.get("estimate", 0.0),
            accumulated_time=float(data.get("accumulated_time", 0.0)),
            completed=bool(data.get("completed", False)),
            status=data.get("status", Status.IN_THE_FUTURE.value),
            created_at=datetime.fromisoformat(data["created_at"]),
            last_touched_at=(
                datetime.fromisoformat(data["last_touched_at"])
                if data.get("last_touched_at")
                else None
            ),
        )


@dataclass(frozen=True)
class ActiveTimer:
    """The single running timer.

    Attributes:
        started_at: When tracking started
        entry_id: Id of the tracked entry
    """

    started_at: datetime
    entry_id: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "started_at": self.started_at.isoformat(),
            "entry_id": self.entry_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActiveTimer":
        """Create ActiveTimer from dictionary (JSON deserialization)."""
        return cls(
            started_at=datetime.fromisoformat(data["started_at"]),
            entry_id=int(data["entry_id"]),
        )
