"""In-memory goal database with a single active timer."""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Iterator, Optional

from goal_audit.core.exceptions import NotFoundError
from goal_audit.core.models import ActiveTimer, Entry

logger = logging.getLogger(__name__)

Predicate = Callable[[Entry], bool]


class Database:
    """Id-keyed collection of entries plus at most one active timer.

    The database owns every entry it holds. Callers borrow references from
    ``lookup``/``query`` and must not keep diverging copies around.
    """

    def __init__(
        self,
        next_id: int = 1,
        entries: Optional[list[Entry]] = None,
        active_timer: Optional[ActiveTimer] = None,
    ):
        """Initialize database.

        Args:
            next_id: First id handed out by ``new_id``
            entries: Entries to insert (entries without an id get a fresh one)
            active_timer: Running timer, if any
        """
        self.next_id = next_id
        self.active_timer = active_timer
        self._entries: dict[int, Entry] = {}
        # Re-entrant so that stop/start/save can nest under one acquisition.
        self.lock = threading.RLock()

        for entry in entries or []:
            self.insert(entry)

    def new_id(self) -> int:
        """Hand out the next id. Ids are never reused."""
        with self.lock:
            entry_id = self.next_id
            self.next_id += 1
            return entry_id

    def insert(self, entry: Entry) -> Entry:
        """Insert an entry, replacing any entry with the same id.

        Args:
            entry: Entry to insert. Gets a fresh id if it has none

        Returns:
            The inserted entry
        """
        with self.lock:
            if entry.id is None:
                entry.id = self.new_id()
            else:
                self.delete(entry.id)
                if entry.id >= self.next_id:
                    self.next_id = entry.id + 1
            self._entries[entry.id] = entry
            return entry

    def create_entry(
        self,
        category: str,
        goal: str,
        estimate: Any = 0.0,
        now: Optional[datetime] = None,
    ) -> Entry:
        """Create a new goal and insert it.

        Args:
            category: Category of the goal
            goal: Goal description
            estimate: Estimated effort in hours
            now: Creation timestamp. Defaults to the current time

        Returns:
            Created entry
        """
        entry = Entry(
            goal=goal,
            category=category,
            estimate=estimate,
            created_at=now or datetime.now(),
        )
        self.insert(entry)
        logger.debug(f"Created entry {entry.id}: {goal!r} [{category}]")
        return entry

    def lookup(self, entry_id: Optional[int]) -> Optional[Entry]:
        """Return the entry with this id, or None if there is none."""
        if entry_id is None:
            return None
        return self._entries.get(entry_id)

    def get(self, entry_id: int) -> Entry:
        """Return the entry with this id.

        Raises:
            NotFoundError: If no entry has this id
        """
        entry = self.lookup(entry_id)
        if entry is None:
            raise NotFoundError(f"Entry not found: {entry_id}")
        return entry

    def delete(self, entry_id: int) -> None:
        """Remove the entry with this id. Missing ids are ignored."""
        with self.lock:
            self._entries.pop(entry_id, None)

    def is_active_entry(self, entry_id: Optional[int]) -> bool:
        """Check whether this id is the one being tracked."""
        timer = self.active_timer
        return entry_id is not None and timer is not None and timer.entry_id == entry_id

    def query(self, predicate: Optional[Predicate] = None) -> list[Entry]:
        """Return entries matching predicate in insertion order.

        The order is not a display order; use ``sort_for_display`` for that.

        Args:
            predicate: Filter function. None matches every entry

        Returns:
            Matching entries
        """
        with self.lock:
            entries = list(self._entries.values())
        if predicate is None:
            return entries
        return [entry for entry in entries if predicate(entry)]

    def distinct_categories(self) -> list[str]:
        """Return every category in use, without duplicates."""
        with self.lock:
            return sorted({entry.category for entry in self._entries.values()})

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.query())

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Database):
            return NotImplemented
        return (
            self.next_id == other.next_id
            and self._entries == other._entries
            and self.active_timer == other.active_timer
        )

    __hash__ = None  # type: ignore[assignment]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        with self.lock:
            return {
                "next_id": self.next_id,
                "entries": [entry.to_dict() for entry in self._entries.values()],
                "active_timer": self.active_timer.to_dict() if self.active_timer else None,
            }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Database":
        """Create Database from dictionary (JSON deserialization)."""
        database = cls(
            entries=[Entry.from_dict(row) for row in data.get("entries", [])],
            active_timer=(
                ActiveTimer.from_dict(data["active_timer"]) if data.get("active_timer") else None
            ),
        )
        # Ids handed out before deleted entries must stay burned.
        database.next_id = max(database.next_id, int(data.get("next_id", 1)))
        return database
