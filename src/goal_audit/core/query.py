"""Predicates, display filter and display order for goal views."""

from dataclasses import dataclass
from functools import cmp_to_key
from operator import attrgetter
from typing import Any, Callable, Iterable, Optional, Union

from goal_audit.core.models import Entry, Status

Predicate = Callable[[Entry], bool]


def and_(*predicates: Predicate) -> Predicate:
    """Match entries that satisfy every predicate. Matches everything when empty."""

    def predicate(entry: Entry) -> bool:
        return all(p(entry) for p in predicates)

    return predicate


def or_(*predicates: Predicate) -> Predicate:
    """Match entries that satisfy any predicate. Matches nothing when empty."""

    def predicate(entry: Entry) -> bool:
        return any(p(entry) for p in predicates)

    return predicate


def not_(predicate: Predicate) -> Predicate:
    """Negate a predicate."""

    def negated(entry: Entry) -> bool:
        return not predicate(entry)

    return negated


def field_equals(accessor: Union[str, Callable[[Entry], Any]], value: Any) -> Predicate:
    """Match entries whose field equals value.

    Args:
        accessor: Attribute name or a function extracting the value from an entry
        value: Value to compare against

    Returns:
        Predicate
    """
    get = attrgetter(accessor) if isinstance(accessor, str) else accessor

    def predicate(entry: Entry) -> bool:
        return bool(get(entry) == value)

    return predicate


def in_category(category: str) -> Predicate:
    """Match entries in the given category."""
    return field_equals("category", category)


def has_status(status: Union[Status, str]) -> Predicate:
    """Match entries with the given status."""
    return field_equals("status", Status.parse(status))


is_future = has_status(Status.IN_THE_FUTURE)
is_completed = field_equals("completed", True)


@dataclass
class ViewFilter:
    """Display toggles for the goal list.

    Attributes:
        category: Pinned category, or None to show every category
        show_future: Whether goals that are still in the future are shown
        show_completed: Whether completed goals are shown
    """

    category: Optional[str] = None
    show_future: bool = False
    show_completed: bool = False

    def predicate(self) -> Predicate:
        """Compose the toggles into a single predicate."""
        predicates: list[Predicate] = []
        if self.category is not None:
            predicates.append(in_category(self.category))
        if not self.show_future:
            predicates.append(not_(is_future))
        if not self.show_completed:
            predicates.append(not_(is_completed))
        return and_(*predicates)

    def toggle_future(self) -> bool:
        """Flip future visibility and return the new value."""
        self.show_future = not self.show_future
        return self.show_future

    def toggle_completed(self) -> bool:
        """Flip completed visibility and return the new value."""
        self.show_completed = not self.show_completed
        return self.show_completed

    def pin_category(self, category: str) -> None:
        """Only show goals in this category."""
        self.category = category

    def clear_category(self) -> None:
        """Show goals from every category."""
        self.category = None


def compare_for_display(a: Entry, b: Entry) -> int:
    """Order entries most recently touched first, never-touched entries last.

    Returns:
        Negative if a sorts first, positive if b sorts first, 0 if tied
    """
    a_time, b_time = a.last_touched_at, b.last_touched_at
    if a_time is None and b_time is None:
        return 0
    if a_time is None:
        return 1
    if b_time is None:
        return -1
    if a_time > b_time:
        return -1
    if a_time < b_time:
        return 1
    return 0


def sort_for_display(entries: Iterable[Entry]) -> list[Entry]:
    """Return entries in display order (stable)."""
    return sorted(entries, key=cmp_to_key(compare_for_display))
