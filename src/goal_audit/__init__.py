"""Goal Audit - personal goal and time tracking."""

__version__ = "0.1.0"
