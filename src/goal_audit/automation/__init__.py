"""Automation features for Goal Audit."""

from goal_audit.automation.notifier import Notifier

__all__ = ["Notifier"]
