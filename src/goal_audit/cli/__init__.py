"""Command-line interface for Goal Audit."""
