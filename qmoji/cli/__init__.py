"""CLI commands for qmoji."""
