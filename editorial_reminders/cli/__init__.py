"""Command line interface for the reminder worker processes."""
