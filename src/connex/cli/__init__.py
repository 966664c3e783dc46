"""Command-line interface for Connex."""
