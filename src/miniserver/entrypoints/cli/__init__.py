"""Command-line interface for miniserver."""
