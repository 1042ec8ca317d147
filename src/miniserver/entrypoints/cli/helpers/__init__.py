"""CLI helpers for miniserver: message emitters with emoji→ASCII fallbacks."""

from .messages import error, warn

__all__ = ["error", "warn"]
