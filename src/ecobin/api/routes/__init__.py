"""Route group exports."""

from . import dustbins, health, live, routes

__all__ = ["routes", "live", "health", "dustbins"]
