"""Live editing presence."""

from .presence import EditingPresenceTracker

__all__ = ["EditingPresenceTracker"]
