"""
Enum definitions for the application.

These enums are used across models and provide type-safe status values.
"""

from enum import Enum


class BoxStatus(str, Enum):
    """Time box status."""

    PLANNED = "planned"
    ACTIVE = "active"
    DONE = "done"
    MISSED = "missed"


class EnergyLevel(str, Enum):
    """Energy a box is expected to take."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LogEvent(str, Enum):
    """Activity log event kinds."""

    CREATE = "create"
    START = "start"
    DONE = "done"
    EXTEND = "extend"
    SPLIT = "split"
    SHIFT = "shift"
    DELETE = "delete"
    UPDATE = "update"


class Urgency(str, Enum):
    """
    Urgency inferred from tags.

    URGENT > IMPORTANT > NORMAL. Untagged items count as IMPORTANT.
    """

    URGENT = "urgent"
    IMPORTANT = "important"
    NORMAL = "normal"


class DragMode(str, Enum):
    """Direct-manipulation gesture mode."""

    IDLE = "idle"
    MOVE = "move"
    RESIZE = "resize"


class ConflictResolution(str, Enum):
    """How the caller settles a conflicting drag draft."""

    FORCE = "force"
    RELOCATE = "relocate"
    DISCARD = "discard"
