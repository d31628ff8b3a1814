"""Enums shared across the document model and the sync engine."""

from __future__ import annotations

from enum import StrEnum


class FieldType(StrEnum):
    """Primitive types a schema field can declare."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class ViewMode(StrEnum):
    """Mutually exclusive chart views."""

    TREE = "tree"
    GRAPH = "graph"


class Direction(StrEnum):
    """Sibling move direction."""

    UP = "up"
    DOWN = "down"


class SyncState(StrEnum):
    """Re-entrancy state of the document sync engine."""

    IDLE = "idle"
    PROGRAMMATIC_UPDATE = "programmatic_update"
