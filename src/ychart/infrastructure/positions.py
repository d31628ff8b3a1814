"""Position cache — saved ``{x, y}`` per node id.

A flat key-value side channel: the tree engine applies cached positions
over its computed layout, drag gestures write them, and a reset clears
them. :class:`JsonPositionCache` persists the map beside the document.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


class PositionCache(Protocol):
    def get(self, key: str) -> Position | None: ...

    def set(self, key: str, position: Position) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def items(self) -> Iterator[tuple[str, Position]]: ...


class MemoryPositionCache:
    """In-process cache; lost when the process exits."""

    def __init__(self) -> None:
        self._positions: dict[str, Position] = {}

    def get(self, key: str) -> Position | None:
        return self._positions.get(key)

    def set(self, key: str, position: Position) -> None:
        self._positions[key] = position

    def delete(self, key: str) -> None:
        self._positions.pop(key, None)

    def clear(self) -> None:
        self._positions.clear()

    def items(self) -> Iterator[tuple[str, Position]]:
        return iter(list(self._positions.items()))

    def __len__(self) -> int:
        return len(self._positions)


class JsonPositionCache(MemoryPositionCache):
    """Cache persisted as ``{"<id>": {"x": .., "y": ..}}`` JSON.

    Every mutation rewrites the file. A missing or unreadable file starts
    an empty cache.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        self._load()

    def _load(self) -> None:
        if not self.path.is_file():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable position cache %s: %s", self.path, exc)
            return
        if not isinstance(raw, dict):
            return
        for key, value in raw.items():
            try:
                self._positions[str(key)] = Position(float(value["x"]), float(value["y"]))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed cached position for %r", key)

    def _save(self) -> None:
        if not self._positions:
            self.path.unlink(missing_ok=True)
            return
        payload = {key: pos.to_dict() for key, pos in self._positions.items()}
        self.path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    def set(self, key: str, position: Position) -> None:
        super().set(key, position)
        self._save()

    def delete(self, key: str) -> None:
        super().delete(key)
        self._save()

    def clear(self) -> None:
        super().clear()
        self._save()
