"""Text buffers — the editing surface the sync engine reads and rewrites.

A buffer exposes the full text, a whole-text replacement and a change
notification. Replacing the text notifies listeners synchronously, before
:meth:`replace_all` returns.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from ychart.infrastructure.events import Listeners, Subscription

logger = logging.getLogger(__name__)


class TextBuffer(Protocol):
    def get_text(self) -> str: ...

    def replace_all(self, text: str) -> None: ...

    def on_change(self, callback: Callable[[str], None]) -> Subscription: ...


class InMemoryBuffer:
    """Buffer backed by a string. Also models a user typing via :meth:`edit`."""

    def __init__(self, text: str = "") -> None:
        self._text = text
        self._listeners = Listeners()

    def get_text(self) -> str:
        return self._text

    def replace_all(self, text: str) -> None:
        self._text = text
        self._listeners.emit(text)

    def edit(self, text: str) -> None:
        """Alias of :meth:`replace_all` used for user edits."""
        self.replace_all(text)

    def on_change(self, callback: Callable[[str], None]) -> Subscription:
        return self._listeners.add(callback)


class FileBuffer:
    """Buffer backed by a document file on disk.

    The text is read once on construction; :meth:`reload` picks up external
    edits and notifies listeners only if the content actually changed.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._text = path.read_text(encoding="utf-8") if path.is_file() else ""
        self._listeners = Listeners()

    def get_text(self) -> str:
        return self._text

    def replace_all(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(text, encoding="utf-8")
        self._text = text
        logger.debug("Wrote %d bytes to %s", len(text), self.path)
        self._listeners.emit(text)

    def reload(self) -> bool:
        """Re-read the file. Returns True if the text changed.

        A file that cannot be read, for example one deleted or mid-rename by
        an editor, leaves the current text in place.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not reload %s: %s", self.path, exc)
            return False
        if text == self._text:
            return False
        self._text = text
        self._listeners.emit(text)
        return True

    def on_change(self, callback: Callable[[str], None]) -> Subscription:
        return self._listeners.add(callback)
