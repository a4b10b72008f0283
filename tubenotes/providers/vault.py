import os
from typing import Optional, Tuple
from rich.console import Console
from tubenotes.core.host import NoteHost

class VaultHost(NoteHost):
    """A directory of markdown files edited in place, one active note at a time."""

    def __init__(
        self,
        vault_dir: str,
        note: Optional[str] = None,
        cursor: Optional[int] = None,
        selection: Optional[Tuple[int, int]] = None,
        clipboard: str = "",
        console: Optional[Console] = None,
    ):
        self.vault_dir = vault_dir
        self.note = note
        self.clipboard = clipboard
        self.console = console or Console()
        self._cursor = cursor
        self._selection = selection

    def _path(self, name: str) -> str:
        return name if os.path.isabs(name) else os.path.join(self.vault_dir, name)

    def active_note(self) -> Optional[str]:
        if self.note and os.path.exists(self._path(self.note)):
            return self.note
        return None

    def get_text(self) -> str:
        if not self.note:
            return ""
        return self.read_note(self.note) or ""

    def get_cursor(self) -> int:
        length = len(self.get_text())
        if self._cursor is None:
            return length
        return max(0, min(self._cursor, length))

    def get_selection(self) -> Tuple[int, int]:
        if self._selection is None:
            cursor = self.get_cursor()
            return cursor, cursor
        start, end = sorted(self._selection)
        return start, end

    def replace_range(self, text: str, start: int, end: Optional[int] = None):
        current = self.get_text()
        end = start if end is None else end
        with open(self._path(self.note), "w", encoding="utf-8") as f:
            f.write(current[:start] + text + current[end:])

    def read_clipboard(self) -> str:
        return self.clipboard

    def notify(self, message: str):
        self.console.print(message)

    def read_note(self, path: str) -> Optional[str]:
        full = self._path(path)
        if not os.path.exists(full):
            return None
        with open(full, "r", encoding="utf-8") as f:
            return f.read()

    def append_to_note(self, path: str, content: str):
        current = self.read_note(path) or ""
        with open(self._path(path), "w", encoding="utf-8") as f:
            f.write(current + "\n\n" + content)
