from abc import ABC, abstractmethod
from typing import Optional, Tuple

class NoteHost(ABC):
    """The editing surface results are inserted into. Offsets are character indexes into the active note."""

    @abstractmethod
    def active_note(self) -> Optional[str]:
        """Path of the note being edited, or None."""
        pass

    @abstractmethod
    def get_text(self) -> str:
        pass

    @abstractmethod
    def get_cursor(self) -> int:
        pass

    @abstractmethod
    def get_selection(self) -> Tuple[int, int]:
        """Ordered (start, end) of the current selection."""
        pass

    @abstractmethod
    def replace_range(self, text: str, start: int, end: Optional[int] = None):
        """Replace text[start:end] (insert at start when end is None)."""
        pass

    @abstractmethod
    def read_clipboard(self) -> str:
        pass

    @abstractmethod
    def notify(self, message: str):
        """Show a short, user-facing notice."""
        pass

    @abstractmethod
    def read_note(self, path: str) -> Optional[str]:
        """Contents of another note, or None if it does not exist."""
        pass

    @abstractmethod
    def append_to_note(self, path: str, content: str):
        pass
