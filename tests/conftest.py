import json
from typing import Dict, List, Optional, Tuple
import httpx
import pytest
from tubenotes.config import Settings
from tubenotes.core.host import NoteHost

TOKEN = "tok_0123456789abcdef"
WEBHOOK_URL = "https://hooks.test/webhook/transcript"
START_URL = "https://hooks.test/webhook/device-auth-start"
POLL_URL = "https://hooks.test/webhook/device-auth-poll"


def make_settings(**overrides) -> Settings:
    values = dict(
        AUTH_TOKEN=TOKEN,
        WEBHOOK_URL=WEBHOOK_URL,
        DEVICE_AUTH_START_URL=START_URL,
        DEVICE_AUTH_POLL_URL=POLL_URL,
        DEVICE_VERIFICATION_URL="https://hooks.test/device-auth",
        REQUEST_METHOD="POST",
        OUTPUT_LANG="en",
        INCLUDE_TITLE=True,
        SHOW_CREDITS_INFO=False,
        DAILY_NOTE_URL="",
        COUNTDOWN_SECONDS=30,
        TICK_INTERVAL=0.01,
        POLL_MAX_ATTEMPTS=5,
        POLL_INTERVAL=10,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def json_response(data, status: int = 200) -> httpx.Response:
    return httpx.Response(status, text=json.dumps(data))


class Recorder:
    """MockTransport handler that replays scripted responses and remembers requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def calls(self) -> int:
        return len(self.requests)

    def json(self, index: int = -1) -> Dict:
        return json.loads(self.requests[index].content)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class MemoryHost(NoteHost):
    def __init__(self, text: str = "", note: Optional[str] = "Note.md", cursor: Optional[int] = None,
                 selection: Optional[Tuple[int, int]] = None, clipboard: str = ""):
        self.text = text
        self.note = note
        self.cursor = len(text) if cursor is None else cursor
        self.selection = selection
        self.clipboard = clipboard
        self.notes: Dict[str, str] = {}
        self.notices: List[str] = []

    def active_note(self):
        return self.note

    def get_text(self):
        return self.text

    def get_cursor(self):
        return self.cursor

    def get_selection(self):
        return self.selection or (self.cursor, self.cursor)

    def replace_range(self, text, start, end=None):
        end = start if end is None else end
        self.text = self.text[:start] + text + self.text[end:]

    def read_clipboard(self):
        return self.clipboard

    def notify(self, message):
        self.notices.append(message)

    def read_note(self, path):
        return self.notes.get(path)

    def append_to_note(self, path, content):
        self.notes[path] = self.notes.get(path, "") + "\n\n" + content


@pytest.fixture
def settings():
    return make_settings()
