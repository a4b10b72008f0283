import re
from typing import Optional

MAX_URL_LENGTH = 2048
MAX_TEXT_LENGTH = 10000

_URL_BODY = (
    r"(https?://)?(www\.)?"
    r"(youtube\.com/(watch\?v=|live/|embed/|shorts/)|youtu\.be/)"
    r"([A-Za-z0-9_-]{11})"
)

_VALID_RE = re.compile(rf"{_URL_BODY}(\?.*)?")
_SEARCH_RE = re.compile(rf"{_URL_BODY}(\?\S*)?")

_URL_STARTS = ("http", "www", "youtube", "youtu.be")


def is_valid_url(candidate: Optional[str]) -> bool:
    """True iff the whole trimmed string is one recognised video URL."""
    if not candidate or len(candidate) > MAX_URL_LENGTH:
        return False
    return _VALID_RE.fullmatch(candidate.strip()) is not None


def extract_url(text: Optional[str]) -> Optional[str]:
    """Find the first video URL in free text and return it with an explicit https scheme."""
    if not text or len(text) > MAX_TEXT_LENGTH:
        return None

    m = _SEARCH_RE.search(text.strip())
    if not m:
        return None

    found = m.group(0)
    if not found.startswith(_URL_STARTS):
        return None
    return found if found.startswith("http") else f"https://{found}"


def video_id(url: Optional[str]) -> Optional[str]:
    if not url or len(url) > MAX_URL_LENGTH:
        return None
    m = _SEARCH_RE.search(url)
    return m.group(5) if m else None
