import json
import re
from typing import Any, Dict, Optional
from tubenotes.core.errors import TranscriptError

EXCERPT_LENGTH = 100

# Upstream renamed these fields several times; first present alias wins
RESPONSE_FIELDS = {
    "title": ("title", "processedTitle", "videoTitle"),
    "content": ("content", "processedContent", "transcript", "finalContent"),
}

FIELD_DEFAULTS = {
    "title": "Untitled",
    "content": "",
}

_HTML_TITLE_PATTERNS = [
    re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE),
    re.compile(r"<h1[^>]*>([^<]+)</h1>", re.IGNORECASE),
    re.compile(r"<body[^>]*>([^<]+)</body>", re.IGNORECASE),
]


class ResponseParseError(TranscriptError):
    pass


class MalformedResponseError(ResponseParseError):
    def __init__(self, body: str):
        super().__init__(f"Invalid JSON response: {body[:EXCERPT_LENGTH]}...")


class HtmlErrorPageError(ResponseParseError):
    def __init__(self, title: str):
        self.title = title
        super().__init__(f"Server returned HTML error page: {title}")


class NonJsonResponseError(ResponseParseError):
    def __init__(self, body: str):
        super().__init__(f"Server returned non-JSON response: {body[:EXCERPT_LENGTH]}...")


def html_error_title(text: str) -> str:
    for pattern in _HTML_TITLE_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group(1).strip()
    return "HTML Error Page"


def parse_response(text: Optional[str]) -> Any:
    """Decode a webhook body, raising a ResponseParseError for anything that is not a JSON object."""
    text = text or ""
    if text.strip().startswith("{"):
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(text) from e

    if "<html" in text or "<!DOCTYPE" in text:
        raise HtmlErrorPageError(html_error_title(text))
    raise NonJsonResponseError(text)


def extract_field(data: Dict[str, Any], name: str) -> str:
    for alias in RESPONSE_FIELDS[name]:
        value = data.get(alias)
        if value:
            return str(value)
    return FIELD_DEFAULTS[name]
