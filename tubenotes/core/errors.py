"""
Error taxonomy for the transcript workflow.

Every failure is reduced to an ``ErrorKind`` by looking at its message text
and, when known, the HTTP status. Rules are evaluated top to bottom, so the
token and billing checks win over the generic status checks.
"""

import re
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MISSING_TOKEN = "MissingToken"
    MALFORMED_TOKEN = "MalformedToken"
    INSUFFICIENT_CREDITS = "InsufficientCredits"
    INVALID_OR_EXPIRED_TOKEN = "InvalidOrExpiredToken"
    UPSTREAM_HTML_ERROR = "UpstreamHtmlError"
    UPSTREAM_NON_JSON_ERROR = "UpstreamNonJsonError"
    MALFORMED_JSON_ERROR = "MalformedJsonError"
    SERVER_ERROR_5XX = "ServerError5xx"
    ENDPOINT_NOT_FOUND = "EndpointNotFound"
    FORBIDDEN = "Forbidden"
    UNAUTHORIZED = "Unauthorized"
    PAYMENT_REQUIRED = "PaymentRequired"
    UNKNOWN = "Unknown"


MISSING_TOKEN_MESSAGE = "Authentication token is required. Please set your token in plugin settings."
MALFORMED_TOKEN_MESSAGE = "Invalid token format. Please check your token in plugin settings."

# (substrings, kind) -- any substring matches
_MESSAGE_RULES = [
    (("Authentication token is required",), ErrorKind.MISSING_TOKEN),
    (("Invalid token format",), ErrorKind.MALFORMED_TOKEN),
    (("insufficient credits", "Insufficient credits"), ErrorKind.INSUFFICIENT_CREDITS),
    (("invalid token", "Invalid token"), ErrorKind.INVALID_OR_EXPIRED_TOKEN),
    (("Server returned HTML error page",), ErrorKind.UPSTREAM_HTML_ERROR),
    (("Server returned non-JSON response",), ErrorKind.UPSTREAM_NON_JSON_ERROR),
    (("Invalid JSON response",), ErrorKind.MALFORMED_JSON_ERROR),
]

_STATUS_RULES = {
    404: ErrorKind.ENDPOINT_NOT_FOUND,
    403: ErrorKind.FORBIDDEN,
    401: ErrorKind.UNAUTHORIZED,
    402: ErrorKind.PAYMENT_REQUIRED,
}

_BACKEND_STATUS_RE = re.compile(r"Backend error: (\d{3})")

MESSAGES = {
    ErrorKind.MISSING_TOKEN: "🔐 Please set your authentication token in plugin settings to use this service.",
    ErrorKind.MALFORMED_TOKEN: "🔑 Invalid token format. Please check your token in settings.",
    ErrorKind.INSUFFICIENT_CREDITS: "💳 Insufficient credits. Please top up your account to continue.",
    ErrorKind.INVALID_OR_EXPIRED_TOKEN: "🚫 Invalid or expired token. Please update your token in settings.",
    ErrorKind.UPSTREAM_HTML_ERROR: "🌐 Server returned HTML error page. The workflow might be unavailable or overloaded.",
    ErrorKind.UPSTREAM_NON_JSON_ERROR: "🌐 Server returned error instead of data. The workflow might be unavailable or overloaded.",
    ErrorKind.MALFORMED_JSON_ERROR: "🧩 Server returned invalid data. Please try again later.",
    ErrorKind.SERVER_ERROR_5XX: "🛠️ Server error (5xx). The workflow might not be working correctly.",
    ErrorKind.ENDPOINT_NOT_FOUND: "🔎 Service unavailable (404). Check the webhook settings.",
    ErrorKind.FORBIDDEN: "⛔ Access denied (403). Check authorization token.",
    ErrorKind.UNAUTHORIZED: "🔐 Unauthorized (401). Check your authentication token.",
    ErrorKind.PAYMENT_REQUIRED: "💳 Payment required (402). Please top up your account.",
}

# Only these deserve a status-bar notice on top of the inline message
STATUS_WORTHY = frozenset({
    ErrorKind.MISSING_TOKEN,
    ErrorKind.MALFORMED_TOKEN,
    ErrorKind.INSUFFICIENT_CREDITS,
    ErrorKind.INVALID_OR_EXPIRED_TOKEN,
    ErrorKind.UNAUTHORIZED,
    ErrorKind.PAYMENT_REQUIRED,
    ErrorKind.FORBIDDEN,
})


class TranscriptError(Exception):
    """Raised inside the fetch pipeline; converted to a sentinel result at its boundary."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)

    @property
    def kind(self) -> "ErrorKind":
        return classify(self.message, self.status)


class MissingTokenError(TranscriptError):
    def __init__(self):
        super().__init__(MISSING_TOKEN_MESSAGE)


class MalformedTokenError(TranscriptError):
    def __init__(self):
        super().__init__(MALFORMED_TOKEN_MESSAGE)


class BackendStatusError(TranscriptError):
    def __init__(self, status: int, body: str = ""):
        super().__init__(f"Backend error: {status} - {body or 'Unknown error'}", status=status)


def classify(message: Optional[str], status: Optional[int] = None) -> ErrorKind:
    text = message or ""
    for needles, kind in _MESSAGE_RULES:
        if any(n in text for n in needles):
            return kind

    if status is None:
        m = _BACKEND_STATUS_RE.search(text)
        if m:
            status = int(m.group(1))
    if status is not None:
        if 500 <= status < 600:
            return ErrorKind.SERVER_ERROR_5XX
        if status in _STATUS_RULES:
            return _STATUS_RULES[status]
    return ErrorKind.UNKNOWN


def user_message(kind: ErrorKind, raw: Optional[str] = None) -> str:
    if kind is ErrorKind.UNKNOWN:
        return raw or "Unknown error occurred"
    return MESSAGES[kind]


def is_status_worthy(kind: Optional[ErrorKind]) -> bool:
    return kind in STATUS_WORTHY
