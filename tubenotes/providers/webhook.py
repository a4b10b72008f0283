import json
import time
import uuid
from datetime import datetime
from typing import Any, Dict, Optional
import httpx
from tubenotes.config import Settings, settings as default_settings
from tubenotes.core.errors import (
    BackendStatusError,
    ErrorKind,
    MalformedTokenError,
    MissingTokenError,
    TranscriptError,
    classify,
    user_message,
)
from tubenotes.models.transcript import (
    PROCESSING_ERROR_TITLE,
    TranscriptRequest,
    TranscriptResult,
    UserAccountInfo,
)
from tubenotes.services.auth import is_well_formed_token
from tubenotes.services.progress import ProgressCoordinator
from tubenotes.utils.logger import logger
from tubenotes.utils.render import render
from tubenotes.providers.youtube import video_id
from tubenotes.utils.response import extract_field, parse_response

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "de": "German",
    "fr": "French",
    "it": "Italian",
    "pt": "Portuguese",
    "uk": "Ukrainian",
    "tr": "Turkish",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "ru": "Russian",
}

RAW_DUMP_LENGTH = 500


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


def new_request_id() -> str:
    return f"py_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def user_agent() -> str:
    return f"tubenotes httpx/{httpx.__version__}"


def format_credits(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class TranscriptClient:
    """
    Sends a video URL to the transcript workflow and normalises whatever comes back.

    ``fetch_transcript`` never raises: failures come back as a result titled
    ``Processing Error`` whose content explains what went wrong.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        progress: Optional[ProgressCoordinator] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or default_settings
        self.progress = progress
        self._http = http

    def build_request(self, url: str) -> TranscriptRequest:
        return TranscriptRequest(
            video_url=url,
            language=language_name(self.settings.OUTPUT_LANG),
            include_title=self.settings.INCLUDE_TITLE,
            token=self.settings.AUTH_TOKEN,
            request_id=new_request_id(),
            timestamp=int(time.time() * 1000),
        )

    async def fetch_transcript(self, url: str) -> TranscriptResult:
        try:
            return await self._fetch(url)
        except TranscriptError as e:
            return self._error_result(url, e.message, e.kind)
        except Exception as e:
            logger.exception(f"Unexpected failure while fetching transcript for {url}")
            message = str(e) or type(e).__name__
            return self._error_result(url, message, classify(message))

    async def _fetch(self, url: str) -> TranscriptResult:
        token = self.settings.AUTH_TOKEN
        if not token or not token.strip():
            raise MissingTokenError()
        if not is_well_formed_token(token):
            raise MalformedTokenError()

        request = self.build_request(url)
        logger.info(f"Sending request {request.request_id} for video {video_id(url)} ({self.settings.REQUEST_METHOD})")

        response = await self._send(request)
        logger.info(f"Workflow responded {response.status_code}: {response.text[:200]!r}")
        if response.status_code != 200:
            raise BackendStatusError(response.status_code, response.text)

        data = parse_response(response.text)
        if isinstance(data, dict) and data.get("user_info"):
            self._observe_account(data["user_info"])

        if not isinstance(data, dict):
            raise TranscriptError(f"Unexpected response shape: {type(data).__name__}")
        if data.get("error"):
            raise TranscriptError(str(data["error"]))

        title = extract_field(data, "title")
        content = extract_field(data, "content")
        logger.info(f"Processed {request.request_id}: title={title!r}, content length={len(content)}")

        if not content:
            logger.error(f"Empty content received for {url}")
            dump = json.dumps(data, indent=2, ensure_ascii=False)[:RAW_DUMP_LENGTH]
            return TranscriptResult(title=title, content=render("empty_content", dump=dump))
        return TranscriptResult(title=title, content=content)

    async def _send(self, request: TranscriptRequest) -> httpx.Response:
        payload = request.to_payload(
            source=self.settings.SOURCE,
            user_agent=user_agent(),
            plugin_version=self.settings.PLUGIN_VERSION,
        )
        if self._http is not None:
            return await self._call(self._http, payload)
        async with httpx.AsyncClient(timeout=self.settings.REQUEST_TIMEOUT) as http:
            return await self._call(http, payload)

    async def _call(self, http: httpx.AsyncClient, payload: Dict[str, Any]) -> httpx.Response:
        endpoint = self.settings.WEBHOOK_URL
        if self.settings.REQUEST_METHOD == "GET":
            return await http.get(endpoint, params=payload)
        return await http.post(endpoint, json=payload)

    def _observe_account(self, raw: Dict[str, Any]):
        try:
            info = UserAccountInfo.model_validate(raw)
        except ValueError as e:
            logger.warning(f"Ignoring malformed user_info: {e}")
            return
        logger.info(f"Account: credits={info.credits_remaining}, plan={info.plan_type}, cost={info.request_cost}")
        if self.progress is None or info.credits_remaining is None:
            return

        if self.settings.SHOW_CREDITS_INFO:
            self.progress.show_status(f"💰 Credits: {format_credits(info.credits_remaining)}", clear_after=3)
        if info.credits_remaining < self.settings.LOW_CREDITS_THRESHOLD:
            self.progress.show_status("⚠️ Low credits! Top up account", clear_after=8)

    def _error_result(self, url: str, raw: str, kind: ErrorKind) -> TranscriptResult:
        logger.error(f"Transcript fetch failed ({kind.value}) for {url}: {raw}")
        content = render(
            "error_block",
            message=user_message(kind, raw),
            url=url,
            time=datetime.now().strftime("%m/%d/%Y, %I:%M:%S %p"),
            error=raw,
        )
        return TranscriptResult(title=PROCESSING_ERROR_TITLE, content=content, error=kind)
