import asyncio
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
from urllib.parse import parse_qs, urlparse
import httpx
from tubenotes.config import Settings, save_settings, settings as default_settings
from tubenotes.models.auth import DeviceCodeSession, PollResponse
from tubenotes.services.progress import ProgressCoordinator
from tubenotes.utils.logger import logger
from tubenotes.utils.response import ResponseParseError, parse_response
from tubenotes.utils.retry import poll_retry

MIN_TOKEN_LENGTH = 16
VALIDATION_VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def is_well_formed_token(token: Optional[str]) -> bool:
    return bool(token) and len(token) >= MIN_TOKEN_LENGTH


def parse_callback_url(url: str) -> Dict[str, str]:
    """Flatten the query of a callback URL such as ``obsidian://ytp-auth?token=...``."""
    qs = parse_qs(urlparse(url).query)
    return {key: values[0] for key, values in qs.items() if values}


class AuthError(Exception):
    pass


class DeviceAuthorizationError(AuthError):
    """The poll endpoint answered with something other than authorized/pending."""


class DeviceAuthorizationTimeout(AuthError):
    """Every poll attempt came back pending."""


class AuthorizationPending(Exception):
    pass


class AuthManager:
    """
    Owns the stored token: validates it against the workflow and obtains new
    ones through the device-code flow.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        progress: Optional[ProgressCoordinator] = None,
        http: Optional[httpx.AsyncClient] = None,
        notify: Optional[Callable[[str], None]] = None,
        save: Callable[[Settings], None] = save_settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or default_settings
        self.progress = progress
        self._http = http
        self._notify = notify or logger.info
        self._save = save
        self._sleep = sleep
        self.session: Optional[DeviceCodeSession] = None

    @property
    def token(self) -> str:
        return self.settings.AUTH_TOKEN

    def install_token(self, token: str):
        self.settings.AUTH_TOKEN = token
        self._save(self.settings)
        logger.info("Authentication token installed")

    async def _post(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        if self._http is not None:
            return await self._http.post(url, json=payload)
        async with httpx.AsyncClient(timeout=self.settings.REQUEST_TIMEOUT) as http:
            return await http.post(url, json=payload)

    def _status(self, text: str, clear_after: Optional[float] = None):
        if self.progress is not None:
            self.progress.show_status(text, clear_after=clear_after)

    async def validate_token(self, token: str) -> bool:
        payload = {
            "video_url": VALIDATION_VIDEO_URL,
            "source": f"{self.settings.SOURCE}-validation",
            "language": "English",
            "include_title": False,
            "token": token,
            "validation_only": True,
        }
        try:
            response = await self._post(self.settings.WEBHOOK_URL, payload)
            if response.status_code != 200:
                logger.warning(f"Token validation got HTTP {response.status_code}")
                return False
            data = parse_response(response.text)
            return isinstance(data, dict) and not data.get("error")
        except Exception as e:
            logger.error(f"Token validation request failed: {e}")
            return False

    # Device-code flow

    async def start_device_flow(self) -> Optional[DeviceCodeSession]:
        payload = {
            "source": self.settings.SOURCE,
            "client_info": {
                "plugin_version": self.settings.PLUGIN_VERSION,
                "host_version": "tubenotes",
            },
        }
        try:
            response = await self._post(self.settings.DEVICE_AUTH_START_URL, payload)
        except httpx.HTTPError as e:
            logger.error(f"Device code generation error: {e}")
            self._notify("❌ Error generating device code")
            return None

        if response.status_code != 200:
            logger.error(f"Device code generation failed with HTTP {response.status_code}")
            self._notify("❌ Device code generation failed")
            return None

        try:
            data = parse_response(response.text)
        except ResponseParseError as e:
            logger.error(f"Device code response unreadable: {e}")
            data = None
        if not isinstance(data, dict) or not data.get("device_code") or not data.get("user_code"):
            self._notify("❌ Failed to generate device code")
            return None

        self.session = DeviceCodeSession(
            device_code=data["device_code"],
            user_code=data["user_code"],
            verification_url=data.get("verification_url") or self.settings.DEVICE_VERIFICATION_URL,
        )
        return self.session

    async def _poll_once(self, device_code: str, attempt: int, max_attempts: int) -> str:
        try:
            response = await self._post(
                self.settings.DEVICE_AUTH_POLL_URL,
                {"device_code": device_code, "source": self.settings.SOURCE},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Device auth poll attempt {attempt}/{max_attempts} failed: {e}")
            raise

        if response.status_code != 200:
            error = DeviceAuthorizationError(f"HTTP {response.status_code}")
        else:
            try:
                result = PollResponse.model_validate(parse_response(response.text))
            except (ResponseParseError, ValueError) as e:
                error = DeviceAuthorizationError(str(e))
            else:
                if result.status == "authorized" and result.token:
                    return result.token
                if result.status == "pending":
                    raise AuthorizationPending(device_code)
                error = DeviceAuthorizationError(result.error or "Authorization failed")

        logger.warning(f"Device auth poll attempt {attempt}/{max_attempts} failed: {error}")
        raise error

    async def poll_device_code(self, device_code: str) -> str:
        """
        Wait for the user to approve ``device_code`` in the browser.

        Each attempt waits ``POLL_INTERVAL`` seconds and then asks the poll
        endpoint once. Returns the token on ``authorized``. Raises
        ``DeviceAuthorizationTimeout`` when every attempt was still pending,
        otherwise the error of the final attempt.
        """
        max_attempts = self.settings.POLL_MAX_ATTEMPTS
        attempts = 0
        await self._sleep(self.settings.POLL_INTERVAL)
        try:
            async for attempt in poll_retry(
                max_attempts,
                self.settings.POLL_INTERVAL,
                retry_on=(AuthorizationPending, DeviceAuthorizationError),
                sleep=self._sleep,
            ):
                with attempt:
                    attempts += 1
                    token = await self._poll_once(device_code, attempts, max_attempts)
        except AuthorizationPending as e:
            raise DeviceAuthorizationTimeout("Device authorization timeout") from e
        finally:
            self.session = None
        logger.info(f"Device authorized after {attempts} poll attempt(s)")
        return token

    async def handle_device_code(self, device_code: str) -> Optional[str]:
        self._notify(f"🔐 Processing device code: {device_code}")
        try:
            token = await self.poll_device_code(device_code)
        except DeviceAuthorizationTimeout:
            self._notify("❌ Device authorization timed out")
            return None
        except Exception as e:
            logger.error(f"Device code authentication error: {e}")
            self._notify("❌ Device authentication failed")
            return None

        self.install_token(token)
        self._notify("✅ Device authenticated successfully!")
        self._status("✅ Device linked", clear_after=3)
        return token

    async def login(self, on_session: Optional[Callable[[DeviceCodeSession], None]] = None) -> Optional[str]:
        session = await self.start_device_flow()
        if session is None:
            return None
        if on_session is not None:
            on_session(session)
        return await self.handle_device_code(session.device_code)

    async def handle_callback(self, params: Mapping[str, str]) -> bool:
        """Entry point for the custom-scheme callback: either a ready token or a device code."""
        token = params.get("token")
        code = params.get("code")
        if token:
            self.install_token(token)
            self._notify("🔐 Authentication token received and saved!")
            if await self.validate_token(token):
                self._notify("✅ Token validated successfully!")
                self._status("✅ Authenticated", clear_after=3)
                return True
            self._notify("❌ Token validation failed")
            self._status("❌ Invalid token", clear_after=5)
            return False
        if code:
            return await self.handle_device_code(code) is not None

        self._notify("❌ Invalid authentication data received")
        return False
