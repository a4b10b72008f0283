import httpx
import pytest
from tubenotes.services.auth import (
    AuthManager,
    DeviceAuthorizationError,
    DeviceAuthorizationTimeout,
    is_well_formed_token,
    parse_callback_url,
)
from tubenotes.services.progress import ProgressCoordinator
from tests.conftest import POLL_URL, START_URL, WEBHOOK_URL, Recorder, json_response, make_settings

PENDING = json_response({"status": "pending"})


class Harness:
    def __init__(self, *responses, **overrides):
        self.recorder = Recorder(*responses)
        self.settings = make_settings(**overrides)
        self.notices = []
        self.saved = []
        self.sleeps = []
        self.progress = ProgressCoordinator(countdown_seconds=3, tick_interval=0.01)
        self.auth = AuthManager(
            self.settings,
            progress=self.progress,
            http=self.recorder.client(),
            notify=self.notices.append,
            save=self.saved.append,
            sleep=self.fake_sleep,
        )

    async def fake_sleep(self, seconds):
        self.sleeps.append(seconds)


def test_is_well_formed_token():
    assert is_well_formed_token("a" * 16)
    assert not is_well_formed_token("a" * 15)
    assert not is_well_formed_token("")
    assert not is_well_formed_token(None)


def test_parse_callback_url():
    assert parse_callback_url("obsidian://ytp-auth?token=abc&x=1") == {"token": "abc", "x": "1"}
    assert parse_callback_url("obsidian://ytp-auth") == {}


@pytest.mark.asyncio
async def test_validate_token_success():
    h = Harness(json_response({"status": "ok"}))
    assert await h.auth.validate_token("candidate-token-123")

    payload = h.recorder.json()
    assert str(h.recorder.requests[0].url) == WEBHOOK_URL
    assert payload["validation_only"] is True
    assert payload["token"] == "candidate-token-123"
    assert payload["source"] == "obsidian-plugin-validation"


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    json_response({"error": "Invalid token"}),
    httpx.Response(401, text="no"),
    httpx.Response(200, text="<html><title>Bad Gateway</title></html>"),
    httpx.ConnectError("down"),
])
async def test_validate_token_failure(response):
    h = Harness(response)
    assert await h.auth.validate_token("candidate-token-123") is False


@pytest.mark.asyncio
async def test_start_device_flow():
    h = Harness(json_response({"device_code": "dev-1", "user_code": "ABCD-1234"}))
    session = await h.auth.start_device_flow()

    assert session.device_code == "dev-1"
    assert session.user_code == "ABCD-1234"
    assert session.verification_url == h.settings.DEVICE_VERIFICATION_URL
    assert h.auth.session is session
    assert str(h.recorder.requests[0].url) == START_URL
    assert h.recorder.json()["client_info"]["plugin_version"] == "1.0.0"


@pytest.mark.asyncio
@pytest.mark.parametrize("response,notice", [
    (httpx.ConnectError("down"), "❌ Error generating device code"),
    (httpx.Response(500, text="boom"), "❌ Device code generation failed"),
    (json_response({"user_code": "ABCD"}), "❌ Failed to generate device code"),
])
async def test_start_device_flow_failure(response, notice):
    h = Harness(response)
    assert await h.auth.start_device_flow() is None
    assert h.notices == [notice]
    assert h.auth.session is None


@pytest.mark.asyncio
async def test_poll_pending_then_authorized():
    h = Harness(PENDING, PENDING, json_response({"status": "authorized", "token": "X"}))
    token = await h.auth.poll_device_code("dev-1")

    assert token == "X"
    assert h.recorder.calls == 3
    assert all(str(r.url) == POLL_URL for r in h.recorder.requests)
    assert h.recorder.json(0) == {"device_code": "dev-1", "source": "obsidian-plugin"}
    # one wait before every query
    assert h.sleeps == [10, 10, 10]


@pytest.mark.asyncio
async def test_poll_times_out_when_always_pending():
    h = Harness(PENDING, POLL_MAX_ATTEMPTS=4)
    with pytest.raises(DeviceAuthorizationTimeout):
        await h.auth.poll_device_code("dev-1")
    assert h.recorder.calls == 4


@pytest.mark.asyncio
async def test_poll_denial_is_not_a_timeout():
    h = Harness(json_response({"status": "denied", "error": "Access denied"}), POLL_MAX_ATTEMPTS=3)
    with pytest.raises(DeviceAuthorizationError, match="Access denied"):
        await h.auth.poll_device_code("dev-1")
    assert h.recorder.calls == 3


@pytest.mark.asyncio
async def test_poll_recovers_from_transient_errors():
    h = Harness(
        httpx.Response(500, text="boom"),
        httpx.ConnectError("flaky"),
        json_response({"status": "authorized", "token": "X"}),
    )
    assert await h.auth.poll_device_code("dev-1") == "X"
    assert h.recorder.calls == 3


@pytest.mark.asyncio
async def test_poll_final_transport_error_propagates():
    h = Harness(PENDING, PENDING, httpx.ConnectError("gone"), POLL_MAX_ATTEMPTS=3)
    with pytest.raises(httpx.ConnectError):
        await h.auth.poll_device_code("dev-1")


@pytest.mark.asyncio
async def test_handle_device_code_installs_token():
    h = Harness(json_response({"status": "authorized", "token": "new-token-0123456789"}))
    token = await h.auth.handle_device_code("dev-1")

    assert token == "new-token-0123456789"
    assert h.settings.AUTH_TOKEN == token
    assert h.saved == [h.settings]
    assert "✅ Device authenticated successfully!" in h.notices
    assert h.progress.status == "✅ Device linked"


@pytest.mark.asyncio
async def test_handle_device_code_timeout():
    h = Harness(PENDING, POLL_MAX_ATTEMPTS=2)
    assert await h.auth.handle_device_code("dev-1") is None
    assert h.notices[-1] == "❌ Device authorization timed out"
    assert h.saved == []


@pytest.mark.asyncio
async def test_handle_device_code_failure():
    h = Harness(json_response({"status": "expired"}), POLL_MAX_ATTEMPTS=2)
    assert await h.auth.handle_device_code("dev-1") is None
    assert h.notices[-1] == "❌ Device authentication failed"


@pytest.mark.asyncio
async def test_login_runs_full_flow():
    h = Harness(
        json_response({"device_code": "dev-1", "user_code": "ABCD-1234", "verification_url": "https://x.test/go"}),
        PENDING,
        json_response({"status": "authorized", "token": "fresh-token-0123456789"}),
    )
    shown = []
    token = await h.auth.login(on_session=shown.append)

    assert token == "fresh-token-0123456789"
    assert shown[0].user_code == "ABCD-1234"
    assert shown[0].verification_url == "https://x.test/go"
    assert h.auth.session is None


@pytest.mark.asyncio
async def test_callback_with_token():
    h = Harness(json_response({"status": "ok"}))
    assert await h.auth.handle_callback({"token": "callback-token-0123456789"})

    assert h.settings.AUTH_TOKEN == "callback-token-0123456789"
    assert h.saved == [h.settings]
    assert h.notices == ["🔐 Authentication token received and saved!", "✅ Token validated successfully!"]
    assert h.progress.status == "✅ Authenticated"


@pytest.mark.asyncio
async def test_callback_with_rejected_token():
    h = Harness(json_response({"error": "Invalid token"}))
    assert not await h.auth.handle_callback({"token": "callback-token-0123456789"})
    # kept even when validation fails
    assert h.settings.AUTH_TOKEN == "callback-token-0123456789"
    assert h.notices[-1] == "❌ Token validation failed"
    assert h.progress.status == "❌ Invalid token"


@pytest.mark.asyncio
async def test_callback_with_code():
    h = Harness(json_response({"status": "authorized", "token": "code-token-0123456789"}))
    assert await h.auth.handle_callback({"code": "dev-9"})
    assert h.settings.AUTH_TOKEN == "code-token-0123456789"
    assert h.recorder.json()["device_code"] == "dev-9"


@pytest.mark.asyncio
async def test_callback_without_data():
    h = Harness(PENDING)
    assert not await h.auth.handle_callback({})
    assert h.notices == ["❌ Invalid authentication data received"]
    assert h.recorder.calls == 0
