"""Unit tests for the voice client layer."""
import json
import httpx
import pytest

from app.services.voice.base import CALL_END, CALL_START, ERROR, MESSAGE, SPEECH_END, SPEECH_START
from app.services.voice.events import (
    extract_call_id,
    extract_session_id,
    translate_server_message,
)
from app.services.voice.vapi import VapiWebClient


def make_client(handler, session_id="sess_1"):
    return VapiWebClient(
        web_token="pub-token",
        api_url="https://api.vapi.test/",
        session_id=session_id,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestVoiceClientListeners:
    """Test listener registration on the base client."""

    async def test_emit_in_registration_order(self, fake_voice):
        seen = []
        fake_voice.on(MESSAGE, lambda payload: seen.append(("first", payload)))

        async def second(payload):
            seen.append(("second", payload))

        fake_voice.on(MESSAGE, second)
        await fake_voice.emit(MESSAGE, {"n": 1})

        assert seen == [("first", {"n": 1}), ("second", {"n": 1})]

    async def test_off_removes_listener(self, fake_voice):
        seen = []
        handler = seen.append
        fake_voice.on(CALL_START, handler)
        fake_voice.off(CALL_START, handler)

        await fake_voice.emit(CALL_START, "x")

        assert seen == []

    def test_unknown_event_rejected(self, fake_voice):
        with pytest.raises(ValueError):
            fake_voice.on("volume-level", lambda payload: None)


class TestVapiWebClient:
    """Test the Vapi REST client."""

    def test_request_body_with_assistant_id(self):
        client = VapiWebClient(web_token="t", session_id="sess_1")

        body = client.build_request_body("asst_1", {"variableValues": {"username": "Ada"}})

        assert body == {
            "assistantId": "asst_1",
            "assistantOverrides": {
                "variableValues": {"username": "Ada"},
                "metadata": {"sessionId": "sess_1"},
            },
        }

    def test_request_body_with_inline_assistant(self):
        client = VapiWebClient(web_token="t")

        body = client.build_request_body({"name": "Interviewer"})

        assert body == {"assistant": {"name": "Interviewer"}}

    async def test_start_posts_web_call(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                201,
                json={
                    "id": "call_9",
                    "webCallUrl": "https://room.test/abc",
                    "monitor": {"controlUrl": "https://control.test/call_9"},
                },
            )

        client = make_client(handler)
        data = await client.start("asst_1", {"variableValues": {"username": "Ada"}})

        assert data["id"] == "call_9"
        assert client.call_id == "call_9"
        assert client.web_call_url == "https://room.test/abc"
        assert client.control_url == "https://control.test/call_9"

        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.vapi.test/call/web"
        assert request.headers["Authorization"] == "Bearer pub-token"
        assert json.loads(request.content)["assistantOverrides"]["metadata"] == {"sessionId": "sess_1"}
        await client.aclose()

    async def test_start_raises_on_error_status(self):
        client = make_client(lambda request: httpx.Response(401, json={"message": "Invalid key"}))

        with pytest.raises(httpx.HTTPStatusError):
            await client.start("asst_1")

        assert client.call_id is None
        await client.aclose()

    async def test_stop_posts_end_call(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.path == "/call/web":
                return httpx.Response(201, json={"id": "c", "monitor": {"controlUrl": "https://control.test/c"}})
            return httpx.Response(200, json={})

        client = make_client(handler)
        await client.start("asst_1")
        await client.stop()

        assert str(requests[-1].url) == "https://control.test/c"
        assert json.loads(requests[-1].content) == {"type": "end-call"}
        await client.aclose()

    async def test_stop_without_call_is_noop(self):
        requests = []
        client = make_client(lambda request: requests.append(request) or httpx.Response(200))

        await client.stop()

        assert requests == []
        await client.aclose()


class TestServerMessages:
    """Test translation of webhook messages."""

    @pytest.mark.parametrize(
        "message, expected",
        [
            ({"type": "status-update", "status": "in-progress"}, [(CALL_START, None)]),
            ({"type": "status-update", "status": "ended"}, [(CALL_END, None)]),
            ({"type": "status-update", "status": "ringing"}, []),
            ({"type": "speech-update", "role": "assistant", "status": "started"}, [(SPEECH_START, None)]),
            ({"type": "speech-update", "role": "assistant", "status": "stopped"}, [(SPEECH_END, None)]),
            ({"type": "speech-update", "role": "user", "status": "started"}, []),
            ({"type": "end-of-call-report"}, [(CALL_END, None)]),
            ({"type": "conversation-update"}, []),
        ],
    )
    def test_translation(self, message, expected):
        assert translate_server_message(message) == expected

    def test_transcript_becomes_message(self):
        events = translate_server_message(
            {"type": "transcript", "transcriptType": "final", "role": "user", "transcript": "Hi"}
        )

        assert events == [
            (MESSAGE, {"type": "transcript", "transcriptType": "final", "role": "user", "transcript": "Hi"})
        ]

    def test_error_payload(self):
        events = translate_server_message({"type": "error", "error": {"message": "boom"}})

        assert events == [(ERROR, {"message": "boom"})]

    def test_session_id_from_overrides(self):
        message = {"call": {"id": "c1", "assistantOverrides": {"metadata": {"sessionId": "s1"}}}}

        assert extract_session_id(message) == "s1"
        assert extract_call_id(message) == "c1"

    def test_session_id_missing(self):
        assert extract_session_id({"call": {"id": "c1"}}) is None
        assert extract_call_id({}) is None
