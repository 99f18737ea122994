"""Unit tests for the call endpoints and the voice webhook."""
import pytest

from app.api.auth import SESSION_COOKIE
from app.core.dependencies import get_call_session_manager
from app.main import app
from app.services.call_session import manager as manager_module
from app.services.call_session.config import VoiceConfig
from app.services.call_session.manager import CallSessionManager
from app.services.persistence.interviews import FeedbackPersistenceService


async def create_interview(client, questions=None) -> dict:
    response = await client.post(
        "/api/interviews",
        json={
            "role": "Frontend Developer",
            "level": "Junior",
            "type": "Technical",
            "techstack": ["React", "TypeScript"],
            "questions": questions or ["What is a closure?", "Explain the virtual DOM."],
        },
    )
    assert response.status_code == 200
    return response.json()


FEEDBACK_FIELDS = {
    "total_score": 55,
    "category_scores": [],
    "strengths": [],
    "areas_for_improvement": [],
    "final_assessment": "Earlier attempt.",
}


def server_message(session_id: str, **fields) -> dict:
    message = {
        "call": {"id": "call_test_123", "assistantOverrides": {"metadata": {"sessionId": session_id}}}
    }
    message.update(fields)
    return {"message": message}


async def end_call(client, session_id: str) -> None:
    for status in ("in-progress", "ended"):
        response = await client.post(
            "/webhooks/voice/events",
            json=server_message(session_id, type="status-update", status=status),
        )
        assert response.json() == {"received": True}


class TestStartCall:
    """Test POST /api/calls."""

    async def test_generate_call(self, authenticated_client, voice_clients):
        response = await authenticated_client.post("/api/calls", json={"mode": "generate"})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "connecting"
        assert data["mode"] == "generate"
        assert data["web_call_url"] == "https://rooms.test/call_test_123"
        assistant, options = voice_clients[0].start_calls[0]
        assert assistant == "asst_test_123"
        assert options["variableValues"]["username"] == "Ada Lovelace"

    async def test_interview_call_loads_questions(self, authenticated_client, voice_clients):
        interview = await create_interview(authenticated_client, ["Q1", "Q2"])

        response = await authenticated_client.post(
            "/api/calls", json={"mode": "interview", "interview_id": interview["id"]}
        )

        assert response.status_code == 200
        _, options = voice_clients[0].start_calls[0]
        assert options == {"variableValues": {"questions": "- Q1\n- Q2"}}

    async def test_feedback_id_resolved_for_current_user(self, authenticated_client, fake_feedback, test_db):
        """Test that a regenerated interview reuses the caller's own feedback id."""
        interview = await create_interview(authenticated_client)
        user_id = (await authenticated_client.get("/api/auth/session")).json()["user"]["id"]
        await FeedbackPersistenceService(test_db).save_feedback(
            {**FEEDBACK_FIELDS, "interview_id": interview["id"], "user_id": user_id},
            feedback_id="fb_mine",
        )

        started = await authenticated_client.post(
            "/api/calls", json={"mode": "interview", "interview_id": interview["id"]}
        )
        await end_call(authenticated_client, started.json()["session_id"])

        assert fake_feedback.calls[0].feedback_id == "fb_mine"

    async def test_client_supplied_feedback_id_ignored(self, authenticated_client, fake_feedback, test_db):
        """Test that a caller cannot target another user's feedback record."""
        interview = await create_interview(authenticated_client)
        owner_id = (await authenticated_client.get("/api/auth/session")).json()["user"]["id"]
        await FeedbackPersistenceService(test_db).save_feedback(
            {**FEEDBACK_FIELDS, "interview_id": interview["id"], "user_id": owner_id},
            feedback_id="fb_owner",
        )

        authenticated_client.cookies.delete(SESSION_COOKIE)
        await authenticated_client.post(
            "/api/auth/sign-up",
            json={"name": "Grace Hopper", "email": "grace@example.com", "password": "testpass123"},
        )
        started = await authenticated_client.post(
            "/api/calls",
            json={"mode": "interview", "interview_id": interview["id"], "feedback_id": "fb_owner"},
        )
        await end_call(authenticated_client, started.json()["session_id"])

        assert started.status_code == 200
        assert fake_feedback.calls[0].feedback_id is None
        assert fake_feedback.calls[0].user_id != owner_id

    async def test_interview_call_requires_interview_id(self, authenticated_client):
        response = await authenticated_client.post("/api/calls", json={"mode": "interview"})

        assert response.status_code == 422

    async def test_interview_call_unknown_interview(self, authenticated_client):
        response = await authenticated_client.post(
            "/api/calls", json={"mode": "interview", "interview_id": "missing"}
        )

        assert response.status_code == 404

    async def test_unstartable_calls_not_retained(self, authenticated_client, fake_feedback, fake_voice_class):
        """Test that calls blocked by configuration leave no session behind."""
        placeholder = CallSessionManager(
            VoiceConfig(web_token="test-web-token", assistant_id="YOUR_ASSISTANT_ID"),
            fake_feedback,
            voice_factory=lambda session_id: fake_voice_class(),
        )
        app.dependency_overrides[get_call_session_manager] = lambda: placeholder

        for _ in range(5):
            started = await authenticated_client.post("/api/calls", json={"mode": "generate"})
            data = started.json()
            assert data["status"] == "inactive"
            assert "VAPI_ASSISTANT_ID" in data["notifications"][-1]["message"]
            assert (await authenticated_client.get(f"/api/calls/{data['session_id']}")).status_code == 404

        assert manager_module._sessions == {}

    async def test_requires_authentication(self, test_client):
        response = await test_client.post("/api/calls", json={"mode": "generate"})

        assert response.status_code == 401


class TestCallLifecycle:
    """Test a call driven end to end through the webhook."""

    async def test_interview_call_to_feedback(self, authenticated_client, fake_feedback):
        interview = await create_interview(authenticated_client)
        started = await authenticated_client.post(
            "/api/calls", json={"mode": "interview", "interview_id": interview["id"]}
        )
        session_id = started.json()["session_id"]

        for body in (
            server_message(session_id, type="status-update", status="in-progress"),
            server_message(
                session_id, type="transcript", transcriptType="final", role="assistant",
                transcript="Hello! Tell me about closures.",
            ),
            server_message(
                session_id, type="transcript", transcriptType="final", role="user",
                transcript="A function with its lexical scope.",
            ),
            server_message(session_id, type="status-update", status="ended"),
        ):
            response = await authenticated_client.post("/webhooks/voice/events", json=body)
            assert response.json() == {"received": True}

        assert len(fake_feedback.calls) == 1
        assert fake_feedback.calls[0].interview_id == interview["id"]
        assert len(fake_feedback.calls[0].transcript) == 2

        snapshot = await authenticated_client.get(f"/api/calls/{session_id}")
        data = snapshot.json()
        assert data["status"] == "finished"
        assert data["last_utterance"] == "A function with its lexical scope."
        assert data["redirect_to"] == f"/interview/{interview['id']}/feedback"

        # Released once the exit has been read
        gone = await authenticated_client.get(f"/api/calls/{session_id}")
        assert gone.status_code == 404

    async def test_webhook_routes_by_call_id(self, authenticated_client):
        started = await authenticated_client.post("/api/calls", json={"mode": "generate"})
        session_id = started.json()["session_id"]

        response = await authenticated_client.post(
            "/webhooks/voice/events",
            json={"message": {"type": "status-update", "status": "in-progress", "call": {"id": "call_test_123"}}},
        )

        assert response.json() == {"received": True}
        snapshot = await authenticated_client.get(f"/api/calls/{session_id}")
        assert snapshot.json()["status"] == "active"

    async def test_stop_call(self, authenticated_client, voice_clients):
        started = await authenticated_client.post("/api/calls", json={"mode": "generate"})
        session_id = started.json()["session_id"]

        response = await authenticated_client.post(f"/api/calls/{session_id}/stop")

        assert response.status_code == 200
        assert response.json()["status"] == "finished"
        assert response.json()["redirect_to"] == "/"
        assert voice_clients[0].stop_calls == 1

    async def test_other_user_cannot_see_session(self, authenticated_client):
        started = await authenticated_client.post("/api/calls", json={"mode": "generate"})
        session_id = started.json()["session_id"]

        authenticated_client.cookies.delete(SESSION_COOKIE)
        await authenticated_client.post(
            "/api/auth/sign-up",
            json={"name": "Grace Hopper", "email": "grace@example.com", "password": "testpass123"},
        )

        assert (await authenticated_client.get(f"/api/calls/{session_id}")).status_code == 404
        assert (await authenticated_client.post(f"/api/calls/{session_id}/stop")).status_code == 404


class TestVoiceWebhook:
    """Test webhook acknowledgement for unroutable requests."""

    async def test_unknown_session(self, test_client):
        response = await test_client.post(
            "/webhooks/voice/events",
            json={"message": {"type": "status-update", "status": "ended", "call": {"id": "nope"}}},
        )

        assert response.status_code == 200
        assert response.json() == {"received": False}

    @pytest.mark.parametrize("content", [b"not json", b"[]", b'{"message": "text"}'])
    async def test_malformed_body(self, test_client, content):
        response = await test_client.post(
            "/webhooks/voice/events",
            content=content,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json() == {"received": False}
