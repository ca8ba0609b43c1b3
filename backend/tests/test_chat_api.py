"""End-to-end tests for the chat HTTP surface."""

from unittest.mock import patch

import pytest
from httpx import AsyncClient

from conftest import ANALYSIS_JSON, OTHER_USER_ID, InMemorySessionStore, ScriptedOracle
from therapy_chat.agent.fallbacks import FALLBACK_REPLY, ULTIMATE_FALLBACK_TOPIC


async def _create_session(client: AsyncClient, headers: dict[str, str]) -> str:
    response = await client.post("/chat/sessions", headers=headers)
    assert response.status_code == 201
    return response.json()["sessionId"]


@pytest.mark.asyncio
async def test_create_session(client: AsyncClient, auth) -> None:
    response = await client.post("/chat/sessions", headers=auth())

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Chat session created successfully"
    assert data["sessionId"]


@pytest.mark.asyncio
async def test_requests_without_identity_are_unauthorized(client: AsyncClient) -> None:
    response = await client.post("/chat/sessions")

    assert response.status_code == 401
    assert response.json()["error"] == "unauthenticated"

    response = await client.get("/chat/sessions")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_anxious_about_work_conversation(
    client: AsyncClient, auth, store: InMemorySessionStore, oracle: ScriptedOracle
) -> None:
    session_id = await _create_session(client, auth())
    oracle.script = [ANALYSIS_JSON, "It sounds like work has been weighing on you."]

    response = await client.post(
        f"/chat/sessions/{session_id}/messages",
        json={"message": "I feel anxious about work"},
        headers=auth(),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["response"] == data["message"]
    assert data["response"] == "It sounds like work has been weighing on you."
    assert data["analysis"]["emotionalState"] == "anxious"
    assert data["analysis"]["riskLevel"] == 2
    assert data["metadata"]["progress"] == {"emotionalState": "anxious", "riskLevel": 2}

    history = (
        await client.get(f"/chat/sessions/{session_id}/history", headers=auth())
    ).json()
    assert len(history) == 2
    assert history[0]["role"] == "user"
    assert history[0]["content"] == "I feel anxious about work"
    assert history[1]["role"] == "assistant"
    assert history[1]["metadata"]["analysis"]["emotionalState"]


@pytest.mark.asyncio
async def test_message_with_model_down_returns_fallback(
    client: AsyncClient, auth
) -> None:
    session_id = await _create_session(client, auth())

    response = await client.post(
        f"/chat/sessions/{session_id}/messages",
        json={"message": "hello"},
        headers=auth(),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["response"] == FALLBACK_REPLY
    assert data["analysis"]["emotionalState"] == "seeking_support"
    assert data["analysis"]["recommendedApproach"] == "cognitive_behavioral"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"message": "   "}, {}, {"message": 12}])
async def test_empty_message_is_rejected(
    client: AsyncClient, auth, store: InMemorySessionStore, body
) -> None:
    session_id = await _create_session(client, auth())

    response = await client.post(
        f"/chat/sessions/{session_id}/messages", json=body, headers=auth()
    )

    assert response.status_code == 400
    assert response.json() == {
        "error": "validation_error",
        "message": "Message cannot be empty",
    }
    assert store.sessions[session_id].messages == []


@pytest.mark.asyncio
async def test_message_to_other_users_session_is_forbidden(
    client: AsyncClient, auth, store: InMemorySessionStore
) -> None:
    session_id = await _create_session(client, auth())

    response = await client.post(
        f"/chat/sessions/{session_id}/messages",
        json={"message": "hello"},
        headers=auth(OTHER_USER_ID),
    )

    assert response.status_code == 403
    assert store.sessions[session_id].messages == []


@pytest.mark.asyncio
async def test_message_to_unknown_session_is_not_found(
    client: AsyncClient, auth
) -> None:
    response = await client.post(
        "/chat/sessions/missing/messages", json={"message": "hello"}, headers=auth()
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_and_get_sessions(client: AsyncClient, auth) -> None:
    session_id = await _create_session(client, auth())
    await _create_session(client, auth(OTHER_USER_ID))

    listed = (await client.get("/chat/sessions", headers=auth())).json()
    assert [s["sessionId"] for s in listed] == [session_id]
    assert listed[0]["messageCount"] == 0
    assert listed[0]["status"] == "active"

    session = (await client.get(f"/chat/sessions/{session_id}", headers=auth())).json()
    assert session["sessionId"] == session_id
    assert session["messages"] == []


@pytest.mark.asyncio
async def test_delete_session(client: AsyncClient, auth) -> None:
    session_id = await _create_session(client, auth())

    response = await client.delete(f"/chat/sessions/{session_id}", headers=auth())
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Session deleted successfully",
        "sessionId": session_id,
    }

    response = await client.get(f"/chat/sessions/{session_id}", headers=auth())
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_generate_topic_with_model_down(client: AsyncClient, auth) -> None:
    response = await client.post(
        "/chat/generate-topic",
        json={"messages": [{"role": "user", "content": "I can't sleep at night"}]},
        headers=auth(),
    )

    assert response.status_code == 200
    assert response.json() == {"topic": "😴 Sleep Issues"}


@pytest.mark.asyncio
async def test_generate_topic_reports_failed_fallback(client: AsyncClient, auth) -> None:
    with patch(
        "therapy_chat.pipeline.topics.fallback_topic",
        side_effect=RuntimeError("broken"),
    ):
        response = await client.post(
            "/chat/generate-topic",
            json={"messages": [{"role": "user", "content": "hello"}]},
            headers=auth(),
        )

    assert response.status_code == 500
    assert response.json() == {
        "error": "topic_generation_failed",
        "message": "Failed to generate topic",
        "topic": ULTIMATE_FALLBACK_TOPIC,
    }


@pytest.mark.asyncio
async def test_generate_topic_requires_messages(client: AsyncClient, auth) -> None:
    response = await client.post(
        "/chat/generate-topic", json={"messages": []}, headers=auth()
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_topic(
    client: AsyncClient, auth, store: InMemorySessionStore
) -> None:
    session_id = await _create_session(client, auth())

    response = await client.patch(
        f"/chat/sessions/{session_id}/topic",
        json={"topic": "💼 Work Stress"},
        headers=auth(),
    )

    assert response.status_code == 200
    assert response.json()["topic"] == "💼 Work Stress"
    assert store.sessions[session_id].topic == "💼 Work Stress"

    listed = (await client.get("/chat/sessions", headers=auth())).json()
    assert listed[0]["topic"] == "💼 Work Stress"


@pytest.mark.asyncio
async def test_update_status(client: AsyncClient, auth) -> None:
    session_id = await _create_session(client, auth())

    response = await client.patch(
        f"/chat/sessions/{session_id}/status",
        json={"status": "paused"},
        headers=auth(),
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "status": "paused"}

    response = await client.patch(
        f"/chat/sessions/{session_id}/status",
        json={"status": "archived"},
        headers=auth(),
    )
    assert response.status_code == 400
