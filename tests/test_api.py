"""HTTP tests for the chat and session endpoints.

The app is built with ``create_app()``; repositories and the pipeline
are replaced through ``app.dependency_overrides`` with in-memory fakes,
and exception handlers are registered directly because ``TestClient``
is used without running the lifespan.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from playbook.api.deps import API_KEY_HEADER, USER_HEADER
from playbook.api.exceptions import register_exception_handlers
from playbook.app import create_app
from playbook.configs.config import get_chat_config, get_llm_config
from playbook.configs.system import ChatConfig, LLMConfig, PromptConfig
from playbook.core.chat.deps import get_agent_pipeline
from playbook.core.chat.models import ROLE_USER, ChatTurn
from playbook.core.chat.pipeline import AgentPipeline
from playbook.core.chat.tools import ToolRegistry
from playbook.core.context.deps import build_context_builder
from playbook.infra.db import get_message_store, get_session_registry

HEADERS = {USER_HEADER: "user_1", API_KEY_HEADER: "sk-user"}


@pytest.fixture
def model(scripted_model_cls):
    return scripted_model_cls()


@pytest.fixture
def client(store, registry, content_source, model):
    app = create_app()
    register_exception_handlers(app)
    prompts = PromptConfig()
    chat_config = ChatConfig(completion_timeout=timedelta(seconds=5))
    keys_seen: list[str] = []

    def model_factory(api_key):
        keys_seen.append(api_key)
        return model

    def pipeline() -> AgentPipeline:
        return AgentPipeline.for_completion(
            store=store,
            registry=registry,
            context_builder=build_context_builder(prompts, content_source),
            model_factory=model_factory,
            tools=ToolRegistry(content_source),
            chat_config=chat_config,
            prompts=prompts,
        )

    app.dependency_overrides[get_agent_pipeline] = pipeline
    app.dependency_overrides[get_message_store] = lambda: store
    app.dependency_overrides[get_session_registry] = lambda: registry
    app.dependency_overrides[get_chat_config] = lambda: chat_config
    app.dependency_overrides[get_llm_config] = lambda: LLMConfig(api_key=None)
    test_client = TestClient(app)
    test_client.keys_seen = keys_seen
    return test_client


# ---------------------------------------------------------------------------
# POST /chat
# ---------------------------------------------------------------------------


class TestChatEndpoint:
    def test_chat_turn(self, client, model, make_reply):
        model.replies.append(make_reply("Add a review stage.", response_id="r1"))

        response = client.post(
            "/api/v1/ai-assistant/chat",
            json={"message": "Improve it", "mode": "workflow", "workflow_id": "wf_1"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == {
            "role": "assistant",
            "content": "Add a review stage.",
            "tool_invocations": [],
        }
        assert body["session_id"].startswith("chat_")
        assert body["token_usage"] == {"input": 10, "output": 5, "total": 15}
        assert body["auto_reset_triggered"] is False
        assert client.keys_seen == ["sk-user"]

    def test_missing_message(self, client):
        response = client.post(
            "/api/v1/ai-assistant/chat",
            json={"mode": "workflow"},
            headers=HEADERS,
        )
        assert response.status_code == 400
        assert response.json() == {
            "detail": "Message is required",
            "code": "VALIDATION_ERROR",
        }

    def test_missing_api_key(self, client):
        response = client.post(
            "/api/v1/ai-assistant/chat",
            json={"message": "hi", "mode": "workflow"},
            headers={USER_HEADER: "user_1"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "API key is required"

    def test_missing_user_header(self, client):
        response = client.post(
            "/api/v1/ai-assistant/chat", json={"message": "hi", "mode": "workflow"}
        )
        assert response.status_code == 401

    def test_unknown_chat_id(self, client):
        response = client.post(
            "/api/v1/ai-assistant/chat",
            json={"message": "hi", "mode": "workflow", "chat_id": "chat_nope"},
            headers=HEADERS,
        )
        assert response.status_code == 404
        assert response.json()["code"] == "SESSION_NOT_FOUND"

    def test_upstream_timeout(self, client, model):
        model.delay = 1.0
        response = client.post(
            "/api/v1/ai-assistant/chat",
            json={"message": "hi", "mode": "workflow", "timeout_seconds": 0.01},
            headers=HEADERS,
        )
        assert response.status_code == 504
        assert response.json()["code"] == "UPSTREAM_TIMEOUT"

    def test_invalid_timeout_rejected(self, client):
        response = client.post(
            "/api/v1/ai-assistant/chat",
            json={"message": "hi", "mode": "workflow", "timeout_seconds": 0},
            headers=HEADERS,
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class TestSessionEndpoints:
    def test_create_and_list(self, client):
        first = client.post(
            "/api/v1/ai-assistant/sessions",
            json={"mode": "workflow", "workflow_id": "wf_1"},
            headers=HEADERS,
        )
        second = client.post(
            "/api/v1/ai-assistant/sessions",
            json={"mode": "workflow", "workflow_id": "wf_1"},
            headers=HEADERS,
        )
        assert first.status_code == second.status_code == 201

        active = client.get("/api/v1/ai-assistant/sessions", headers=HEADERS).json()
        assert [s["id"] for s in active["sessions"]] == [second.json()["id"]]

        everything = client.get(
            "/api/v1/ai-assistant/sessions",
            params={"include_archived": True},
            headers=HEADERS,
        ).json()
        by_id = {s["id"]: s for s in everything["sessions"]}
        assert by_id[first.json()["id"]]["successor_id"] == second.json()["id"]

    def test_create_rejects_unknown_mode(self, client):
        response = client.post(
            "/api/v1/ai-assistant/sessions", json={"mode": "chat"}, headers=HEADERS
        )
        assert response.status_code == 422

    def test_session_detail(self, client, chat_db, store):
        session = chat_db.add_session("user_1", "workflow")
        store.db.turns[session.id].append(ChatTurn.from_text(ROLE_USER, "hello"))

        response = client.get(
            f"/api/v1/ai-assistant/sessions/{session.id}", headers=HEADERS
        )

        assert response.status_code == 200
        body = response.json()
        assert body["session"]["id"] == session.id
        assert body["messages"][0]["content"] == "hello"
        assert body["messages"][0]["parts"] == [{"kind": "text", "text": "hello"}]

    def test_other_users_session_hidden(self, client, chat_db):
        session = chat_db.add_session("someone_else", "workflow")
        response = client.get(
            f"/api/v1/ai-assistant/sessions/{session.id}", headers=HEADERS
        )
        assert response.status_code == 404

    def test_delete(self, client, chat_db):
        session = chat_db.add_session("user_1", "workflow")
        url = f"/api/v1/ai-assistant/sessions/{session.id}"

        assert client.delete(url, headers=HEADERS).status_code == 204
        assert session.id not in chat_db.sessions
        assert client.delete(url, headers=HEADERS).status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
