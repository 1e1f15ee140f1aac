# tests/test_epic_docs.py

from __future__ import annotations

from types import SimpleNamespace

import httpx
import openai
import pytest

from taskflow.epic import documentation_service as docs_module
from taskflow.epic.documentation_service import (
    DocumentationInvalidResponseError,
    DocumentationService,
    DocumentationServiceError,
    DocumentationTimeoutError,
)
from taskflow.epic.epic_router import get_documentation_service


PAYLOAD = {
    "epic": {"id": 1, "title": "Checkout revamp", "description": "New checkout", "status": "in_progress"},
    "tasks": [
        {"id": 2, "title": "Cart page", "status": "completed", "priority": "high",
         "subtasks": [{"title": "Layout", "completed": True}]},
        {"id": 3, "title": "Payment form", "status": "todo", "priority": "medium", "subtasks": []},
    ],
}


class FakeOpenAI:
    """Stands in for openai.OpenAI; `behaviour` is a response object or an exception."""

    behaviour = None
    calls = []

    def __init__(self, api_key=None, timeout=None):
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        FakeOpenAI.calls.append(kwargs)
        if isinstance(FakeOpenAI.behaviour, Exception):
            raise FakeOpenAI.behaviour
        return FakeOpenAI.behaviour


def _reply(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture()
def openai_docs(monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(docs_module, "OpenAI", FakeOpenAI)
    FakeOpenAI.calls = []
    return DocumentationService(timeout=5)


# ---------------- service ----------------

def test_placeholder_document(monkeypatch) -> None:
    monkeypatch.delenv("AI_PROVIDER", raising=False)
    text = DocumentationService().generate(PAYLOAD)

    assert text.startswith("# Checkout revamp")
    assert "- Tasks: 2 (1 completed)" in text
    assert "- [x] Cart page (completed, high priority)" in text
    assert "  - [x] Layout" in text
    assert "## Open items\n- Payment form" in text


def test_placeholder_requires_epic_title(monkeypatch) -> None:
    monkeypatch.delenv("AI_PROVIDER", raising=False)
    with pytest.raises(DocumentationInvalidResponseError):
        DocumentationService().generate({"epic": {"id": 1}, "tasks": []})


def test_openai_provider_returns_content(openai_docs) -> None:
    FakeOpenAI.behaviour = _reply("  # Generated docs  ")

    assert openai_docs.generate(PAYLOAD) == "# Generated docs"

    [call] = FakeOpenAI.calls
    user_message = call["messages"][1]["content"]
    assert "Epic: Checkout revamp" in user_message
    assert "- done: Layout" in user_message


def test_openai_empty_reply_is_invalid(openai_docs) -> None:
    FakeOpenAI.behaviour = _reply("")
    with pytest.raises(DocumentationInvalidResponseError):
        openai_docs.generate(PAYLOAD)


def test_openai_timeout(openai_docs) -> None:
    FakeOpenAI.behaviour = openai.APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1"))
    with pytest.raises(DocumentationTimeoutError):
        openai_docs.generate(PAYLOAD)


def test_openai_other_failure(openai_docs) -> None:
    FakeOpenAI.behaviour = openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1"))
    with pytest.raises(DocumentationServiceError):
        openai_docs.generate(PAYLOAD)


# ---------------- routes ----------------

def _setup_epic(client):
    admin = client.post(
        "/api/users/", json={"username": "alex", "password": "pw", "display_name": "Alex", "role": "admin"}
    ).json()
    ws = client.post("/api/workspaces/", json={"name": "W"}).json()
    epic = client.post("/api/tasks/", json={"title": "Epic", "workspace_id": ws["id"], "task_type": "epic"}).json()
    done = client.post(
        "/api/tasks/", json={"title": "Done part", "workspace_id": ws["id"], "epic_id": epic["id"], "status": "completed"}
    ).json()
    client.post("/api/subtasks", json={"task_id": done["id"], "title": "step", "completed": True})
    plain = client.post("/api/tasks/", json={"title": "Not an epic", "workspace_id": ws["id"]}).json()
    return admin, epic, done, plain


def test_epic_tasks_route(client) -> None:
    _, epic, done, plain = _setup_epic(client)

    r = client.get(f"/api/epics/{epic['id']}/tasks")
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == [done["id"]]

    assert client.get(f"/api/epics/{plain['id']}/tasks").status_code == 404
    assert client.get("/api/epics/9999/tasks").status_code == 404


def test_generate_documentation_stores_and_notifies(client, monkeypatch) -> None:
    monkeypatch.delenv("AI_PROVIDER", raising=False)
    admin, epic, done, _ = _setup_epic(client)

    r = client.post(f"/api/epics/{epic['id']}/generate-documentation")
    assert r.status_code == 200
    body = r.json()
    assert body["epic_id"] == epic["id"]
    assert body["task_count"] == 1
    assert "- [x] Done part" in body["documentation"]
    assert "  - [x] step" in body["documentation"]

    stored = client.get(f"/api/tasks/{epic['id']}").json()
    assert stored["documentation"] == body["documentation"]

    latest = client.get(f"/api/notifications/?user_id={admin['id']}").json()[0]
    assert latest["type"] == "epic_documentation"
    assert latest["task_id"] == epic["id"]


@pytest.mark.parametrize(
    "error, status",
    [
        (DocumentationTimeoutError("slow"), 504),
        (DocumentationInvalidResponseError("empty"), 502),
        (DocumentationServiceError("down"), 502),
    ],
)
def test_generate_documentation_errors(client, error, status) -> None:
    from taskflow.main import app

    class Failing:
        def generate(self, payload):
            raise error

    _, epic, _, _ = _setup_epic(client)
    app.dependency_overrides[get_documentation_service] = lambda: Failing()

    r = client.post(f"/api/epics/{epic['id']}/generate-documentation")

    assert r.status_code == status
    assert client.get(f"/api/tasks/{epic['id']}").json()["documentation"] is None
