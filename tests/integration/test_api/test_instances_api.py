"""API tests for definitions and instances."""

import jwt
import pytest
from fastapi.testclient import TestClient

from advanced_workflow.api.deps import get_definition_service, get_instance_service
from advanced_workflow.main import app

SIGNING_KEY = "integration-test-signing-key-0123456789"


def _headers(user_id: str, **claims) -> dict:
    token = jwt.encode({"sub": user_id, **claims}, SIGNING_KEY, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


ALICE = _headers("alice", email="alice@example.com", name="Alice")
MALLORY = _headers("mallory")

DOCUMENT = {
    "title": "Page review",
    "initial_action_id": "draft",
    "actions": [
        {"action_id": "draft", "title": "Draft", "transitions": [{"title": "Submit", "next_action_id": "decide"}]},
        {
            "action_id": "decide",
            "title": "Decide",
            "transitions": [
                {"transition_id": "publish", "title": "Publish", "next_action_id": "published"},
                {"transition_id": "reject", "title": "Send back", "next_action_id": "draft"},
            ],
        },
        {"action_id": "published", "title": "Published"},
    ],
    "users": ["alice"],
}


@pytest.fixture
def client(instance_service, definition_service):
    app.dependency_overrides[get_instance_service] = lambda: instance_service
    app.dependency_overrides[get_definition_service] = lambda: definition_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def definition_id(client) -> str:
    response = client.post("/api/v1/definitions", json=DOCUMENT, headers=ALICE)
    assert response.status_code == 201
    return response.json()["definition_id"]


def _start(client, definition_id) -> dict:
    response = client.post("/api/v1/instances", json={"definition_id": definition_id}, headers=ALICE)
    assert response.status_code == 201
    return response.json()["instance"]


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["storage"]["database"] == "memory"


def test_requires_authorization(client) -> None:
    response = client.get("/api/v1/instances")

    assert response.status_code == 401


def test_correlation_id_is_echoed(client, definition_id) -> None:
    response = client.get(
        f"/api/v1/definitions/{definition_id}",
        headers={**ALICE, "X-Correlation-Id": "COR-from-client"},
    )

    assert response.headers["X-Correlation-Id"] == "COR-from-client"
    assert [a["action_id"] for a in response.json()["actions"]] == ["draft", "decide", "published"]


def test_create_invalid_definition(client) -> None:
    document = {**DOCUMENT, "initial_action_id": "nowhere"}

    response = client.post("/api/v1/definitions", json=document, headers=ALICE)

    assert response.status_code == 400
    assert response.json()["detail"]["error"]["code"] == "WORKFLOW_VALIDATION_ERROR"


def test_validate_document(client) -> None:
    response = client.post("/api/v1/definitions/validate", json=DOCUMENT, headers=ALICE)

    assert response.status_code == 200
    assert response.json()["is_valid"] is True


def test_review_flow(client, definition_id) -> None:
    instance = _start(client, definition_id)
    instance_id = instance["instance_id"]
    assert instance["status"] == "PAUSED"
    assert instance["title"] == f"Instance #{instance_id} of Page review"

    choices = client.get(f"/api/v1/instances/{instance_id}/transitions", headers=ALICE).json()["items"]
    assert [c["transition_id"] for c in choices] == ["publish", "reject"]

    response = client.post(
        f"/api/v1/instances/{instance_id}/transitions",
        json={"transition_id": "publish", "comment": "Approved for launch"},
        headers=ALICE,
    )
    assert response.status_code == 200
    assert response.json()["instance"]["status"] == "COMPLETE"
    assert response.json()["instance"]["current_action_id"] is None

    summary = client.get(f"/api/v1/instances/{instance_id}/actions", headers=ALICE).json()["items"]
    assert [s["title"] for s in summary] == ["Draft", "Decide", "Published"]
    assert summary[1]["comment"] == "Approved for launch"

    audit = client.get(f"/api/v1/instances/{instance_id}/audit", headers=ALICE).json()["items"]
    assert audit[0]["event_type"] == "INSTANCE_COMPLETED"


def test_execute_complete_instance_conflicts(client, definition_id) -> None:
    instance_id = _start(client, definition_id)["instance_id"]
    client.post(
        f"/api/v1/instances/{instance_id}/transitions",
        json={"transition_id": "publish"},
        headers=ALICE,
    )

    response = client.post(f"/api/v1/instances/{instance_id}/execute", headers=ALICE)

    assert response.status_code == 409
    assert response.json()["detail"]["error"]["code"] == "INSTANCE_NOT_ACTIVE"


def test_reject_loops_back_to_draft(client, definition_id) -> None:
    instance_id = _start(client, definition_id)["instance_id"]

    response = client.post(
        f"/api/v1/instances/{instance_id}/transitions",
        json={"transition_id": "reject"},
        headers=ALICE,
    )

    # draft auto-advances straight back into the decision
    assert response.json()["instance"]["status"] == "PAUSED"
    summary = client.get(f"/api/v1/instances/{instance_id}/actions", headers=ALICE).json()["items"]
    assert [s["title"] for s in summary] == ["Draft", "Decide", "Draft", "Decide"]


def test_capabilities_and_cancel(client, definition_id) -> None:
    instance_id = _start(client, definition_id)["instance_id"]

    capabilities = client.get(f"/api/v1/instances/{instance_id}/capabilities", headers=ALICE).json()
    assert capabilities == {"can_edit": "DENY", "can_view": "UNDECIDED", "can_publish": "UNDECIDED"}

    response = client.post(f"/api/v1/instances/{instance_id}/cancel", json={"reason": "Duplicate"}, headers=ALICE)
    assert response.json()["instance"]["status"] == "CANCELLED"


def test_outsider_is_forbidden(client, definition_id) -> None:
    instance_id = _start(client, definition_id)["instance_id"]

    response = client.get(f"/api/v1/instances/{instance_id}", headers=MALLORY)

    assert response.status_code == 403
    assert response.json()["detail"]["error"]["code"] == "PERMISSION_DENIED"
    assert client.get("/api/v1/instances", headers=MALLORY).json()["items"] == []


def test_unknown_instance(client) -> None:
    response = client.get("/api/v1/instances/WFI-missing", headers=ALICE)

    assert response.status_code == 404
