"""Tests for the nutrition sync endpoint."""

from dataclasses import dataclass, field
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from nutrition_sync.api.app import create_app
from nutrition_sync.services.server import (
    InMemorySnapshotRepository,
    SnapshotServerService,
)
from tests.conftest import FakeClock

ALICE = {"Authorization": "Bearer alice-token"}
BOB = {"Authorization": "Bearer bob-token"}


@dataclass
class FakeContainer:
    """Just enough of the container for the endpoint."""

    settings: object
    server_service: SnapshotServerService
    closed: list[bool] = field(default_factory=list)

    async def close_resources(self) -> None:
        self.closed.append(True)


@pytest.fixture
def server_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemorySnapshotRepository:
    return InMemorySnapshotRepository()


@pytest.fixture
def api_container(settings, repository, server_clock) -> FakeContainer:
    return FakeContainer(
        settings=settings,
        server_service=SnapshotServerService(repository, clock=server_clock),
    )


@pytest.fixture
def client(api_container) -> TestClient:
    return TestClient(create_app(api_container))


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "Basic alice-token"}],
)
def test_requests_without_session_are_rejected(client, headers) -> None:
    get_response = client.get("/nutrition", headers=headers)
    post_response = client.post("/nutrition", headers=headers, json={})

    assert get_response.status_code == 401
    assert get_response.json()["detail"] == "No valid session found"
    assert post_response.status_code == 401


def test_first_fetch_creates_default_snapshot(client, repository) -> None:
    response = client.get("/nutrition", headers=ALICE)

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["hasUpdates"] is True
    assert body["lastSync"] == "2024-01-10T08:00:00.000Z"
    assert body["data"]["goals"]["calories"] == 2000
    assert body["data"]["goals"].get("lastModified") is None
    assert body["data"]["dailyLogs"] == {}
    assert "alice" in repository.snapshots


def test_has_updates_follows_last_sync(client, server_clock) -> None:
    client.get("/nutrition", headers=ALICE)
    server_clock.advance(60)
    saved = client.post(
        "/nutrition",
        headers=ALICE,
        json={"dailyLogs": {}, "updatedAt": "2024-01-10T08:00:59.000Z"},
    ).json()

    unchanged = client.get(
        "/nutrition", headers=ALICE, params={"lastSync": saved["lastSync"]}
    ).json()
    stale = client.get(
        "/nutrition",
        headers=ALICE,
        params={"lastSync": "2024-01-10T08:00:30.000Z"},
    ).json()

    assert saved == {
        "success": True,
        "message": "Data saved successfully",
        "lastSync": "2024-01-10T08:01:00.000Z",
    }
    assert unchanged["hasUpdates"] is False
    assert "data" not in unchanged
    assert stale["hasUpdates"] is True


def test_save_overwrites_snapshot(client, repository, server_clock) -> None:
    payload = {
        "goals": {"calories": 1800, "lastModified": "2024-01-10T07:00:00.000Z"},
        "foodTemplates": [{"id": "t1", "name": "Oats"}],
        "dailyLogs": {"2024-01-10": {"waterIntake": 500}},
        "weightHistory": [{"date": "2024-01-10", "weight": 80}],
        "currentDate": "2024-01-10",
        "updatedAt": "2024-01-10T08:00:00.000Z",
    }

    client.post("/nutrition", headers=ALICE, json=payload)
    server_clock.advance(5)
    body = client.get("/nutrition", headers=ALICE).json()

    stored = repository.snapshots["alice"]
    assert "updatedAt" not in stored.data
    assert stored.data["currentDate"] == "2024-01-10"
    assert stored.updated_at == server_clock() - timedelta(seconds=5)
    assert body["data"]["goals"]["calories"] == 1800
    assert body["data"]["foodTemplates"][0]["name"] == "Oats"
    assert body["data"]["updatedAt"] == "2024-01-10T08:00:00.000Z"


def test_snapshots_are_isolated_per_owner(client) -> None:
    client.post(
        "/nutrition",
        headers=ALICE,
        json={"dailyLogs": {"2024-01-10": {"waterIntake": 500}}},
    )

    bob = client.get("/nutrition", headers=BOB).json()

    assert bob["data"]["dailyLogs"] == {}


def test_lifespan_closes_resources(api_container) -> None:
    with TestClient(create_app(api_container)) as client:
        client.get("/health")

    assert api_container.closed == [True]
