"""Two devices syncing through the real endpoint."""

import asyncio
from dataclasses import dataclass

import httpx
from fastapi import FastAPI

from nutrition_sync.adapters.remote_client import HttpxRemoteNutritionClient
from nutrition_sync.api.app import create_app
from nutrition_sync.domain.logs import WeightEntry
from nutrition_sync.services.server import (
    InMemorySnapshotRepository,
    SnapshotServerService,
)
from tests.conftest import make_device, make_meal

DAY = "2024-01-10"


@dataclass
class ServerContainer:
    settings: object
    server_service: SnapshotServerService

    async def close_resources(self) -> None:
        return None


def _client(app: FastAPI, token: str) -> HttpxRemoteNutritionClient:
    return HttpxRemoteNutritionClient(
        base_url="http://testserver",
        token=token,
        http_client=httpx.AsyncClient(transport=httpx.ASGITransport(app=app)),
    )


def test_two_devices_converge(settings, clock) -> None:
    app = create_app(
        ServerContainer(
            settings=settings,
            server_service=SnapshotServerService(
                InMemorySnapshotRepository(), clock=clock
            ),
        )
    )
    phone = make_device(clock, _client(app, "alice-token"))
    laptop = make_device(clock, _client(app, "alice-token"))

    async def scenario() -> None:
        phone.store.add_meal(make_meal("A", calories=300))
        phone.store.update_goals(calories=1800)
        clock.advance(1)
        assert (await phone.sync_service.sync()).status == "pushed"

        clock.advance(10)
        assert (await laptop.sync_service.sync()).status == "pulled"
        laptop.store.add_meal(make_meal("B", calories=200))
        laptop.store.add_weight_entry(WeightEntry(date=DAY, weight=80))
        clock.advance(6)
        assert (await laptop.sync_service.sync()).status == "pushed"

        clock.advance(10)
        assert (await phone.sync_service.sync()).status == "pulled"
        clock.advance(10)
        assert (await phone.sync_service.sync()).status == "up_to_date"
        await phone.sync_service.client.close()
        await laptop.sync_service.client.close()

    asyncio.run(scenario())

    for device in (phone, laptop):
        log = device.store.get_daily_log(DAY)
        assert sorted(meal.id for meal in log.meals) == ["A", "B"]
        assert log.total_calories == 500
        assert device.store.snapshot().goals.calories == 1800
        assert device.store.get_weight_entry(DAY).weight == 80
    assert phone.store.snapshot().daily_logs == laptop.store.snapshot().daily_logs


def test_unknown_token_surfaces_auth_required(settings, clock) -> None:
    app = create_app(
        ServerContainer(
            settings=settings,
            server_service=SnapshotServerService(InMemorySnapshotRepository()),
        )
    )
    device = make_device(clock, _client(app, "stolen-token"))

    result = asyncio.run(device.sync_service.sync(user_requested=True))

    assert result.status == "auth_failed"
    assert device.notifier.outcomes() == [("auth", "required")]
