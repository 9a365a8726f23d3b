"""Tests for catalog lookups."""

import asyncio

import pytest

from nutrition_sync.services.cache import InMemoryCache
from nutrition_sync.services.catalog import CatalogService
from tests.conftest import START, CountingFdcClient, FakeClock


def _service(client: CountingFdcClient, clock: FakeClock) -> CatalogService:
    return CatalogService(
        fdc_client=client,
        cache=InMemoryCache(clock=clock),
        clock=clock,
        retry_delay_seconds=0,
    )


def test_search_results_are_cached(clock) -> None:
    client = CountingFdcClient()
    service = _service(client, clock)

    first = asyncio.run(service.search("Oats"))
    second = asyncio.run(service.search("oats"))

    assert client.search_calls == 1
    assert first == second
    assert first[0].fdc_id == 2001
    assert first[0].brand_owner == "Oat Mill Co"


def test_search_cache_expires(clock) -> None:
    client = CountingFdcClient()
    service = _service(client, clock)

    asyncio.run(service.search("oats"))
    clock.advance(3601)
    asyncio.run(service.search("oats"))

    assert client.search_calls == 2


def test_get_food_scales_to_serving(clock) -> None:
    service = _service(CountingFdcClient(), clock)

    details = asyncio.run(service.get_food(2001))

    assert details.serving_size == 30
    assert details.serving_size_unit == "g"
    assert details.macros.calories == pytest.approx(114)
    assert details.macros.protein == pytest.approx(3.9)
    assert details.macros.fat == pytest.approx(1.95)
    assert details.macros.carbs == pytest.approx(20.4)


def test_template_from_catalog_keeps_provenance(clock) -> None:
    service = _service(CountingFdcClient(), clock)

    template = asyncio.run(
        service.template_from_catalog(2001, category="grain", template_id="tpl-oats")
    )

    assert template.id == "tpl-oats"
    assert template.name == "Rolled oats"
    assert template.serving_size == "30 g"
    assert template.usda_id == 2001
    assert template.brand_name == "Oat Mill Co"
    assert template.data_type == "Branded"
    assert template.ingredients == "WHOLE GRAIN OATS"
    assert template.created_at == START
    assert template.kind == "template"


def test_catalog_template_can_be_logged(clock, store) -> None:
    service = _service(CountingFdcClient(), clock)
    template = asyncio.run(service.template_from_catalog(2001))

    store.add_food_template(template)
    entry = store.log_food(template, quantity=2)

    assert entry.food_item.usda_id == 2001
    assert store.get_daily_log(store.current_date).total_calories == pytest.approx(228)


def test_get_food_retries_once(clock) -> None:
    client = CountingFdcClient(failures_left=1)
    service = _service(client, clock)

    details = asyncio.run(service.get_food(2001))

    assert client.food_calls == 2
    assert details.summary.description == "Rolled oats"


def test_get_food_raises_after_retries(clock) -> None:
    client = CountingFdcClient(failures_left=5)
    service = _service(client, clock)

    with pytest.raises(RuntimeError, match="catalog unavailable"):
        asyncio.run(service.get_food(2001))

    assert client.food_calls == 2
