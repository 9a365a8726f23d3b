"""Food catalog lookups backed by USDA FoodData Central."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from nutrition_sync.adapters.fdc_client import FdcClient
from nutrition_sync.clock import Clock, utc_now
from nutrition_sync.domain.foods import FoodCategory, FoodTemplate
from nutrition_sync.domain.nutrition import FoodDetails, FoodSummary, MacroTotals
from nutrition_sync.services.cache import Cache

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_NUTRIENT_IDS = {
    "calories": 1008,
    "protein": 1003,
    "fat": 1004,
    "carbs": 1005,
}
_MASS_UNITS = {"g", "gram", "grams", "grm", "ml", "mlt"}

_logger = logging.getLogger(__name__)


@dataclass
class CatalogService:
    """Searches the food catalog and turns catalog foods into templates."""

    fdc_client: FdcClient
    cache: Cache
    clock: Clock = utc_now
    search_ttl_seconds: int = 3600
    food_ttl_seconds: int = 86400
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def search(self, query: str, limit: int = 10) -> list[FoodSummary]:
        """Search catalog foods with caching."""
        cache_key = f"fdc:search:{query.lower()}:{limit}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        payload = await self._call_with_retry(
            lambda: self.fdc_client.search_foods(query, page_size=limit),
            action="search",
        )
        foods = [_summary(food) for food in payload.get("foods", [])]
        self.cache.set(cache_key, foods, ttl_seconds=self.search_ttl_seconds)
        _logger.debug("Catalog search: query=%s results=%s", query, len(foods))
        return foods

    async def get_food(self, fdc_id: int) -> FoodDetails:
        """Return per-serving catalog details for a food."""
        cache_key = f"fdc:food:{fdc_id}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, FoodDetails):
            return cached

        payload = await self._call_with_retry(
            lambda: self.fdc_client.get_food(fdc_id),
            action=f"get_food:{fdc_id}",
        )
        per_100 = _extract_macros(payload.get("foodNutrients", []))
        serving_size = payload.get("servingSize")
        unit = payload.get("servingSizeUnit")
        factor = 1.0
        if isinstance(serving_size, int | float) and serving_size > 0:
            if str(unit or "g").lower() in _MASS_UNITS:
                factor = float(serving_size) / 100.0
            else:
                serving_size, unit = None, None
        else:
            serving_size, unit = None, None
        details = FoodDetails(
            summary=_summary(payload),
            macros=MacroTotals(
                calories=per_100.calories * factor,
                protein=per_100.protein * factor,
                carbs=per_100.carbs * factor,
                fat=per_100.fat * factor,
            ),
            serving_size=float(serving_size) if serving_size is not None else None,
            serving_size_unit=str(unit) if unit is not None else None,
            ingredients=payload.get("ingredients"),
        )
        self.cache.set(cache_key, details, ttl_seconds=self.food_ttl_seconds)
        return details

    async def template_from_catalog(
        self,
        fdc_id: int,
        *,
        category: FoodCategory = "other",
        template_id: str | None = None,
    ) -> FoodTemplate:
        """Build a food template carrying catalog provenance."""
        details = await self.get_food(fdc_id)
        if details.serving_size is not None:
            serving = f"{details.serving_size:g} {details.serving_size_unit or 'g'}"
        else:
            serving = "100 g"
        now: datetime = self.clock()
        return FoodTemplate(
            id=template_id or str(uuid4()),
            name=details.summary.description,
            calories=details.macros.calories,
            protein=details.macros.protein,
            fat=details.macros.fat,
            carbs=details.macros.carbs,
            serving_size=serving,
            category=category,
            favorite=False,
            created_at=now,
            usda_id=details.summary.fdc_id,
            brand_name=details.summary.brand_name or details.summary.brand_owner,
            ingredients=details.ingredients,
            data_type=details.summary.data_type,
            last_modified=now,
        )

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]", *, action: str
    ) -> dict[str, object]:
        """Call an async function with a short retry."""
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                attempt += 1
                _logger.warning(
                    "Catalog %s failed (attempt %s/%s, status=%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    _status_code_from_exception(exc),
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds)


def _summary(food: dict[str, object]) -> FoodSummary:
    return FoodSummary(
        fdc_id=int(food["fdcId"]),
        description=str(food.get("description", "")),
        brand_owner=food.get("brandOwner"),
        brand_name=food.get("brandName"),
        data_type=food.get("dataType"),
    )


def _status_code_from_exception(exc: Exception) -> str:
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"


def _extract_macros(food_nutrients: list[dict[str, object]]) -> MacroTotals:
    """Extract per-100 g calories, protein, fat and carbs from FDC nutrients."""
    values = dict.fromkeys(_NUTRIENT_IDS, 0.0)
    ids = {nutrient_id: name for name, nutrient_id in _NUTRIENT_IDS.items()}
    for nutrient in food_nutrients:
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        amount = nutrient.get("amount", nutrient.get("value"))
        name = ids.get(nutrient_id)
        if name is not None and amount is not None:
            values[name] = float(amount)
    return MacroTotals(
        calories=values["calories"],
        protein=values["protein"],
        carbs=values["carbs"],
        fat=values["fat"],
    )
