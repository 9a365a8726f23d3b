"""Domain models for food templates and recorded food items."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

FoodCategory = Literal[
    "protein", "vegetable", "fruit", "grain", "dairy", "snack", "beverage", "other"
]


@dataclass(frozen=True)
class FoodTemplate:
    """Reusable food definition owned by the template collection."""

    id: str
    name: str
    calories: float
    protein: float
    fat: float
    carbs: float
    serving_size: str
    category: FoodCategory
    favorite: bool
    created_at: datetime
    usda_id: int | None = None
    brand_name: str | None = None
    ingredients: str | None = None
    data_type: str | None = None
    meal_category: str | None = None
    last_modified: datetime | None = None
    kind: Literal["template"] = field(default="template", init=False)


@dataclass(frozen=True)
class RecordedItem:
    """Nutrition snapshot embedded in a single meal entry."""

    id: str
    name: str
    calories: float
    protein: float
    fat: float
    carbs: float
    serving_size: str
    category: FoodCategory
    recorded_at: datetime
    template_id: str | None = None
    usda_id: int | None = None
    brand_name: str | None = None
    ingredients: str | None = None
    kind: Literal["recorded"] = field(default="recorded", init=False)


FoodItem = FoodTemplate | RecordedItem


def recorded_from_template(
    template: FoodTemplate,
    *,
    item_id: str,
    recorded_at: datetime,
    overrides: dict[str, object] | None = None,
) -> RecordedItem:
    """Copy a template's nutrition values into a new recorded item."""
    values: dict[str, object] = {
        "id": item_id,
        "name": template.name,
        "calories": template.calories,
        "protein": template.protein,
        "fat": template.fat,
        "carbs": template.carbs,
        "serving_size": template.serving_size,
        "category": template.category,
        "recorded_at": recorded_at,
        "template_id": template.id,
        "usda_id": template.usda_id,
        "brand_name": template.brand_name,
        "ingredients": template.ingredients,
    }
    if overrides:
        values.update(
            {key: value for key, value in overrides.items() if key != "kind"}
        )
    return RecordedItem(**values)  # type: ignore[arg-type]
