"""Pydantic models for the nutrition sync wire contract."""

from pydantic import BaseModel, ConfigDict, Field


class NutritionFetchResponse(BaseModel):
    """Response to GET /nutrition."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    has_updates: bool = Field(default=False, alias="hasUpdates")
    last_sync: str | None = Field(default=None, alias="lastSync")
    data: dict[str, object] | None = None
    message: str | None = None


class NutritionSaveRequest(BaseModel):
    """Body of POST /nutrition: a snapshot plus its update time."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    goals: dict[str, object] | None = None
    food_templates: list[dict[str, object]] = Field(
        default_factory=list, alias="foodTemplates"
    )
    daily_logs: dict[str, dict[str, object]] = Field(
        default_factory=dict, alias="dailyLogs"
    )
    weight_history: list[dict[str, object]] = Field(
        default_factory=list, alias="weightHistory"
    )
    updated_at: str | None = Field(default=None, alias="updatedAt")


class NutritionSaveResponse(BaseModel):
    """Response to POST /nutrition."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str | None = None
    last_sync: str | None = Field(default=None, alias="lastSync")
