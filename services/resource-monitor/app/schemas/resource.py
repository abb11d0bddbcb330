"""
Resource Monitor — Pydantic Schemas

Views are serialized with camelCase keys (resourceTypeId, minimumLevel, ...);
request bodies accept either camelCase or snake_case.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.resource import ChangeType, ResourceCategory, ResourceStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ── Requests ───────────────────────────────────────────────────────────────────
class CreateResourceRequest(CamelModel):
    resource_type_id: int | None = Field(None, examples=[1])
    quantity: int | None = Field(None, examples=[15000])


class UpdateQuantityRequest(CamelModel):
    quantity: int | None = Field(None, examples=[4000])


# ── Views ──────────────────────────────────────────────────────────────────────
class ResourceTypeView(CamelModel):
    id: int
    name: str
    category: ResourceCategory


class ResourceView(CamelModel):
    """Current state + catalog entry + thresholds + derived status. Never persisted."""
    id: int
    quantity: int
    resource_type_id: int
    resource_data: ResourceTypeView
    minimum_level: int
    critical_level: int
    maximum_level: int
    unit: str
    status: ResourceStatus


class HistoryView(CamelModel):
    id: int
    stock: int
    resource_type_id: int
    change_type: ChangeType | None = None
    created_at: datetime
    resource_data: ResourceTypeView


class ResourceStats(CamelModel):
    average: int = 0
    min: int = 0
    max: int = 0
    current: int = 0
    first_value: int = 0
    trend: str = "stable"
    percentage_change: float = 0.0
    total_records: int = 0
    time_range: str = "24h"


class StatsView(CamelModel):
    resource_data: ResourceTypeView
    stats: ResourceStats
