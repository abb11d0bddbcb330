"""
Resource Monitor — Level policy

Thresholds are looked up per category on every read and never stored, so a
change to this table is reflected immediately by every enriched view.
"""
from pydantic import BaseModel, ConfigDict

from app.core.errors import InvalidCategory
from app.models.resource import ResourceCategory, ResourceStatus


class LevelThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    minimum_level: int
    critical_level: int
    maximum_level: int
    unit: str


# Oxygen's critical level sits above its minimum; critical wins, so oxygen has no "low" band.
LEVELS_BY_CATEGORY: dict[ResourceCategory, LevelThresholds] = {
    ResourceCategory.OXYGEN: LevelThresholds(
        minimum_level=3000, critical_level=5000, maximum_level=20000, unit="L"),
    ResourceCategory.WATER: LevelThresholds(
        minimum_level=2000, critical_level=1000, maximum_level=10000, unit="L"),
    ResourceCategory.FOOD: LevelThresholds(
        minimum_level=500, critical_level=200, maximum_level=2000, unit="kg"),
    ResourceCategory.SPARE_PARTS: LevelThresholds(
        minimum_level=50, critical_level=20, maximum_level=200, unit="units"),
}


def parse_category(category: str) -> ResourceCategory:
    try:
        return ResourceCategory(category)
    except ValueError:
        valid = ", ".join(c.value for c in ResourceCategory)
        raise InvalidCategory(f"Invalid category '{category}'. Use: {valid}") from None


def get_levels_by_category(category: str | ResourceCategory) -> LevelThresholds:
    """Unknown categories raise InvalidCategory rather than falling back to defaults."""
    return LEVELS_BY_CATEGORY[parse_category(category)]


def derive_status(quantity: int, levels: LevelThresholds) -> ResourceStatus:
    if quantity <= levels.critical_level:
        return ResourceStatus.CRITICAL
    if quantity <= levels.minimum_level:
        return ResourceStatus.LOW
    return ResourceStatus.NORMAL


def is_critical(quantity: int, category: str | ResourceCategory) -> bool:
    return derive_status(quantity, get_levels_by_category(category)) is ResourceStatus.CRITICAL
