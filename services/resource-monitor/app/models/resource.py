"""
Resource Monitor — Database models

[CONFIG DATA]        resource_types  — catalog, seeded at provisioning, never deleted
[LIVE DATA]          resources       — one current-quantity row per resource type
[HISTORICAL DATA]    change_history  — append-only, purged after the retention window

change_history is keyed to the resource *type*, not to the resources row, so a
type's history survives its state row being removed and recreated. History for
a type with no current state is valid data.
"""
from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, DateTime, ForeignKey, Enum, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.database import Base


class ResourceCategory(str, PyEnum):
    OXYGEN = "oxygen"
    WATER = "water"
    FOOD = "food"
    SPARE_PARTS = "spare_parts"


class ResourceStatus(str, PyEnum):
    CRITICAL = "critical"
    LOW = "low"
    NORMAL = "normal"


class ChangeType(str, PyEnum):
    INCREASE = "increase"
    DECREASE = "decrease"
    UPDATE = "update"
    SNAPSHOT = "snapshot"


def _enum_values(enum_cls):
    # Persist the lower-case values, not the member names.
    return [member.value for member in enum_cls]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResourceType(Base):
    """[CONFIG DATA] — catalog entry, e.g. "Main Oxygen Tank" / oxygen."""
    __tablename__ = "resource_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    category: Mapped[ResourceCategory] = mapped_column(
        Enum(ResourceCategory, name="resource_category", values_callable=_enum_values),
        index=True, nullable=False,
    )


class ResourceState(Base):
    """
    [LIVE DATA] — the only place a current quantity is mutated.
    version_id is the optimistic locking column — incremented on every quantity write.
    """
    __tablename__ = "resources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    resource_type_id: Mapped[int] = mapped_column(
        ForeignKey("resource_types.id"), unique=True, index=True, nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    resource_type: Mapped[ResourceType] = relationship(lazy="joined")


class HistoryEntry(Base):
    """[HISTORICAL DATA] — immutable quantity sample; deleted only by the retention sweep."""
    __tablename__ = "change_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stock: Mapped[int] = mapped_column(Integer, nullable=False)
    resource_type_id: Mapped[int] = mapped_column(
        ForeignKey("resource_types.id"), index=True, nullable=False
    )
    change_type: Mapped[ChangeType | None] = mapped_column(
        Enum(ChangeType, name="change_type", values_callable=_enum_values), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), index=True, nullable=False, default=utcnow
    )

    resource_type: Mapped[ResourceType] = relationship(lazy="joined")
