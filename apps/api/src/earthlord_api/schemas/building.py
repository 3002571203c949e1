"""Building schemas - templates, placed buildings and material checks."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from earthlord_shared import GeoPoint


class BuildingCategory(StrEnum):
    """Template categories."""

    SURVIVAL = "survival"
    STORAGE = "storage"
    PRODUCTION = "production"
    ENERGY = "energy"


class BuildingStatus(StrEnum):
    """Building lifecycle states."""

    CONSTRUCTING = "constructing"
    UPGRADING = "upgrading"
    ACTIVE = "active"
    DAMAGED = "damaged"
    INACTIVE = "inactive"


TIMED_STATUSES = frozenset({BuildingStatus.CONSTRUCTING, BuildingStatus.UPGRADING})


def format_duration(seconds: int) -> str:
    """Render a duration as ``45s``, ``2m 30s`` or ``1h 5m``."""
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        minutes, secs = divmod(seconds, 60)
        return f"{minutes}m {secs}s" if secs else f"{minutes}m"
    hours, rest = divmod(seconds, 3600)
    minutes = rest // 60
    return f"{hours}h {minutes}m" if minutes else f"{hours}h"


class BuildingTemplate(BaseModel):
    """Static catalog entry, loaded once at startup."""

    model_config = ConfigDict(frozen=True)

    template_id: str
    name: str
    tier: int = Field(..., ge=1, le=3)
    category: BuildingCategory
    description: str = ""
    icon: str = ""
    required_resources: dict[str, int] = Field(default_factory=dict)
    build_time_seconds: int = Field(..., ge=0)
    max_per_territory: int = Field(..., ge=0)
    max_level: int = Field(..., ge=1)
    upgrade_resources: dict[int, dict[str, int]] = Field(
        default_factory=dict,
        description="Explicit cost per target level; falls back to base cost x current level",
    )

    @property
    def formatted_build_time(self) -> str:
        return format_duration(self.build_time_seconds)


class BuildingTemplateCollection(BaseModel):
    """Root object of building_templates.json."""

    version: str
    templates: list[BuildingTemplate]


class BuildingCreate(BaseModel):
    """Request model for starting construction."""

    template_id: str
    location: GeoPoint = Field(..., description="Raw WGS-84 placement point")


class PlayerBuilding(BaseModel):
    """A building as stored. ``status`` may lag behind the clock."""

    id: UUID
    owner_id: UUID
    territory_id: UUID
    template_id: str
    name: str
    status: BuildingStatus
    level: int = Field(..., ge=1)
    location: GeoPoint
    build_started_at: datetime
    build_completed_at: datetime | None = None
    version: int = 1
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BuildingView(PlayerBuilding):
    """A building with its time-derived state resolved for the caller."""

    effective_status: BuildingStatus
    effective_level: int
    progress: float = Field(..., ge=0.0, le=1.0)
    remaining_seconds: int = Field(..., ge=0)
    remaining_display: str = Field(..., description="Remaining time as shown in the client, e.g. 2m 30s")


class MaterialCheckRequest(BaseModel):
    """Request model for an advisory material check."""

    template_id: str


class MaterialCheckResult(BaseModel):
    """Whether the ledger covers a cost, and what is missing if not."""

    can_build: bool
    missing_resources: dict[str, int] = Field(default_factory=dict)
