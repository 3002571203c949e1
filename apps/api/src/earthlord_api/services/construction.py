"""Construction timer engine.

Buildings move through ``constructing -> active -> upgrading -> active``.
Timed transitions are never driven by a scheduler: ``effective_status``
derives them from the stored row and the current time, and
``settle_building`` writes an elapsed transition back when a caller needs it
materialized.

Player-initiated transitions are split into a pure ``plan_*`` step, which
validates against a snapshot, and a ``commit_*`` step, which applies the plan
in one transaction: a compare-and-swap on the building's ``(status,
version)`` plus conditional ledger debits. Either both land or neither does.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from earthlord_api.clock import utcnow
from earthlord_api.errors import (
    ConcurrentModification,
    InsufficientResources,
    InvalidStatusForTransition,
    MaxLevelReached,
    NotFound,
    NotOwner,
    PointOutsideTerritory,
    TemplateLimitReached,
)
from earthlord_api.repositories import building as building_repo
from earthlord_api.repositories import inventory as inventory_repo
from earthlord_api.repositories import territory as territory_repo
from earthlord_api.schemas import (
    BuildingStatus,
    BuildingTemplate,
    BuildingView,
    MaterialCheckResult,
    PlayerBuilding,
    Territory,
)
from earthlord_api.schemas.building import TIMED_STATUSES, format_duration
from earthlord_api.services.templates import TemplateCatalog
from earthlord_api.services.territories import get_owned_territory
from earthlord_shared import GeoPoint
from earthlord_shared.geodesy import is_inside_polygon

logger = logging.getLogger(__name__)


# --- Pure state derivation ---------------------------------------------------


def check_materials(required: dict[str, int], available: dict[str, int]) -> MaterialCheckResult:
    """Compare a cost against balances. Only short resources are reported."""
    missing = {}
    for name, quantity in required.items():
        shortfall = max(0, quantity - available.get(name, 0))
        if shortfall > 0:
            missing[name] = shortfall
    return MaterialCheckResult(can_build=not missing, missing_resources=missing)


def is_timer_due(building: PlayerBuilding, now: datetime) -> bool:
    return (
        building.status in TIMED_STATUSES
        and building.build_completed_at is not None
        and now >= building.build_completed_at
    )


def effective_status(building: PlayerBuilding, now: datetime) -> tuple[BuildingStatus, int]:
    """Return ``(status, level)`` with any elapsed timer applied.

    An upgrade stores the level it started from; the new level only exists
    once the timer has run out.
    """
    if not is_timer_due(building, now):
        return building.status, building.level
    if building.status == BuildingStatus.UPGRADING:
        return BuildingStatus.ACTIVE, building.level + 1
    return BuildingStatus.ACTIVE, building.level


def construction_progress(building: PlayerBuilding, now: datetime) -> float:
    """Fraction of the current timer that has elapsed, in [0, 1]."""
    if building.status not in TIMED_STATUSES or building.build_completed_at is None:
        return 1.0

    total = (building.build_completed_at - building.build_started_at).total_seconds()
    if total <= 0:
        return 1.0

    elapsed = (now - building.build_started_at).total_seconds()
    return min(1.0, max(0.0, elapsed / total))


def remaining_seconds(building: PlayerBuilding, now: datetime) -> int:
    if building.status not in TIMED_STATUSES or building.build_completed_at is None:
        return 0
    return max(0, math.ceil((building.build_completed_at - now).total_seconds()))


def to_view(building: PlayerBuilding, now: datetime) -> BuildingView:
    status, level = effective_status(building, now)
    remaining = remaining_seconds(building, now)
    return BuildingView(
        **building.model_dump(),
        effective_status=status,
        effective_level=level,
        progress=construction_progress(building, now),
        remaining_seconds=remaining,
        remaining_display=format_duration(remaining),
    )


def upgrade_cost(
    template: BuildingTemplate, current_level: int, multiplier: float = 1.0
) -> dict[str, int]:
    """Resources needed to go from ``current_level`` to the next level.

    An explicit entry in ``template.upgrade_resources`` wins; otherwise the
    base construction cost is scaled by the current level and ``multiplier``.
    """
    explicit = template.upgrade_resources.get(current_level + 1)
    if explicit is not None:
        return dict(explicit)
    return {
        name: math.ceil(quantity * current_level * multiplier)
        for name, quantity in template.required_resources.items()
    }


def upgrade_duration(template: BuildingTemplate, next_level: int) -> int:
    """Seconds an upgrade to ``next_level`` takes."""
    return template.build_time_seconds * next_level


# --- Plans ------------------------------------------------------------------


@dataclass(frozen=True)
class ConstructionPlan:
    """A validated request to place a new building."""

    territory_id: UUID
    template: BuildingTemplate
    location: GeoPoint
    cost: dict[str, int]
    started_at: datetime
    completed_at: datetime


@dataclass(frozen=True)
class UpgradePlan:
    """A validated request to upgrade one building, bound to the row version it saw."""

    building_id: UUID
    expected_status: BuildingStatus
    expected_version: int
    from_level: int
    cost: dict[str, int]
    started_at: datetime
    completed_at: datetime


def plan_construction(
    template: BuildingTemplate,
    territory: Territory,
    location: GeoPoint,
    existing_count: int,
    balances: dict[str, int],
    now: datetime,
) -> ConstructionPlan:
    """Validate a placement against a snapshot of the territory and ledger."""
    if not territory.is_active:
        raise InvalidStatusForTransition("inactive", "build in a territory")

    if not territory.bounding_box.contains(location) or not is_inside_polygon(
        location, territory.boundary
    ):
        raise PointOutsideTerritory(territory.id)

    if existing_count >= template.max_per_territory:
        raise TemplateLimitReached(template.template_id, template.max_per_territory)

    check = check_materials(template.required_resources, balances)
    if not check.can_build:
        raise InsufficientResources(check.missing_resources)

    return ConstructionPlan(
        territory_id=territory.id,
        template=template,
        location=location,
        cost=dict(template.required_resources),
        started_at=now,
        completed_at=now + timedelta(seconds=template.build_time_seconds),
    )


def plan_upgrade(
    building: PlayerBuilding,
    template: BuildingTemplate,
    balances: dict[str, int],
    now: datetime,
    cost_multiplier: float = 1.0,
) -> UpgradePlan:
    """Validate an upgrade against a snapshot of the building and ledger.

    A building whose construction or previous upgrade has elapsed but was
    never settled counts as active at its effective level.
    """
    status, level = effective_status(building, now)
    if status != BuildingStatus.ACTIVE:
        raise InvalidStatusForTransition(status.value, "upgrade")

    if level >= template.max_level:
        raise MaxLevelReached(template.max_level)

    cost = upgrade_cost(template, level, cost_multiplier)
    check = check_materials(cost, balances)
    if not check.can_build:
        raise InsufficientResources(check.missing_resources)

    return UpgradePlan(
        building_id=building.id,
        expected_status=building.status,
        expected_version=building.version,
        from_level=level,
        cost=cost,
        started_at=now,
        completed_at=now + timedelta(seconds=upgrade_duration(template, level + 1)),
    )


# --- Commits ----------------------------------------------------------------


async def _debit_all(db: AsyncSession, owner_id: UUID, cost: dict[str, int]) -> None:
    """Debit every resource of ``cost`` or roll back and raise InsufficientResources."""
    for name, quantity in sorted(cost.items()):
        if await inventory_repo.debit(db, owner_id, name, quantity):
            continue
        await db.rollback()
        balance = await inventory_repo.get_quantity(db, owner_id, name)
        logger.info(
            "Debit failed after passing check: owner=%s resource=%s needed=%d balance=%d",
            owner_id,
            name,
            quantity,
            balance,
        )
        raise InsufficientResources({name: quantity - balance})


async def commit_construction(
    db: AsyncSession, owner_id: UUID, plan: ConstructionPlan
) -> PlayerBuilding:
    """Debit the cost and insert the building in one transaction.

    The territory row stays locked until commit, so the template count
    taken here is the one the insert lands against.
    """
    territory = await territory_repo.lock_territory(db, plan.territory_id)
    if territory is None:
        await db.rollback()
        raise NotFound(f"Territory {plan.territory_id} not found")
    if not territory.is_active:
        await db.rollback()
        raise InvalidStatusForTransition("inactive", "build in a territory")

    count = await building_repo.count_buildings(db, plan.territory_id, plan.template.template_id)
    if count >= plan.template.max_per_territory:
        await db.rollback()
        raise TemplateLimitReached(plan.template.template_id, plan.template.max_per_territory)

    await _debit_all(db, owner_id, plan.cost)

    building = await building_repo.add_building(
        db,
        owner_id=owner_id,
        territory_id=plan.territory_id,
        template_id=plan.template.template_id,
        name=plan.template.name,
        location=plan.location,
        started_at=plan.started_at,
        completed_at=plan.completed_at,
    )

    await db.commit()
    logger.info(
        "Construction started: building=%s template=%s territory=%s completes_at=%s",
        building.id,
        plan.template.template_id,
        plan.territory_id,
        plan.completed_at.isoformat(),
    )
    return building


async def commit_upgrade(db: AsyncSession, owner_id: UUID, plan: UpgradePlan) -> PlayerBuilding:
    """Swap the building into ``upgrading`` and debit the cost in one transaction."""
    swapped = await building_repo.compare_and_set(
        db,
        plan.building_id,
        expected_version=plan.expected_version,
        expected_status=plan.expected_status,
        updated_at=plan.started_at,
        status=BuildingStatus.UPGRADING,
        level=plan.from_level,
        build_started_at=plan.started_at,
        build_completed_at=plan.completed_at,
    )
    if not swapped:
        await db.rollback()
        raise ConcurrentModification(f"Building {plan.building_id} changed during upgrade")

    await _debit_all(db, owner_id, plan.cost)
    await db.commit()

    logger.info(
        "Upgrade started: building=%s level=%d->%d completes_at=%s",
        plan.building_id,
        plan.from_level,
        plan.from_level + 1,
        plan.completed_at.isoformat(),
    )
    building = await building_repo.get_building(db, plan.building_id)
    if building is None:
        raise ConcurrentModification(f"Building {plan.building_id} was removed during upgrade")
    return building


# --- Operations -------------------------------------------------------------


async def get_owned_building(db: AsyncSession, building_id: UUID, user_id: UUID) -> PlayerBuilding:
    """Load a building, raising NotFound or NotOwner."""
    building = await building_repo.get_building(db, building_id)
    if building is None:
        logger.warning("Building not found: building_id=%s user_id=%s", building_id, user_id)
        raise NotFound(f"Building {building_id} not found")

    if building.owner_id != user_id:
        logger.warning(
            "Unauthorized building access: building_id=%s owner=%s requester=%s",
            building_id,
            building.owner_id,
            user_id,
        )
        raise NotOwner("You don't own this building")

    return building


async def check_construction_materials(
    db: AsyncSession, owner_id: UUID, template: BuildingTemplate
) -> MaterialCheckResult:
    """Advisory check of the ledger against a template's build cost."""
    balances = await inventory_repo.get_balances(db, owner_id)
    return check_materials(template.required_resources, balances)


async def start_construction(
    db: AsyncSession,
    catalog: TemplateCatalog,
    owner_id: UUID,
    territory_id: UUID,
    template_id: str,
    location: GeoPoint,
    now: datetime | None = None,
) -> PlayerBuilding:
    """Place a new building inside one of the owner's territories."""
    now = now or utcnow()
    template = catalog.get(template_id)
    territory = await get_owned_territory(db, territory_id, owner_id)

    existing = await building_repo.count_buildings(db, territory_id, template_id)
    balances = await inventory_repo.get_balances(db, owner_id)
    plan = plan_construction(template, territory, location, existing, balances, now)

    return await commit_construction(db, owner_id, plan)


async def upgrade_building(
    db: AsyncSession,
    catalog: TemplateCatalog,
    owner_id: UUID,
    building_id: UUID,
    now: datetime | None = None,
    cost_multiplier: float = 1.0,
) -> PlayerBuilding:
    """Start upgrading an active building to its next level."""
    now = now or utcnow()
    building = await get_owned_building(db, building_id, owner_id)
    template = catalog.get(building.template_id)

    balances = await inventory_repo.get_balances(db, owner_id)
    plan = plan_upgrade(building, template, balances, now, cost_multiplier)

    return await commit_upgrade(db, owner_id, plan)


async def settle_building(
    db: AsyncSession, building: PlayerBuilding, now: datetime | None = None
) -> PlayerBuilding:
    """Persist an elapsed timer transition. A no-op when nothing is due.

    Safe to call repeatedly and concurrently: if another writer settled or
    changed the row first, the fresh row is returned instead.
    """
    now = now or utcnow()
    if not is_timer_due(building, now):
        return building

    status, level = effective_status(building, now)
    swapped = await building_repo.compare_and_set(
        db,
        building.id,
        expected_version=building.version,
        expected_status=building.status,
        updated_at=now,
        status=status,
        level=level,
    )
    if swapped:
        await db.commit()
        logger.info(
            "Settled building=%s %s -> %s level=%d", building.id, building.status, status, level
        )
    else:
        await db.rollback()

    fresh = await building_repo.get_building(db, building.id)
    return fresh if fresh is not None else building


async def list_territory_buildings(
    db: AsyncSession, owner_id: UUID, territory_id: UUID, now: datetime | None = None
) -> list[PlayerBuilding]:
    """List a territory's buildings, settling any elapsed timers on the way."""
    now = now or utcnow()
    await get_owned_territory(db, territory_id, owner_id)
    buildings = await building_repo.list_buildings_by_territory(db, territory_id)
    return [await settle_building(db, b, now) for b in buildings]


async def list_player_buildings(
    db: AsyncSession, owner_id: UUID, now: datetime | None = None
) -> list[PlayerBuilding]:
    """List every building the player owns, across territories, settled."""
    now = now or utcnow()
    buildings = await building_repo.list_buildings_by_owner(db, owner_id)
    return [await settle_building(db, b, now) for b in buildings]


async def demolish_building(
    db: AsyncSession,
    catalog: TemplateCatalog,
    owner_id: UUID,
    building_id: UUID,
    refund_ratio: float = 0.0,
) -> dict[str, int]:
    """Remove a building in any state. Returns the resources refunded.

    The refund is ``refund_ratio`` of the base construction cost, rounded down.
    """
    building = await get_owned_building(db, building_id, owner_id)

    refund: dict[str, int] = {}
    if refund_ratio > 0:
        if building.template_id in catalog:
            template = catalog.get(building.template_id)
            refund = {
                name: math.floor(quantity * refund_ratio)
                for name, quantity in template.required_resources.items()
                if math.floor(quantity * refund_ratio) > 0
            }
        else:
            logger.warning(
                "No refund for building=%s: unknown template %s",
                building_id,
                building.template_id,
            )

    deleted = await building_repo.delete_building(db, building_id, building.version)
    if not deleted:
        await db.rollback()
        raise ConcurrentModification(f"Building {building_id} changed during demolish")

    for name, quantity in refund.items():
        await inventory_repo.credit(db, owner_id, name, quantity)
    await db.commit()

    logger.info("Demolished building=%s refund=%s", building_id, refund)
    return refund
