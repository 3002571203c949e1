"""Inventory repository - the resource ledger.

``debit`` and ``credit`` only stage changes; they run inside the caller's
transaction so that a debit commits or rolls back together with the
building transition that paid for it.
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from earthlord_api.clock import utcnow
from earthlord_api.models import InventoryItem as InventoryItemModel

logger = logging.getLogger(__name__)


async def get_balances(db: AsyncSession, owner_id: UUID) -> dict[str, int]:
    """All non-zero resource balances for a player."""
    result = await db.execute(
        select(InventoryItemModel.resource_name, InventoryItemModel.quantity).where(
            InventoryItemModel.owner_id == owner_id,
            InventoryItemModel.quantity > 0,
        )
    )
    return {name: quantity for name, quantity in result.all()}


async def get_quantity(db: AsyncSession, owner_id: UUID, resource_name: str) -> int:
    result = await db.execute(
        select(InventoryItemModel.quantity).where(
            InventoryItemModel.owner_id == owner_id,
            InventoryItemModel.resource_name == resource_name,
        )
    )
    return result.scalar_one_or_none() or 0


async def has_quantity(db: AsyncSession, owner_id: UUID, resource_name: str, quantity: int) -> bool:
    """Advisory read of one balance.

    Not a gate: construction validates against ``get_balances`` and then relies
    on the conditional ``debit``, which re-checks the balance in the UPDATE.
    """
    return await get_quantity(db, owner_id, resource_name) >= quantity


async def debit(db: AsyncSession, owner_id: UUID, resource_name: str, quantity: int) -> bool:
    """Conditionally remove ``quantity`` of a resource.

    The balance check and the decrement are a single UPDATE, so two
    transactions racing on stale balances cannot both succeed. Returns False
    when the balance is short; nothing is changed in that case.
    """
    if quantity <= 0:
        return True
    result = await db.execute(
        update(InventoryItemModel)
        .where(
            InventoryItemModel.owner_id == owner_id,
            InventoryItemModel.resource_name == resource_name,
            InventoryItemModel.quantity >= quantity,
        )
        .values(quantity=InventoryItemModel.quantity - quantity, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def credit(db: AsyncSession, owner_id: UUID, resource_name: str, quantity: int) -> None:
    """Add ``quantity`` of a resource, creating the ledger row if needed."""
    if quantity <= 0:
        return
    result = await db.execute(
        update(InventoryItemModel)
        .where(
            InventoryItemModel.owner_id == owner_id,
            InventoryItemModel.resource_name == resource_name,
        )
        .values(quantity=InventoryItemModel.quantity + quantity, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.add(
            InventoryItemModel(
                owner_id=owner_id,
                resource_name=resource_name,
                quantity=quantity,
                updated_at=utcnow(),
            )
        )
        await db.flush()


async def grant(db: AsyncSession, owner_id: UUID, resources: dict[str, int]) -> dict[str, int]:
    """Credit several resources and commit. Returns the new balances."""
    for name, quantity in resources.items():
        await credit(db, owner_id, name, quantity)
    await db.commit()
    logger.info("Granted %s to %s", resources, owner_id)
    return await get_balances(db, owner_id)
