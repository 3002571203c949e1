"""Inventory schemas."""

from uuid import UUID

from pydantic import BaseModel, Field, PositiveInt


class Inventory(BaseModel):
    """Resource balances for one player."""

    owner_id: UUID
    resources: dict[str, int] = Field(default_factory=dict)


class InventoryGrant(BaseModel):
    """Request model for crediting resources (rewards, purchases)."""

    resources: dict[str, PositiveInt] = Field(..., min_length=1)
