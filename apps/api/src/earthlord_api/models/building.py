"""Player building model."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from earthlord_api.database import Base

if TYPE_CHECKING:
    from earthlord_api.models.territory import Territory


class PlayerBuilding(Base):
    """A structure placed inside a territory.

    ``status`` may be stale: a ``constructing`` or ``upgrading`` row whose
    ``build_completed_at`` has passed is logically ``active``. Every write
    bumps ``version`` so transitions can compare-and-swap.
    """

    __tablename__ = "player_buildings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    territory_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("territories.id", ondelete="CASCADE"), nullable=False
    )
    template_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="constructing")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    location_lat: Mapped[float] = mapped_column(Float, nullable=False)
    location_lon: Mapped[float] = mapped_column(Float, nullable=False)
    build_started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    build_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    territory: Mapped["Territory"] = relationship("Territory", back_populates="buildings")

    __table_args__ = (
        Index("ix_player_buildings_owner_id", "owner_id"),
        Index("ix_player_buildings_territory_template", "territory_id", "template_id"),
    )
