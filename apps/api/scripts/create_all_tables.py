#!/usr/bin/env python3
"""Create any missing EarthLord tables directly from the models.

For local databases and throwaway environments; production uses alembic.
"""

import os
import re

from sqlalchemy import create_engine, inspect

from earthlord_api.database import Base
from earthlord_api.models import InventoryItem, PlayerBuilding, Territory, TrackingSession  # noqa: F401


def transform_url(url: str) -> str:
    """Transform async URL to sync."""
    url = url.replace("postgresql+asyncpg://", "postgresql://")
    url = re.sub(r"ssl=(\w+)", r"sslmode=\1", url)
    return url


def main():
    url = os.environ.get("DATABASE_URL", "")
    if not url:
        print("DATABASE_URL not set")
        return

    engine = create_engine(transform_url(url))
    existing = set(inspect(engine).get_table_names())

    Base.metadata.create_all(engine)

    for table in Base.metadata.sorted_tables:
        marker = "=" if table.name in existing else "+"
        print(f"{marker} {table.name}")

    engine.dispose()


if __name__ == "__main__":
    main()
