#!/usr/bin/env python
"""Reset the database schema and seed the administrator account."""
from __future__ import annotations

import asyncio
from pathlib import Path
import sys

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from session_auth.auth.constants import ADMIN_ROLE_NAME, DEFAULT_ROLE_NAME
from session_auth.config import load_settings
from session_auth.infrastructure.database import Base, configure_engine, get_engine
from session_auth.main import ensure_bootstrap_admin


async def reset_schema() -> None:
    """Drop and recreate all tables defined in the ORM metadata."""

    settings = load_settings()
    configure_engine(settings)
    engine = get_engine()
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)


async def main() -> None:
    """Entrypoint that resets the schema and seeds initial data."""

    settings = load_settings()
    await reset_schema()
    await ensure_bootstrap_admin(settings)
    print(
        f"Seeded admin user '{settings.bootstrap.admin_username}' "
        f"with roles '{ADMIN_ROLE_NAME}' and '{DEFAULT_ROLE_NAME}'."
    )


if __name__ == "__main__":
    asyncio.run(main())
