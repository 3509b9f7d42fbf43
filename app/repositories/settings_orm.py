"""Persisted settings repository - SQLAlchemy ORM async."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert

from app.core.logging import get_logger
from app.database.connection import get_session
from app.database.orm import Setting


logger = get_logger("repositories.settings")


async def get_setting(key: str) -> dict[str, Any] | None:
    """Return the JSON value stored under `key`, or None."""
    async with get_session() as session:
        row = await session.get(Setting, key)
        return dict(row.value) if row else None


async def save_setting(
    key: str, value: dict[str, Any], description: str | None = None
) -> None:
    """Insert or replace a setting."""
    async with get_session() as session:
        stmt = insert(Setting).values(key=key, value=value, description=description)
        update_values: dict[str, Any] = {"value": value}
        if description is not None:
            update_values["description"] = description
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_=update_values,
        )
        await session.execute(stmt)
        await session.commit()
    logger.debug(f"Saved setting {key}")


class SqlSettingsRepository:
    async def get_setting(self, key: str) -> dict[str, Any] | None:
        return await get_setting(key)

    async def save_setting(
        self, key: str, value: dict[str, Any], description: str | None = None
    ) -> None:
        await save_setting(key, value, description)
