from datetime import datetime, timezone

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.local_setting import LocalSetting


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the form stored in local_settings.updated_at."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LocalSettingRepository:
    """
    Repository for the local key-value store.

    Used for degraded-mode hints (profile completion markers) that survive a
    restart. Values are stored as strings.
    """

    @staticmethod
    async def get(key: str, session: AsyncSession) -> str | None:
        """
        Get a setting value by key.

        Returns:
            Setting value as string, or None if not found
        """
        stmt = select(LocalSetting).where(LocalSetting.key == key)
        result = await session_execute(stmt, session)
        setting = result.scalar()
        return setting.value if setting else None

    @staticmethod
    async def get_with_timestamp(key: str, session: AsyncSession) -> tuple[str, datetime | None] | None:
        """
        Get a setting value together with its last write time.

        Returns:
            (value, updated_at) or None if not found
        """
        stmt = select(LocalSetting).where(LocalSetting.key == key)
        result = await session_execute(stmt, session)
        setting = result.scalar()
        if setting is None:
            return None
        return setting.value, setting.updated_at

    @staticmethod
    async def set(key: str, value: str, session: AsyncSession) -> None:
        """Set a setting value (insert or update)."""
        existing = await LocalSettingRepository.get(key, session)

        if existing is not None:
            stmt = (
                update(LocalSetting)
                .where(LocalSetting.key == key)
                .values(value=value, updated_at=utc_now())
            )
            await session_execute(stmt, session)
        else:
            setting = LocalSetting(key=key, value=value, updated_at=utc_now())
            session.add(setting)
            await session_flush(session)

    @staticmethod
    async def delete(key: str, session: AsyncSession) -> None:
        stmt = delete(LocalSetting).where(LocalSetting.key == key)
        await session_execute(stmt, session)

    @staticmethod
    async def get_flag(key: str, session: AsyncSession, max_age_seconds: int = 0) -> bool | None:
        """
        Get a boolean marker.

        Args:
            key: Marker key (e.g., "profile_complete")
            session: Database session
            max_age_seconds: Ignore markers older than this (0 = no expiry)

        Returns:
            True/False, or None if the marker is missing or expired
        """
        stored = await LocalSettingRepository.get_with_timestamp(key, session)
        if stored is None:
            return None
        value, updated_at = stored
        if max_age_seconds > 0 and updated_at is not None:
            age = (utc_now() - updated_at).total_seconds()
            if age > max_age_seconds:
                return None
        return value == "true"

    @staticmethod
    async def set_flag(key: str, value: bool, session: AsyncSession) -> None:
        await LocalSettingRepository.set(key, "true" if value else "false", session)
