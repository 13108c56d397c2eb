from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime
import asyncio
import copy

from chorequest.database.models.game_config import GameConfig
from chorequest.services.logger import get_logger
from chorequest.utils.time_utils import utcnow

logger = get_logger(__name__)


class ConfigManager:
    """
    Dynamic economy configuration with database backing and caching.

    Provides hierarchical config access using dot notation (e.g., 'streak_bonus.max').
    Values cached in-memory with TTL and refreshed from database.
    Lets a family's economy be tuned without a code deployment.

    Only soft tuning knobs live here (streak tiers, streak gap tolerance,
    ledger retention). The difficulty table, class bonus table, level curve
    and volunteer bonus are fixed (RewardCalculator, Config).

    Features:
        - Database-backed for live updates
        - In-memory cache with configurable TTL
        - Optional background refresh task
        - Graceful fallback to hardcoded defaults
        - Hierarchical config paths with dot notation

    Usage:
        >>> await ConfigManager.initialize(session)
        >>> ConfigManager.get("streak_bonus.max", 0.05)
        0.05
        >>> await ConfigManager.set(session, "streak_bonus.max", 0.10, "gm")
    """

    _cache: Dict[str, Any] = {}
    _cache_timestamps: Dict[str, datetime] = {}
    _initialized: bool = False
    _cache_ttl: int = 300
    _refresh_task: Optional[asyncio.Task] = None

    _defaults: Dict[str, Any] = {
        "streak_bonus": {
            "increment": 0.01,
            "threshold_days": 5,
            "max": 0.05,
        },
        "streak_validation": {
            "daily_max_gap_days": 2,
            "weekly_max_gap_days": 7,
        },
        "ledger": {
            "retention_days": 365,
        },
    }

    @classmethod
    async def initialize(cls, session: AsyncSession, start_refresh: bool = True) -> None:
        """
        Initialize ConfigManager by loading all config from database.

        Loads all GameConfig rows and layers them over the hardcoded defaults.
        Optionally starts a background task that refreshes the cache periodically.

        Args:
            session: Database session
            start_refresh: Whether to start the background refresh task

        Raises:
            Exception: If database connection fails (defaults stay usable)
        """
        try:
            result = await session.execute(select(GameConfig))
            configs = result.scalars().all()

            cls._cache = copy.deepcopy(cls._defaults)
            for config in configs:
                cls._cache[config.config_key] = config.config_value
                cls._cache_timestamps[config.config_key] = utcnow()

            if configs:
                logger.info(f"ConfigManager initialized with {len(configs)} config entries")
            else:
                logger.info("ConfigManager initialized with default config (database empty)")

            cls._initialized = True

            if start_refresh and cls._refresh_task is None:
                cls._refresh_task = asyncio.create_task(cls._background_refresh())
                logger.info("ConfigManager background refresh task started")

        except Exception as e:
            logger.error(f"Failed to initialize ConfigManager: {e}")
            cls._cache = copy.deepcopy(cls._defaults)
            cls._initialized = True
            raise

    @classmethod
    async def _background_refresh(cls) -> None:
        """Background task to refresh cache periodically."""
        while True:
            try:
                await asyncio.sleep(cls._cache_ttl)
                from chorequest.services.database_service import DatabaseService

                async with DatabaseService.get_session() as session:
                    result = await session.execute(select(GameConfig))
                    configs = result.scalars().all()

                    for config in configs:
                        cls._cache[config.config_key] = config.config_value
                        cls._cache_timestamps[config.config_key] = utcnow()

                    logger.debug(f"ConfigManager cache refreshed ({len(configs)} entries)")

            except asyncio.CancelledError:
                logger.info("ConfigManager background refresh cancelled")
                break
            except Exception as e:
                logger.error(f"ConfigManager background refresh error: {e}")

    @classmethod
    async def shutdown(cls) -> None:
        """Stop background refresh task and cleanup."""
        if cls._refresh_task is not None:
            cls._refresh_task.cancel()
            try:
                await cls._refresh_task
            except asyncio.CancelledError:
                pass
            cls._refresh_task = None
            logger.info("ConfigManager refresh task stopped")

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Get configuration value by hierarchical key.

        Supports dot notation for nested values (e.g., 'streak_bonus.increment').
        Falls back to hardcoded defaults if key not in cache.

        Args:
            key: Configuration key (dot-separated for nested values)
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            >>> ConfigManager.get("streak_bonus.threshold_days", 5)
            5
        """
        if not cls._initialized:
            logger.debug("ConfigManager not initialized, using defaults")
            cls._cache = copy.deepcopy(cls._defaults)
            cls._initialized = True

        top_level_key = key.split(".")[0]
        if top_level_key in cls._cache_timestamps:
            age = (utcnow() - cls._cache_timestamps[top_level_key]).total_seconds()
            if age > cls._cache_ttl:
                cls._cache.pop(top_level_key, None)
                cls._cache_timestamps.pop(top_level_key, None)

        value = cls._lookup(cls._cache, key)
        if value is None:
            value = cls._lookup(cls._defaults, key)

        return value if value is not None else default

    @staticmethod
    def _lookup(data: Dict[str, Any], key: str) -> Any:
        """Navigate a nested dictionary using dot notation."""
        value: Any = data
        for k in key.split("."):
            if not isinstance(value, dict):
                return None
            value = value.get(k)
            if value is None:
                return None
        return value

    @classmethod
    def _set_nested_value(cls, data: Dict, keys: list, value: Any) -> Dict:
        """Set value in nested dictionary structure."""
        if len(keys) == 1:
            data[keys[0]] = value
            return data

        if keys[0] not in data:
            data[keys[0]] = {}

        data[keys[0]] = cls._set_nested_value(data[keys[0]], keys[1:], value)
        return data

    @classmethod
    async def set(
        cls,
        session: AsyncSession,
        key: str,
        value: Any,
        modified_by: str = "system"
    ) -> None:
        """
        Set configuration value in database and update cache.

        Writes through the caller's session; the caller commits.
        Supports dot notation for nested values.

        Args:
            session: Database session
            key: Configuration key (dot-separated for nested values)
            value: New value
            modified_by: User/system making the change

        Raises:
            Exception: If database update fails

        Example:
            >>> await ConfigManager.set(session, "streak_bonus.max", 0.10, "gm")
        """
        try:
            keys = key.split(".")
            top_level_key = keys[0]

            result = await session.execute(
                select(GameConfig).where(GameConfig.config_key == top_level_key)
            )
            config = result.scalar_one_or_none()

            if len(keys) > 1:
                if config:
                    config_data = copy.deepcopy(config.config_value)
                else:
                    config_data = copy.deepcopy(cls._defaults.get(top_level_key, {}))

                final_value = cls._set_nested_value(config_data, keys[1:], value)
            else:
                final_value = value

            if config:
                config.config_value = final_value
                config.modified_by = modified_by
                config.last_modified = utcnow()
            else:
                config = GameConfig(
                    config_key=top_level_key,
                    config_value=final_value,
                    modified_by=modified_by
                )
                session.add(config)

            await session.flush()

            if not cls._initialized:
                cls._cache = copy.deepcopy(cls._defaults)
                cls._initialized = True
            cls._cache[top_level_key] = final_value
            cls._cache_timestamps[top_level_key] = utcnow()
            logger.info(f"ConfigManager updated: {key} by {modified_by}")

        except Exception as e:
            logger.error(f"Failed to update config {key}: {e}")
            raise

    @classmethod
    def clear_cache(cls) -> None:
        """Clear in-memory cache and reset initialization state."""
        cls._cache = {}
        cls._cache_timestamps = {}
        cls._initialized = False
