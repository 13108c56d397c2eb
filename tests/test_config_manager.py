"""Tests for ConfigManager and EventBus.

This module tests:
- Hardcoded defaults before initialization
- Database-backed overrides through set/initialize
- Cache reset
- EventBus delivery and listener isolation
"""

from chorequest.services import ConfigManager, EventBus


# ============================================================================
# CONFIG MANAGER
# ============================================================================


class TestConfigManager:
    """Dot-notation configuration with database overrides."""

    def test_defaults_without_initialization(self) -> None:
        """Economy defaults are available before the database is read."""
        assert ConfigManager.get("streak_bonus.increment") == 0.01
        assert ConfigManager.get("streak_bonus.threshold_days") == 5
        assert ConfigManager.get("ledger.retention_days") == 365

    def test_missing_key_returns_default(self) -> None:
        """Unknown keys fall back to the caller's default."""
        assert ConfigManager.get("streak_bonus.nope", 42) == 42
        assert ConfigManager.get("nothing.here") is None

    async def test_set_overrides_nested_value(self, session) -> None:
        """Setting one nested key keeps its siblings."""
        await ConfigManager.set(session, "streak_bonus.max", 0.10, "gm-user")

        assert ConfigManager.get("streak_bonus.max") == 0.10
        assert ConfigManager.get("streak_bonus.increment") == 0.01

    async def test_initialize_loads_stored_values(self, session) -> None:
        """Values written to the database survive a cache reset."""
        await ConfigManager.set(session, "streak_validation.weekly_max_gap_days", 10, "gm-user")
        ConfigManager.clear_cache()

        await ConfigManager.initialize(session, start_refresh=False)

        assert ConfigManager.get("streak_validation.weekly_max_gap_days") == 10
        assert ConfigManager.get("streak_validation.daily_max_gap_days") == 2
        assert ConfigManager.get("streak_bonus.max") == 0.05

    async def test_clear_cache_restores_defaults(self, session) -> None:
        """Clearing the cache drops in-memory overrides."""
        await ConfigManager.set(session, "ledger.retention_days", 30)
        ConfigManager.clear_cache()

        assert ConfigManager.get("ledger.retention_days") == 365


# ============================================================================
# EVENT BUS
# ============================================================================


class TestEventBus:
    """Publish/subscribe for lifecycle notifications."""

    async def test_sync_and_async_listeners(self) -> None:
        """Both plain and coroutine listeners receive the payload."""
        received = []

        def on_sync(data):
            received.append(("sync", data["quest_id"]))

        async def on_async(data):
            received.append(("async", data["quest_id"]))

        EventBus.subscribe("quest_claimed", on_sync)
        EventBus.subscribe("quest_claimed", on_async)

        await EventBus.publish("quest_claimed", {"quest_id": "q-1"})

        assert received == [("sync", "q-1"), ("async", "q-1")]

    async def test_failing_listener_does_not_stop_others(self) -> None:
        """A broken listener is logged and the rest still run."""
        received = []

        def broken(data):
            raise RuntimeError("listener bug")

        EventBus.subscribe("quest_approved", broken)
        EventBus.subscribe("quest_approved", received.append)

        await EventBus.publish("quest_approved", {"quest_id": "q-2"})

        assert received == [{"quest_id": "q-2"}]

    async def test_unsubscribe(self) -> None:
        """Removed listeners are no longer called."""
        received = []
        EventBus.subscribe("quest_released", received.append)
        EventBus.unsubscribe("quest_released", received.append)

        await EventBus.publish("quest_released", {"quest_id": "q-3"})

        assert received == []
