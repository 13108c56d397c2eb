from typing import Callable, Dict, List, Any
import asyncio

from chorequest.services.logger import get_logger

logger = get_logger(__name__)


class EventBus:
    """
    Simple async pub/sub event bus for quest and wallet change notifications.

    The lifecycle services publish here after a transition succeeds; realtime
    transports subscribe. A failing listener never fails the publisher.

    Events:
        - quest_claimed, quest_released, quest_assigned
        - quest_completed, quest_denied, quest_cancelled
        - quest_approved, character_leveled_up
        - quests_expired
        - reward_redeemed, redemption_updated
    """

    _listeners: Dict[str, List[Callable[[Dict[str, Any]], Any]]] = {}

    @classmethod
    def subscribe(cls, event_name: str, callback: Callable[[Dict[str, Any]], Any]) -> None:
        cls._listeners.setdefault(event_name, []).append(callback)

    @classmethod
    def unsubscribe(cls, event_name: str, callback: Callable[[Dict[str, Any]], Any]) -> None:
        listeners = cls._listeners.get(event_name, [])
        if callback in listeners:
            listeners.remove(callback)

    @classmethod
    def clear(cls) -> None:
        cls._listeners = {}

    @classmethod
    async def publish(cls, event_name: str, data: Dict[str, Any]) -> None:
        listeners = list(cls._listeners.get(event_name, []))
        for listener in listeners:
            try:
                if asyncio.iscoroutinefunction(listener):
                    await listener(data)
                else:
                    listener(data)
            except Exception as e:
                logger.error(f"[EventBus] Error in listener for {event_name}: {e}")
