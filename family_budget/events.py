import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = [
    'Event', 'EventBus', 'register_default_handlers',
    'TRANSACTION_ADDED', 'TRANSACTION_REMOVED', 'CATEGORY_ADDED',
    'CATEGORY_DELETED', 'LIMIT_SET', 'BUDGET_ALERT',
]

logger = logging.getLogger(__name__)


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        handlers = self._subscribers.get(name)
        if not handlers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        logger.debug("publish %s to %d handler(s)", name, len(handlers))
        return [handler(event, payload) for handler in list(handlers)]


TRANSACTION_ADDED = "TRANSACTION_ADDED"
TRANSACTION_REMOVED = "TRANSACTION_REMOVED"
CATEGORY_ADDED = "CATEGORY_ADDED"
CATEGORY_DELETED = "CATEGORY_DELETED"
LIMIT_SET = "LIMIT_SET"
BUDGET_ALERT = "BUDGET_ALERT"

ALERT_PERCENTAGE = 90


def check_budget_handler(event: Event, payload: dict) -> dict:
    """Alert when an expense leaves its category at or above 90% of the limit.

    payload: {"status": BudgetStatus | None}
    """
    status = payload.get("status")
    if status is None or status.percentage < ALERT_PERCENTAGE:
        return {}

    name = status.category.name
    if status.over_budget:
        message = f"Budget exceeded for {name}: {status.spent:,.2f} / {status.limit:,.2f}"
    else:
        message = f"Budget for {name} is at {status.percentage:.0f}%"
    return {
        "alert": message,
        "category_id": status.category.id,
        "spent": status.spent,
        "limit": status.limit,
        "remaining": status.remaining,
    }


def register_default_handlers(bus: EventBus) -> EventBus:
    bus.subscribe(BUDGET_ALERT, check_budget_handler)
    return bus
