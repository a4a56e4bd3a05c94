"""Application state and the controller that owns it.

``AppState`` is an immutable snapshot; every mutation on ``BudgetController``
builds a new snapshot, swaps it in and then persists both collections. A failed
save is logged and the in-memory snapshot stays authoritative.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, List, Optional, Tuple

from family_budget import aggregation, config
from family_budget import categories as registry_ops
from family_budget.categories import CategoryRegistry
from family_budget.domain import ARS, EXPENSE, Category, Transaction
from family_budget.events import (
    BUDGET_ALERT,
    CATEGORY_ADDED,
    CATEGORY_DELETED,
    LIMIT_SET,
    TRANSACTION_ADDED,
    TRANSACTION_REMOVED,
    EventBus,
    register_default_handlers,
)
from family_budget.functional import parse_amount, parse_limit, require_text
from family_budget.storage import KeyValueStore, load_collections, save_collections
from family_budget.transactions import (
    add_transaction,
    display_order,
    new_transaction,
    remove_transaction,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppState:
    transactions: Tuple[Transaction, ...] = ()
    registry: CategoryRegistry = CategoryRegistry()

    @property
    def categories(self) -> Tuple[Category, ...]:
        return registry_ops.all_categories(self.registry)

    def history(self) -> Tuple[Transaction, ...]:
        return display_order(self.transactions)

    def totals(self) -> aggregation.Totals:
        return aggregation.totals(self.transactions)

    def budget_control(self, today: Optional[date] = None) -> List[aggregation.BudgetStatus]:
        return aggregation.budget_control(self.registry, self.transactions, today)

    def monthly_series(self) -> List[aggregation.MonthPoint]:
        return aggregation.monthly_series(self.transactions)

    def category_breakdown(self) -> List[aggregation.CategorySlice]:
        return aggregation.category_breakdown(self.registry, self.transactions)


class BudgetController:
    def __init__(
        self,
        store: KeyValueStore,
        state: Optional[AppState] = None,
        shared: bool = config.SHARED,
        bus: Optional[EventBus] = None,
    ):
        self.store = store
        self.state = state or AppState()
        self.shared = shared
        self.bus = bus or register_default_handlers(EventBus())
        self.alerts: List[dict] = []

    @classmethod
    async def load(cls, store: KeyValueStore, shared: bool = config.SHARED, **kwargs) -> "BudgetController":
        transactions, registry = await load_collections(store, shared)
        return cls(store, AppState(transactions, registry), shared=shared, **kwargs)

    async def save(self) -> bool:
        return await save_collections(
            self.store, self.state.transactions, self.state.registry, self.shared
        )

    async def _commit(self, state: AppState) -> bool:
        self.state = state
        return await self.save()

    def _budget_status(self, main_cat_id: str, today: Optional[date] = None) -> Optional[aggregation.BudgetStatus]:
        limit = registry_ops.category_limit(self.state.registry, main_cat_id)
        if not limit:
            return None
        spent = aggregation.category_spending_this_month(self.state.transactions, main_cat_id, today)
        cat = registry_ops.get_category(self.state.registry, main_cat_id)
        return aggregation.budget_status(cat, limit, spent)

    async def add_transaction(
        self,
        type: str,
        amount: Any,
        category: Optional[str] = None,
        currency: str = ARS,
        on: Optional[date] = None,
        note: str = "",
        new_category_name: Optional[str] = None,
        icon: str = registry_ops.DEFAULT_ICON,
        color: str = registry_ops.DEFAULT_COLOR,
    ) -> Optional[Transaction]:
        """Record a transaction.

        With ``new_category_name`` a main category of the same type is created
        first and the transaction is recorded against it.
        """
        parsed = parse_amount(amount)
        if parsed.is_left():
            logger.warning("Transaction rejected: %s", parsed.get_error()["message"])
            return None

        registry = self.state.registry
        try:
            if new_category_name:
                registry, created = registry_ops.add_main_category(
                    registry, new_category_name, type, icon, color
                )
                category = created.id
            t = new_transaction(
                self.state.transactions, registry, type, parsed.get_or_else(0.0),
                category or "", currency, on, note,
            )
        except ValueError as e:
            logger.warning("Transaction rejected: %s", e)
            return None

        await self._commit(AppState(add_transaction(self.state.transactions, t), registry))
        self.bus.publish(TRANSACTION_ADDED, {"transaction": t})

        if t.type == EXPENSE and t.month == aggregation.month_key(date.today()):
            status = self._budget_status(t.main_category)
            if status is not None:
                for result in self.bus.publish(BUDGET_ALERT, {"status": status}):
                    if "alert" in result:
                        logger.info(result["alert"])
                        self.alerts.append(result)
        return t

    async def remove_transaction(self, tid: int) -> bool:
        remaining = remove_transaction(self.state.transactions, tid)
        if len(remaining) == len(self.state.transactions):
            logger.warning("Transaction %s not found", tid)
            return False
        await self._commit(replace(self.state, transactions=remaining))
        self.bus.publish(TRANSACTION_REMOVED, {"id": tid})
        return True

    async def add_category(
        self,
        name: str,
        type: str = EXPENSE,
        icon: str = registry_ops.DEFAULT_ICON,
        color: str = registry_ops.DEFAULT_COLOR,
        is_image: bool = False,
    ) -> Optional[Category]:
        checked = require_text(name, "name")
        if checked.is_left():
            logger.warning("Category rejected: %s", checked.get_error()["message"])
            return None
        try:
            registry, cat = registry_ops.add_main_category(
                self.state.registry, checked.get_or_else(""), type, icon, color, is_image
            )
        except ValueError as e:
            logger.warning("Category rejected: %s", e)
            return None
        await self._commit(replace(self.state, registry=registry))
        self.bus.publish(CATEGORY_ADDED, {"category": cat})
        return cat

    async def add_subcategory(self, name: str, parent_id: str) -> Optional[Category]:
        checked = require_text(name, "name")
        if checked.is_left() or not parent_id:
            logger.warning("Subcategory rejected: name and parent are required")
            return None
        try:
            registry, cat = registry_ops.add_subcategory(
                self.state.registry, checked.get_or_else(""), parent_id
            )
        except ValueError as e:
            logger.warning("Subcategory rejected: %s", e)
            return None
        await self._commit(replace(self.state, registry=registry))
        self.bus.publish(CATEGORY_ADDED, {"category": cat})
        return cat

    async def set_limit(self, cat_id: str, limit: Any) -> bool:
        parsed = parse_limit(limit)
        if parsed.is_left() or not cat_id:
            reason = parsed.get_error()["message"] if parsed.is_left() else "category is required"
            logger.warning("Limit rejected: %s", reason)
            return False
        registry = registry_ops.set_limit(self.state.registry, cat_id, parsed.get_or_else(0.0))
        if registry is self.state.registry:
            return False
        await self._commit(replace(self.state, registry=registry))
        self.bus.publish(LIMIT_SET, {"category_id": cat_id, "limit": parsed.get_or_else(0.0)})
        return True

    async def delete_category(self, cat_id: str) -> bool:
        registry = registry_ops.delete_category(self.state.registry, cat_id, self.state.transactions)
        if registry is self.state.registry:
            return False
        await self._commit(replace(self.state, registry=registry))
        self.bus.publish(CATEGORY_DELETED, {"category_id": cat_id})
        return True
