"""Pure aggregations over the transaction store and category registry.

Every sum goes through ``normalized_amount``: USD amounts are converted to ARS
with the fixed ``USD_TO_ARS`` factor from config. There is no live rate.
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from family_budget import config
from family_budget.categories import (
    CategoryRegistry,
    category_limit,
    get_category,
    main_categories,
)
from family_budget.domain import EXPENSE, INCOME, USD, Category, Transaction


@dataclass(frozen=True)
class Totals:
    total_income: float
    total_expense: float
    balance: float


@dataclass(frozen=True)
class BudgetStatus:
    category: Category
    limit: float
    spent: float
    remaining: float     # negative when over budget
    percentage: float    # capped to [0, 100]

    @property
    def level(self) -> str:
        if self.percentage >= 90:
            return "danger"
        if self.percentage >= 70:
            return "warning"
        return "ok"

    @property
    def over_budget(self) -> bool:
        return self.remaining < 0


@dataclass(frozen=True)
class MonthPoint:
    month: str
    income: float
    expense: float


@dataclass(frozen=True)
class CategorySlice:
    category_id: str
    name: str
    value: float
    color: str
    icon: str
    is_image: bool = False


def normalized_amount(t: Transaction, rate: Optional[float] = None) -> float:
    factor = config.USD_TO_ARS if rate is None else rate
    return t.amount * factor if t.currency == USD else t.amount


def month_key(d: date) -> str:
    return d.strftime("%Y-%m")


def by_type(type: str) -> Callable[[Transaction], bool]:
    def _filter(t: Transaction) -> bool:
        return t.type == type

    return _filter


def by_month(month: str) -> Callable[[Transaction], bool]:
    def _filter(t: Transaction) -> bool:
        return t.month == month

    return _filter


def by_main_category(cat_id: str) -> Callable[[Transaction], bool]:
    def _filter(t: Transaction) -> bool:
        return t.main_category == cat_id

    return _filter


def totals(trans: Iterable[Transaction], rate: Optional[float] = None) -> Totals:
    income = 0.0
    expense = 0.0
    for t in trans:
        if t.type == INCOME:
            income += normalized_amount(t, rate)
        else:
            expense += normalized_amount(t, rate)
    return Totals(total_income=income, total_expense=expense, balance=income - expense)


def category_spending_this_month(
    trans: Iterable[Transaction],
    main_cat_id: str,
    today: Optional[date] = None,
    rate: Optional[float] = None,
) -> float:
    current = month_key(today or date.today())
    preds = (by_type(EXPENSE), by_month(current), by_main_category(main_cat_id))
    return sum(
        normalized_amount(t, rate) for t in trans if all(p(t) for p in preds)
    )


def budget_status(category: Category, limit: float, spent: float) -> BudgetStatus:
    percentage = spent * 100 / limit
    return BudgetStatus(
        category=category,
        limit=limit,
        spent=spent,
        remaining=limit - spent,
        percentage=max(0.0, min(percentage, 100.0)),
    )


def budget_control(
    registry: CategoryRegistry,
    trans: Tuple[Transaction, ...],
    today: Optional[date] = None,
    rate: Optional[float] = None,
) -> List[BudgetStatus]:
    """Current-month spend vs. limit for every expense main category with a limit.

    Sorted ascending by percentage.
    """
    rows = []
    for cat in main_categories(registry, EXPENSE):
        limit = category_limit(registry, cat.id)
        if limit is None or limit <= 0:
            continue
        spent = category_spending_this_month(trans, cat.id, today, rate)
        rows.append(budget_status(cat, limit, spent))
    return sorted(rows, key=lambda row: row.percentage)


def monthly_series(
    trans: Iterable[Transaction],
    points: int = config.MONTHLY_POINTS,
    rate: Optional[float] = None,
) -> List[MonthPoint]:
    income: Dict[str, float] = defaultdict(float)
    expense: Dict[str, float] = defaultdict(float)
    months = set()

    for t in trans:
        months.add(t.month)
        if t.type == INCOME:
            income[t.month] += normalized_amount(t, rate)
        else:
            expense[t.month] += normalized_amount(t, rate)

    ordered = sorted(months)[-points:] if points > 0 else []
    return [MonthPoint(m, income[m], expense[m]) for m in ordered]


def category_breakdown(
    registry: CategoryRegistry,
    trans: Iterable[Transaction],
    rate: Optional[float] = None,
) -> List[CategorySlice]:
    """Expense totals per main category, largest first."""
    values: Dict[str, float] = defaultdict(float)
    for t in filter(by_type(EXPENSE), trans):
        values[t.main_category] += normalized_amount(t, rate)

    slices = []
    for cat_id, value in values.items():
        cat = get_category(registry, cat_id)
        slices.append(CategorySlice(cat_id, cat.name, value, cat.color, cat.icon, cat.is_image))
    return sorted(slices, key=lambda s: s.value, reverse=True)


async def expenses_by_month(
    trans: Iterable[Transaction], months: Iterable[str], rate: Optional[float] = None
) -> Dict[str, float]:
    """Total normalized expenses for each YYYY-MM month, computed concurrently."""
    snapshot = tuple(trans)

    async def month_total(month: str) -> Tuple[str, float]:
        total = sum(
            normalized_amount(t, rate)
            for t in snapshot
            if t.type == EXPENSE and t.month == month
        )
        await asyncio.sleep(0)
        return month, total

    results = await asyncio.gather(*(month_total(m) for m in months))
    return dict(results)
