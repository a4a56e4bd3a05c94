"""Category registry: built-in categories merged with user-defined ones.

Built-ins are immutable. A monthly limit set on a built-in is kept as a sparse
``CategoryOverride`` instead of copying the whole category into the custom
collection, so built-ins never become deletable.
"""

import logging
import math
import time
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple

from family_budget.domain import (
    EXPENSE,
    INCOME,
    TYPES,
    Category,
    CategoryOverride,
    Transaction,
    category_from_record,
    category_to_record,
    override_to_record,
)
from family_budget.functional import Either, Left, Maybe, Nothing, Right, Some

logger = logging.getLogger(__name__)


def _builtin(id: str, name: str, icon: str, color: str, type: str) -> Category:
    return Category(id=id, name=name, icon=icon, color=color, type=type, is_default=True)


DEFAULT_CATEGORIES: Tuple[Category, ...] = (
    _builtin("comida", "Comida", "🍔", "#FF6B6B", EXPENSE),
    _builtin("salud", "Salud", "🏥", "#4ECDC4", EXPENSE),
    _builtin("auto", "Auto", "🚗", "#45B7D1", EXPENSE),
    _builtin("impuestos", "Impuestos", "📋", "#96CEB4", EXPENSE),
    _builtin("luz", "Luz", "💡", "#FFEAA7", EXPENSE),
    _builtin("agua", "Agua", "💧", "#74B9FF", EXPENSE),
    _builtin("gas", "Gas", "🔥", "#FD79A8", EXPENSE),
    _builtin("mejoras", "Mejoras del hogar", "🏠", "#A29BFE", EXPENSE),
    _builtin("educacion", "Educación", "📚", "#6C5CE7", EXPENSE),
    _builtin("entretenimiento", "Entretenimiento", "🎮", "#FD79A8", EXPENSE),
    _builtin("salario", "Salario", "💼", "#00B894", INCOME),
    _builtin("freelance", "Freelance", "💻", "#00CEC9", INCOME),
    _builtin("inversion", "Inversión", "📈", "#0984E3", INCOME),
)

_DEFAULT_IDS = frozenset(c.id for c in DEFAULT_CATEGORIES)

UNKNOWN_CATEGORY = Category(
    id="", name="Sin categoría", icon="❓", color="#95A5A6", type=EXPENSE
)

DEFAULT_ICON = "📌"
DEFAULT_COLOR = "#95A5A6"


@dataclass(frozen=True)
class CategoryRegistry:
    custom: Tuple[Category, ...] = ()
    overrides: Tuple[CategoryOverride, ...] = ()


def is_builtin(cat_id: str) -> bool:
    return cat_id in _DEFAULT_IDS


def _override_for(registry: CategoryRegistry, cat_id: str) -> Optional[CategoryOverride]:
    return next((o for o in registry.overrides if o.category_id == cat_id), None)


def all_categories(registry: CategoryRegistry) -> Tuple[Category, ...]:
    """Built-ins (with their override limits applied) followed by custom categories."""
    limits = {o.category_id: o.limit for o in registry.overrides}
    defaults = tuple(
        replace(c, limit=limits[c.id]) if c.id in limits else c for c in DEFAULT_CATEGORIES
    )
    return defaults + registry.custom


def find_category(registry: CategoryRegistry, cat_id: str) -> Maybe[Category]:
    for cat in all_categories(registry):
        if cat.id == cat_id:
            return Some(cat)
    return Nothing()


def get_category(registry: CategoryRegistry, cat_id: str) -> Category:
    return find_category(registry, cat_id).get_or_else(replace(UNKNOWN_CATEGORY, id=cat_id))


def main_categories(registry: CategoryRegistry, type: str) -> Tuple[Category, ...]:
    return tuple(c for c in all_categories(registry) if c.type == type and c.is_main)


def subcategories(registry: CategoryRegistry, parent_id: str) -> Tuple[Category, ...]:
    return tuple(c for c in all_categories(registry) if c.parent_id == parent_id)


def resolve_main_category(registry: CategoryRegistry, cat_id: str) -> str:
    """Id of the top-level ancestor of ``cat_id`` (itself for main categories)."""
    return get_category(registry, cat_id).parent_id or cat_id


def category_limit(registry: CategoryRegistry, cat_id: str) -> Optional[float]:
    override = _override_for(registry, cat_id)
    if override is not None:
        return override.limit
    cat = find_category(registry, cat_id).get_or_else(None)
    if cat is None or not cat.is_main:
        return None
    return cat.limit


def new_category_id(prefix: str, registry: CategoryRegistry) -> str:
    taken = {c.id for c in registry.custom}
    stamp = int(time.time() * 1000)
    while f"{prefix}-{stamp}" in taken:
        stamp += 1
    return f"{prefix}-{stamp}"


def make_main_category(
    cat_id: str, name: str, type: str, icon: str = DEFAULT_ICON, color: str = DEFAULT_COLOR, is_image: bool = False
) -> Category:
    if type not in TYPES:
        raise ValueError(f"Unknown category type {type!r}")
    if not name.strip():
        raise ValueError("Category name is required")
    return Category(
        id=cat_id, name=name.strip(), icon=icon, color=color, type=type, is_image=is_image
    )


def make_subcategory(cat_id: str, name: str, parent: Category) -> Category:
    """Subcategories copy icon, color and type from their parent."""
    if not parent.is_main:
        raise ValueError(f"Category {parent.id} is a subcategory and cannot have children")
    if not name.strip():
        raise ValueError("Subcategory name is required")
    return Category(
        id=cat_id,
        name=name.strip(),
        icon=parent.icon,
        color=parent.color,
        type=parent.type,
        is_image=parent.is_image,
        parent_id=parent.id,
    )


def add_main_category(
    registry: CategoryRegistry,
    name: str,
    type: str,
    icon: str = DEFAULT_ICON,
    color: str = DEFAULT_COLOR,
    is_image: bool = False,
) -> Tuple[CategoryRegistry, Category]:
    cat = make_main_category(new_category_id("custom", registry), name, type, icon, color, is_image)
    return replace(registry, custom=registry.custom + (cat,)), cat


def add_subcategory(
    registry: CategoryRegistry, name: str, parent_id: str
) -> Tuple[CategoryRegistry, Category]:
    parent = find_category(registry, parent_id).get_or_else(None)
    if parent is None:
        raise ValueError(f"Parent category {parent_id} does not exist")
    cat = make_subcategory(new_category_id("sub", registry), name, parent)
    return replace(registry, custom=registry.custom + (cat,)), cat


def set_limit(registry: CategoryRegistry, cat_id: str, limit: float) -> CategoryRegistry:
    """Set the monthly limit of a main category. A limit of 0 clears it."""
    if math.isnan(limit) or limit < 0:
        raise ValueError(f"Invalid limit {limit!r}")
    value = limit or None

    if is_builtin(cat_id):
        rest = tuple(o for o in registry.overrides if o.category_id != cat_id)
        if value is None:
            return replace(registry, overrides=rest)
        return replace(registry, overrides=rest + (CategoryOverride(cat_id, value),))

    target = next((c for c in registry.custom if c.id == cat_id), None)
    if target is None or not target.is_main:
        logger.warning("Limit not set: %s is not a main category", cat_id)
        return registry
    return replace(
        registry,
        custom=tuple(replace(c, limit=value) if c.id == cat_id else c for c in registry.custom),
    )


def check_deletable(
    registry: CategoryRegistry, cat_id: str, transactions: Iterable[Transaction]
) -> Either[dict, Category]:
    if is_builtin(cat_id):
        return Left({
            "error": "default_category",
            "message": f"Category {cat_id} is built-in and cannot be deleted",
            "category_id": cat_id,
        })

    target = next((c for c in registry.custom if c.id == cat_id), None)
    if target is None:
        return Left({
            "error": "category_not_found",
            "message": f"Category with ID {cat_id} does not exist",
            "category_id": cat_id,
        })

    if any(t.category == cat_id or t.main_category == cat_id for t in transactions):
        return Left({
            "error": "has_transactions",
            "message": f"Category {target.name} has transactions",
            "category_id": cat_id,
        })

    if subcategories(registry, cat_id):
        return Left({
            "error": "has_subcategories",
            "message": f"Category {target.name} has subcategories",
            "category_id": cat_id,
        })

    return Right(target)


def can_delete_category(
    registry: CategoryRegistry, cat_id: str, transactions: Iterable[Transaction]
) -> bool:
    return check_deletable(registry, cat_id, transactions).is_right()


def delete_category(
    registry: CategoryRegistry, cat_id: str, transactions: Iterable[Transaction]
) -> CategoryRegistry:
    """Remove a custom category; rejected (and logged) when anything depends on it."""
    result = check_deletable(registry, cat_id, transactions)
    if result.is_left():
        logger.error("Cannot delete category: %s", result.get_error()["message"])
        return registry
    return replace(registry, custom=tuple(c for c in registry.custom if c.id != cat_id))


def registry_from_records(records: Iterable[dict]) -> CategoryRegistry:
    """Rebuild the registry from the stored ``custom-categories`` array.

    Records whose id is a built-in are overrides, whether written sparse
    (``{"id", "limit"}``) or as a full copy of the built-in.
    """
    custom = []
    overrides = {}
    for rec in records:
        cat_id = str(rec.get("id", ""))
        if not cat_id:
            continue
        if is_builtin(cat_id):
            if rec.get("limit"):
                overrides[cat_id] = CategoryOverride(cat_id, float(rec["limit"]))
            continue
        custom.append(category_from_record(rec))
    return CategoryRegistry(custom=tuple(custom), overrides=tuple(overrides.values()))


def registry_to_records(registry: CategoryRegistry) -> list:
    return [category_to_record(c) for c in registry.custom] + [
        override_to_record(o) for o in registry.overrides
    ]
