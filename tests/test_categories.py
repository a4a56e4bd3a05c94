from datetime import date

import pytest

from family_budget.categories import (
    DEFAULT_CATEGORIES,
    CategoryRegistry,
    add_main_category,
    add_subcategory,
    all_categories,
    can_delete_category,
    category_limit,
    check_deletable,
    delete_category,
    find_category,
    get_category,
    main_categories,
    registry_from_records,
    registry_to_records,
    resolve_main_category,
    set_limit,
    subcategories,
)
from family_budget.domain import EXPENSE, INCOME, Category, CategoryOverride, Transaction


def make_tx(id, category, main=None, type=EXPENSE, amount=100.0):
    return Transaction(id, type, amount, "ARS", category, main or category, date(2025, 1, 10), "")


def test_all_categories_starts_with_builtins():
    cats = all_categories(CategoryRegistry())
    assert cats == DEFAULT_CATEGORIES
    assert all(c.is_default and c.limit is None for c in cats)


def test_main_categories_filters_by_type():
    registry = CategoryRegistry()
    incomes = main_categories(registry, INCOME)
    assert {c.id for c in incomes} == {"salario", "freelance", "inversion"}
    assert all(c.type == EXPENSE for c in main_categories(registry, EXPENSE))


def test_get_category_unknown_falls_back_to_placeholder():
    cat = get_category(CategoryRegistry(), "nope")
    assert cat.name == "Sin categoría"
    assert cat.icon == "❓"
    assert cat.id == "nope"
    assert find_category(CategoryRegistry(), "nope").is_none()


def test_add_main_category():
    registry, cat = add_main_category(CategoryRegistry(), "Mascotas", EXPENSE, "🐶", "#123456")
    assert cat.id.startswith("custom-")
    assert cat.parent_id is None
    assert cat.is_default is False
    assert cat in all_categories(registry)
    assert cat in main_categories(registry, EXPENSE)


def test_add_main_category_rejects_blank_name_and_bad_type():
    with pytest.raises(ValueError):
        add_main_category(CategoryRegistry(), "   ", EXPENSE)
    with pytest.raises(ValueError):
        add_main_category(CategoryRegistry(), "X", "transfer")


def test_add_subcategory_copies_parent_attributes():
    registry, sub = add_subcategory(CategoryRegistry(), "Supermercado", "comida")
    assert sub.id.startswith("sub-")
    assert sub.parent_id == "comida"
    assert sub.type == EXPENSE
    assert sub.icon == "🍔"
    assert sub.color == "#FF6B6B"
    assert subcategories(registry, "comida") == (sub,)


def test_subcategory_type_follows_income_parent():
    _, sub = add_subcategory(CategoryRegistry(), "Aguinaldo", "salario")
    assert sub.type == INCOME


def test_add_subcategory_rejects_unknown_or_nested_parent():
    registry, sub = add_subcategory(CategoryRegistry(), "Supermercado", "comida")
    with pytest.raises(ValueError):
        add_subcategory(registry, "Frutas", sub.id)
    with pytest.raises(ValueError):
        add_subcategory(registry, "Frutas", "missing")


def test_subcategory_resolves_to_main_category():
    registry, sub = add_subcategory(CategoryRegistry(), "Supermercado", "comida")
    main_id = resolve_main_category(registry, sub.id)
    assert main_id == "comida"
    assert get_category(registry, main_id).parent_id is None
    assert resolve_main_category(registry, "comida") == "comida"


def test_set_limit_on_builtin_uses_override():
    registry = set_limit(CategoryRegistry(), "comida", 5000)
    assert category_limit(registry, "comida") == 5000
    assert registry.custom == ()
    comida = get_category(registry, "comida")
    assert comida.limit == 5000
    assert comida.is_default is True
    # no duplicate entry
    assert [c.id for c in all_categories(registry)].count("comida") == 1


def test_set_limit_updates_existing_override():
    registry = set_limit(set_limit(CategoryRegistry(), "comida", 5000), "comida", 7000)
    assert registry.overrides == (CategoryOverride("comida", 7000),)


def test_set_limit_zero_clears_it():
    registry = set_limit(CategoryRegistry(), "comida", 5000)
    registry = set_limit(registry, "comida", 0)
    assert category_limit(registry, "comida") is None


def test_set_limit_on_custom_main_category():
    registry, cat = add_main_category(CategoryRegistry(), "Mascotas", EXPENSE)
    registry = set_limit(registry, cat.id, 1200)
    assert category_limit(registry, cat.id) == 1200


def test_set_limit_on_subcategory_is_ignored():
    registry, sub = add_subcategory(CategoryRegistry(), "Supermercado", "comida")
    assert set_limit(registry, sub.id, 100) is registry
    assert category_limit(registry, sub.id) is None


def test_set_limit_rejects_negative_and_nan():
    with pytest.raises(ValueError):
        set_limit(CategoryRegistry(), "comida", -1)
    with pytest.raises(ValueError):
        set_limit(CategoryRegistry(), "comida", float("nan"))


def test_builtin_category_cannot_be_deleted_even_with_limit():
    registry = set_limit(CategoryRegistry(), "comida", 5000)
    assert delete_category(registry, "comida", ()) is registry
    assert check_deletable(registry, "comida", ()).get_error()["error"] == "default_category"


def test_delete_custom_category_without_dependents():
    registry, cat = add_main_category(CategoryRegistry(), "Mascotas", EXPENSE)
    assert can_delete_category(registry, cat.id, ())
    registry = delete_category(registry, cat.id, ())
    assert cat not in all_categories(registry)
    assert cat not in main_categories(registry, EXPENSE)
    assert find_category(registry, cat.id).is_none()


def test_delete_rejected_with_transactions():
    registry, cat = add_main_category(CategoryRegistry(), "Mascotas", EXPENSE)
    trans = (make_tx(1, cat.id),)
    assert delete_category(registry, cat.id, trans) is registry
    assert check_deletable(registry, cat.id, trans).get_error()["error"] == "has_transactions"


def test_delete_rejected_when_subcategory_transactions_reference_main():
    registry, cat = add_main_category(CategoryRegistry(), "Mascotas", EXPENSE)
    registry, sub = add_subcategory(registry, "Veterinario", cat.id)
    trans = (make_tx(1, sub.id, cat.id),)
    assert not can_delete_category(registry, sub.id, trans)
    assert not can_delete_category(registry, cat.id, trans)


def test_delete_rejected_with_subcategories():
    registry, cat = add_main_category(CategoryRegistry(), "Mascotas", EXPENSE)
    registry, sub = add_subcategory(registry, "Veterinario", cat.id)
    assert check_deletable(registry, cat.id, ()).get_error()["error"] == "has_subcategories"
    registry = delete_category(registry, sub.id, ())
    assert can_delete_category(registry, cat.id, ())


def test_registry_records_round_trip_keeps_overrides_sparse():
    registry, cat = add_main_category(CategoryRegistry(), "Mascotas", EXPENSE)
    registry = set_limit(registry, "comida", 5000)
    records = registry_to_records(registry)
    assert {"id": "comida", "limit": 5000} in records
    assert registry_from_records(records) == registry


def test_registry_from_legacy_materialized_default():
    legacy = {
        "id": "salud", "name": "Salud", "icon": "🏥", "color": "#4ECDC4",
        "type": "expense", "isDefault": False, "parentId": None, "limit": 3000,
    }
    registry = registry_from_records([legacy])
    assert registry.custom == ()
    assert category_limit(registry, "salud") == 3000
    assert get_category(registry, "salud").is_default is True


def test_registry_from_records_reads_custom_fields():
    rec = {
        "id": "sub-1", "name": "Super", "icon": "🍔", "color": "#FF6B6B",
        "type": "expense", "isDefault": False, "isImage": False, "parentId": "comida", "limit": None,
    }
    registry = registry_from_records([rec])
    assert registry.custom == (
        Category("sub-1", "Super", "🍔", "#FF6B6B", "expense", parent_id="comida"),
    )
