from dataclasses import dataclass
from datetime import date
from typing import Optional

INCOME = "income"
EXPENSE = "expense"
TYPES = (INCOME, EXPENSE)

ARS = "ARS"
USD = "USD"
CURRENCIES = (ARS, USD)


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    icon: str
    color: str
    type: str                        # income | expense
    is_default: bool = False
    is_image: bool = False           # icon is a data URL
    parent_id: Optional[str] = None  # None for main categories
    limit: Optional[float] = None    # monthly cap, expense main categories

    @property
    def is_main(self) -> bool:
        return self.parent_id is None


# Limit set on a built-in category
@dataclass(frozen=True)
class CategoryOverride:
    category_id: str
    limit: float


@dataclass(frozen=True)
class Transaction:
    id: int           # ms since epoch at creation
    type: str
    amount: float     # always positive
    currency: str
    category: str     # main or sub category id
    main_category: str
    date: date
    timestamp: str    # ISO creation instant
    note: str = ""

    @property
    def month(self) -> str:
        return self.date.strftime("%Y-%m")


def category_from_record(rec: dict) -> Category:
    limit = rec.get("limit")
    return Category(
        id=str(rec["id"]),
        name=rec.get("name", ""),
        icon=rec.get("icon", "📌"),
        color=rec.get("color", "#95A5A6"),
        type=rec.get("type", EXPENSE),
        is_default=bool(rec.get("isDefault", False)),
        is_image=bool(rec.get("isImage", False)),
        parent_id=rec.get("parentId") or None,
        limit=float(limit) if limit else None,
    )


def category_to_record(c: Category) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "icon": c.icon,
        "color": c.color,
        "type": c.type,
        "isDefault": c.is_default,
        "isImage": c.is_image,
        "parentId": c.parent_id,
        "limit": c.limit,
    }


def override_to_record(o: CategoryOverride) -> dict:
    return {"id": o.category_id, "limit": o.limit}


def transaction_from_record(rec: dict) -> Transaction:
    category = str(rec["category"])
    return Transaction(
        id=int(rec["id"]),
        type=rec["type"],
        amount=float(rec["amount"]),
        currency=rec.get("currency", ARS),
        category=category,
        main_category=str(rec.get("mainCategory") or category),
        date=date.fromisoformat(str(rec["date"])[:10]),
        timestamp=rec.get("timestamp", ""),
        note=rec.get("note") or "",
    )


def transaction_to_record(t: Transaction) -> dict:
    return {
        "id": t.id,
        "type": t.type,
        "amount": t.amount,
        "currency": t.currency,
        "category": t.category,
        "mainCategory": t.main_category,
        "note": t.note,
        "date": t.date.isoformat(),
        "timestamp": t.timestamp,
    }
