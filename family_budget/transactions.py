import json
import time
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Tuple

from family_budget.categories import CategoryRegistry, resolve_main_category
from family_budget.domain import (
    ARS,
    CURRENCIES,
    TYPES,
    Transaction,
    transaction_from_record,
    transaction_to_record,
)


def next_transaction_id(trans: Tuple[Transaction, ...], now_ms: Optional[int] = None) -> int:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    last = max((t.id for t in trans), default=0)
    return max(stamp, last + 1)


def new_transaction(
    trans: Tuple[Transaction, ...],
    registry: CategoryRegistry,
    type: str,
    amount: float,
    category: str,
    currency: str = ARS,
    on: Optional[date] = None,
    note: str = "",
) -> Transaction:
    if type not in TYPES:
        raise ValueError(f"Unknown transaction type {type!r}")
    if currency not in CURRENCIES:
        raise ValueError(f"Unsupported currency {currency!r}")
    if amount <= 0:
        raise ValueError(f"Amount must be positive, got {amount}")
    if not category:
        raise ValueError("Category is required")

    created = datetime.now(timezone.utc)
    return Transaction(
        id=next_transaction_id(trans, int(created.timestamp() * 1000)),
        type=type,
        amount=float(amount),
        currency=currency,
        category=category,
        main_category=resolve_main_category(registry, category),
        date=on or date.today(),
        timestamp=created.isoformat().replace("+00:00", "Z"),
        note=note.strip(),
    )


def add_transaction(
    trans: Tuple[Transaction, ...], t: Transaction
) -> Tuple[Transaction, ...]:
    return trans + (t,)


def remove_transaction(
    trans: Tuple[Transaction, ...], tid: int
) -> Tuple[Transaction, ...]:
    return tuple(t for t in trans if t.id != tid)


def display_order(trans: Tuple[Transaction, ...]) -> Tuple[Transaction, ...]:
    """Newest first."""
    return tuple(reversed(trans))


def transactions_from_json(raw: Optional[str]) -> Tuple[Transaction, ...]:
    if not raw:
        return ()
    return tuple(transaction_from_record(r) for r in json.loads(raw))


def transactions_to_json(trans: Iterable[Transaction]) -> str:
    return json.dumps([transaction_to_record(t) for t in trans], ensure_ascii=False)
