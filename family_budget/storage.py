"""Key-value persistence for the two collections.

A store maps a key to one serialized JSON string. ``shared`` selects the family
namespace (visible to every user) or the current user's private namespace.
Transactions and custom categories live under two independent keys; they are
read together at startup and written together after every mutation.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, NamedTuple, Optional, Protocol, Tuple

import httpx

from family_budget import config
from family_budget.categories import CategoryRegistry, registry_from_records, registry_to_records
from family_budget.domain import Transaction
from family_budget.transactions import transactions_from_json, transactions_to_json

logger = logging.getLogger(__name__)


class StoredValue(NamedTuple):
    value: Optional[str]


class KeyValueStore(Protocol):
    async def get(self, key: str, shared: bool = True) -> StoredValue:
        ...

    async def set(self, key: str, value: str, shared: bool = True) -> None:
        ...


class MemoryStore:
    def __init__(self, user: str = config.USER_ID):
        self.user = user
        self._data: Dict[Tuple[str, str], str] = {}

    def _scope(self, shared: bool) -> str:
        return "shared" if shared else self.user

    async def get(self, key: str, shared: bool = True) -> StoredValue:
        return StoredValue(self._data.get((self._scope(shared), key)))

    async def set(self, key: str, value: str, shared: bool = True) -> None:
        self._data[(self._scope(shared), key)] = value


class JsonFileStore:
    """One ``<key>.json`` file per key under ``shared/`` or ``users/<user>/``."""

    def __init__(self, root: Optional[Path] = None, user: str = config.USER_ID):
        self.root = Path(root or config.DATA_DIR)
        self.user = user

    def path_for(self, key: str, shared: bool = True) -> Path:
        base = self.root / "shared" if shared else self.root / "users" / self.user
        return base / f"{key}.json"

    def _read(self, path: Path) -> Optional[str]:
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as handle:
            return handle.read()

    def _write(self, path: Path, value: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            handle.write(value)
        tmp.replace(path)

    async def get(self, key: str, shared: bool = True) -> StoredValue:
        return StoredValue(await asyncio.to_thread(self._read, self.path_for(key, shared)))

    async def set(self, key: str, value: str, shared: bool = True) -> None:
        await asyncio.to_thread(self._write, self.path_for(key, shared), value)


class FirebaseStore:
    """Firebase Realtime Database over its REST API.

    Values are stored as JSON strings at ``{database_url}/{prefix}/{scope}/{key}.json``.
    """

    def __init__(
        self,
        database_url: str,
        prefix: str = config.FIREBASE_PREFIX,
        auth_token: str = config.FIREBASE_AUTH_TOKEN,
        user: str = config.USER_ID,
        timeout: float = config.FIREBASE_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not database_url:
            raise ValueError("FIREBASE_DATABASE_URL is not configured")
        self.database_url = database_url.rstrip("/")
        self.prefix = prefix.strip("/")
        self.auth_token = auth_token
        self.user = user
        self.timeout = timeout
        self._client = client

    def url_for(self, key: str, shared: bool = True) -> str:
        scope = "shared" if shared else f"users/{self.user}"
        return f"{self.database_url}/{self.prefix}/{scope}/{key}.json"

    def _params(self) -> dict:
        return {"auth": self.auth_token} if self.auth_token else {}

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._client is not None:
            response = await self._client.request(method, url, params=self._params(), **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, params=self._params(), **kwargs)
        response.raise_for_status()
        return response

    async def get(self, key: str, shared: bool = True) -> StoredValue:
        response = await self._request("GET", self.url_for(key, shared))
        data = response.json()
        if data is None:
            return StoredValue(None)
        # written by another client as a raw array/object
        if not isinstance(data, str):
            data = json.dumps(data, ensure_ascii=False)
        return StoredValue(data)

    async def set(self, key: str, value: str, shared: bool = True) -> None:
        await self._request("PUT", self.url_for(key, shared), json=value)


def make_store(backend: Optional[str] = None) -> KeyValueStore:
    kind = (backend or config.STORAGE_BACKEND).lower()
    if kind == "memory":
        return MemoryStore()
    if kind == "file":
        return JsonFileStore(config.ensure_data_dir())
    if kind == "firebase":
        return FirebaseStore(config.FIREBASE_CONFIG["database_url"])
    raise ValueError(f"Unknown storage backend {backend!r}")


async def load_collections(
    store: KeyValueStore, shared: bool = config.SHARED
) -> Tuple[Tuple[Transaction, ...], CategoryRegistry]:
    """Read both keys concurrently. Any failure leaves that collection empty."""
    trans_result, cat_result = await asyncio.gather(
        store.get(config.TRANSACTIONS_KEY, shared),
        store.get(config.CATEGORIES_KEY, shared),
        return_exceptions=True,
    )

    transactions: Tuple[Transaction, ...] = ()
    registry = CategoryRegistry()

    if isinstance(trans_result, BaseException):
        logger.warning("Could not read %s, starting empty: %s", config.TRANSACTIONS_KEY, trans_result)
    else:
        try:
            transactions = transactions_from_json(trans_result.value)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Stored %s are unreadable, starting empty: %s", config.TRANSACTIONS_KEY, e)

    if isinstance(cat_result, BaseException):
        logger.warning("Could not read %s, starting empty: %s", config.CATEGORIES_KEY, cat_result)
    elif cat_result.value:
        try:
            registry = registry_from_records(json.loads(cat_result.value))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Stored %s are unreadable, starting empty: %s", config.CATEGORIES_KEY, e)

    logger.info("Loaded %d transactions and %d custom categories", len(transactions), len(registry.custom))
    return transactions, registry


async def save_collections(
    store: KeyValueStore,
    transactions: Tuple[Transaction, ...],
    registry: CategoryRegistry,
    shared: bool = config.SHARED,
) -> bool:
    """Write both keys concurrently. Failures are logged, never raised."""
    results = await asyncio.gather(
        store.set(config.TRANSACTIONS_KEY, transactions_to_json(transactions), shared),
        store.set(config.CATEGORIES_KEY, json.dumps(registry_to_records(registry), ensure_ascii=False), shared),
        return_exceptions=True,
    )
    ok = True
    for key, result in zip((config.TRANSACTIONS_KEY, config.CATEGORIES_KEY), results):
        if isinstance(result, BaseException):
            ok = False
            logger.error("Error saving %s", key, exc_info=result)
    return ok
