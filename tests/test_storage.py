import json
import logging
from datetime import date

import httpx
import pytest

from family_budget import config
from family_budget.categories import CategoryRegistry, add_main_category, set_limit
from family_budget.domain import EXPENSE, Transaction
from family_budget.storage import (
    FirebaseStore,
    JsonFileStore,
    MemoryStore,
    StoredValue,
    load_collections,
    make_store,
    save_collections,
)


def make_tx(id, category="comida", amount=100.0):
    return Transaction(id, EXPENSE, amount, "ARS", category, category, date(2025, 1, 5), "2025-01-05T10:00:00Z")


class FailingStore:
    def __init__(self, fail_get=True, fail_set=True):
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.inner = MemoryStore()

    async def get(self, key, shared=True):
        if self.fail_get:
            raise OSError("storage unavailable")
        return await self.inner.get(key, shared)

    async def set(self, key, value, shared=True):
        if self.fail_set and key == config.TRANSACTIONS_KEY:
            raise OSError("disk full")
        await self.inner.set(key, value, shared)


@pytest.mark.asyncio
async def test_memory_store_namespaces():
    store = MemoryStore(user="ana")
    await store.set("k", "shared-value", True)
    await store.set("k", "private-value", False)
    assert await store.get("k", True) == StoredValue("shared-value")
    assert await store.get("k", False) == StoredValue("private-value")
    assert (await store.get("missing")).value is None


@pytest.mark.asyncio
async def test_json_file_store(tmp_path):
    store = JsonFileStore(tmp_path, user="ana")
    assert (await store.get("transactions")).value is None

    await store.set("transactions", "[1, 2]")
    await store.set("transactions", "[3]", shared=False)

    assert (tmp_path / "shared" / "transactions.json").read_text(encoding="utf-8") == "[1, 2]"
    assert (await store.get("transactions", shared=False)).value == "[3]"
    assert store.path_for("x", shared=False) == tmp_path / "users" / "ana" / "x.json"


def firebase_client(data, status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        if status != 200:
            return httpx.Response(status)
        data.setdefault("_params", []).append(dict(request.url.params))
        if request.method == "PUT":
            data[request.url.path] = json.loads(request.content)
            return httpx.Response(200, json=data[request.url.path])
        return httpx.Response(200, json=data.get(request.url.path))

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_firebase_store_put_and_get():
    data = {}
    store = FirebaseStore(
        "https://example.firebaseio.com/", prefix="budget", auth_token="secret",
        user="ana", client=firebase_client(data),
    )
    assert store.url_for("transactions") == "https://example.firebaseio.com/budget/shared/transactions.json"
    assert store.url_for("transactions", shared=False).endswith("/budget/users/ana/transactions.json")

    assert (await store.get("transactions")).value is None
    await store.set("transactions", '[{"id": 1}]')
    assert data["/budget/shared/transactions.json"] == '[{"id": 1}]'
    assert (await store.get("transactions")).value == '[{"id": 1}]'
    assert all(p == {"auth": "secret"} for p in data["_params"])


@pytest.mark.asyncio
async def test_firebase_store_accepts_raw_json_values():
    data = {"/budget/shared/custom-categories.json": [{"id": "comida", "limit": 10}]}
    store = FirebaseStore("https://example.firebaseio.com", prefix="budget", auth_token="", client=firebase_client(data))
    raw = (await store.get("custom-categories")).value
    assert json.loads(raw) == [{"id": "comida", "limit": 10}]
    assert data["_params"] == [{}]


@pytest.mark.asyncio
async def test_firebase_store_http_error_raises():
    store = FirebaseStore("https://example.firebaseio.com", client=firebase_client({}, status=500))
    with pytest.raises(httpx.HTTPStatusError):
        await store.get("transactions")


def test_firebase_store_requires_url():
    with pytest.raises(ValueError):
        FirebaseStore("")


def test_make_store():
    assert isinstance(make_store("memory"), MemoryStore)
    with pytest.raises(ValueError):
        make_store("redis")


@pytest.mark.asyncio
async def test_save_then_load_collections():
    store = MemoryStore()
    registry, cat = add_main_category(CategoryRegistry(), "Mascotas", EXPENSE)
    registry = set_limit(registry, "comida", 5000)
    trans = (make_tx(1), make_tx(2, cat.id))

    assert await save_collections(store, trans, registry) is True
    loaded_trans, loaded_registry = await load_collections(store)

    assert loaded_trans == trans
    assert loaded_registry == registry


@pytest.mark.asyncio
async def test_load_collections_empty_store():
    trans, registry = await load_collections(MemoryStore())
    assert trans == ()
    assert registry == CategoryRegistry()


@pytest.mark.asyncio
async def test_load_collections_read_failure_starts_empty(caplog):
    with caplog.at_level(logging.WARNING):
        trans, registry = await load_collections(FailingStore())
    assert trans == ()
    assert registry == CategoryRegistry()
    assert "Could not read" in caplog.text


@pytest.mark.asyncio
async def test_load_collections_malformed_json_is_ignored():
    store = MemoryStore()
    await store.set(config.TRANSACTIONS_KEY, "{not json")
    await store.set(config.CATEGORIES_KEY, json.dumps([{"id": "comida", "limit": 300}]))
    trans, registry = await load_collections(store)
    assert trans == ()
    assert registry.overrides[0].limit == 300


@pytest.mark.asyncio
async def test_save_collections_failure_is_logged_not_raised(caplog):
    store = FailingStore(fail_get=False)
    with caplog.at_level(logging.ERROR):
        ok = await save_collections(store, (make_tx(1),), CategoryRegistry())
    assert ok is False
    assert "Error saving transactions" in caplog.text
    # the other key was still written
    assert (await store.inner.get(config.CATEGORIES_KEY)).value == "[]"
