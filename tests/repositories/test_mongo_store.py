# mypy: ignore-errors

from __future__ import annotations

from typing import Any

import bson
import mongomock
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from meigen.domain.value_objects.ids import MAX_QUOTE_ID
from meigen.repositories.errors import QuoteDeserializationError, StoreError
from meigen.repositories.mongo.quotes_mongo import QuoteStoreMongo
from meigen.repositories.quotes import FindOptions


class _EncodingCollection:
    """Collection that BSON-encodes call arguments first, as the real driver does."""

    _QUERY_METHODS = {"find_one", "find", "aggregate", "insert_one", "update_one", "delete_one"}

    def __init__(self, inner: Any) -> None:
        self._inner = inner

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._inner, name)
        if name not in self._QUERY_METHODS:
            return attr

        def call(*args: Any, **kwargs: Any) -> Any:
            bson.encode({"args": list(args)})
            return attr(*args, **kwargs)

        return call


@pytest.fixture
def collection() -> Any:
    return mongomock.MongoClient()["meigen"]["entries"]


@pytest.fixture
def store(collection: Any) -> QuoteStoreMongo:
    return QuoteStoreMongo(collection)


def test_empty_collection_aggregations_return_zero(store: QuoteStoreMongo) -> None:
    assert store.count() == 0
    assert store.current_max_id() == 0
    assert store.find(FindOptions(limit=5)) == []


def test_save_uses_max_plus_one(store: QuoteStoreMongo, collection: Any) -> None:
    collection.insert_one({"id": 41, "author": "Old", "content": "imported"})
    quote = store.save("Alice", "Hello")
    assert quote.id == 42
    doc = collection.find_one({"id": 42})
    assert doc["author"] == "Alice"
    assert doc["loved_by"] == []


def test_documents_without_loved_by_are_read(store: QuoteStoreMongo, collection: Any) -> None:
    collection.insert_one({"id": 1, "author": "A", "content": "legacy"})
    quote = store.load(1)
    assert quote is not None and quote.loved_by == frozenset()


def test_find_escapes_pattern_and_sorts_desc(store: QuoteStoreMongo) -> None:
    store.save("a.b", "x")
    store.save("axb", "y")
    store.save("a.b (2)", "z")

    found = store.find(FindOptions(author="a.b", limit=10))
    assert [q.id for q in found] == [3, 1]
    assert [q.id for q in store.find(FindOptions(author="a.b", offset=1, limit=10))] == [1]
    assert [q.id for q in store.find(FindOptions(content="y", limit=10))] == [2]


def test_load_many_skips_missing(store: QuoteStoreMongo) -> None:
    for i in range(3):
        store.save("A", str(i))
    assert [q.id for q in store.load_many([3, 1, 99, 1])] == [1, 3]
    assert store.load_many([]) == []


def test_delete_reports_deleted_count(store: QuoteStoreMongo) -> None:
    store.save("A", "c")
    assert store.delete(1) is True
    assert store.delete(1) is False
    assert store.count() == 0


def test_lovers_use_set_semantics(store: QuoteStoreMongo) -> None:
    store.save("A", "c")
    assert store.add_lover(1, 5) is True
    assert store.add_lover(1, 5) is False
    assert store.add_lover(2, 5) is False
    assert store.load(1).loved_by == frozenset({5})
    assert store.remove_lover(1, 5) is True
    assert store.remove_lover(1, 5) is False


def test_malformed_document_raises(store: QuoteStoreMongo, collection: Any) -> None:
    collection.insert_one({"id": 1, "author": "A"})
    with pytest.raises(QuoteDeserializationError):
        store.load(1)


def test_driver_errors_become_store_errors(store: QuoteStoreMongo, collection: Any, monkeypatch: pytest.MonkeyPatch) -> None:
    def unreachable(*a: Any, **k: Any) -> Any:
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(collection, "aggregate", unreachable)
    with pytest.raises(StoreError) as excinfo:
        store.count()
    assert excinfo.value.operation == "count"
    with pytest.raises(StoreError):
        store.save("A", "c")


def test_ids_not_reused_after_deleting_newest(collection: Any) -> None:
    store = QuoteStoreMongo(collection)
    store.save("A", "one")
    store.save("A", "two")
    assert store.delete(2) is True
    assert store.current_max_id() == 1

    assert store.save("A", "three").id == 3
    store.delete(3)
    # The mark lives in the database, not in this instance.
    assert QuoteStoreMongo(collection).save("A", "four").id == 4


def test_counter_collection_is_kept_apart(store: QuoteStoreMongo, collection: Any) -> None:
    store.save("A", "c")
    counters = collection.database["entries_counters"]
    assert counters.find_one({"_id": "entries"})["current_id"] == 1
    assert store.count() == 1


def test_out_of_range_ids_never_reach_the_driver(collection: Any) -> None:
    store = QuoteStoreMongo(_EncodingCollection(collection))
    store.save("A", "c")
    huge = 10**20

    assert store.load(huge) is None
    assert store.load(0) is None
    assert store.load(MAX_QUOTE_ID + 1) is None
    assert [q.id for q in store.load_many([1, huge, -1])] == [1]
    assert store.delete(huge) is False
    assert store.add_lover(huge, 5) is False
    assert store.remove_lover(huge, 5) is False
    assert store.find(FindOptions(offset=huge, limit=5)) == []
    assert [q.id for q in store.find(FindOptions(limit=huge))] == [1]
    assert store.count() == 1


def test_encoding_wrapper_rejects_oversized_ints(collection: Any) -> None:
    wrapped = _EncodingCollection(collection)
    with pytest.raises(OverflowError):
        wrapped.find_one({"id": 10**20})
