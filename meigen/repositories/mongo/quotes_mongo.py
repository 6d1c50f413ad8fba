from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping, Optional

from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from meigen.domain.entities import Quote
from meigen.domain.value_objects.ids import MAX_QUOTE_ID, QuoteId

from ..errors import QuoteDeserializationError, StoreError
from ..quotes import FindOptions, QuoteStore, validate_quote

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "meigen"
DEFAULT_COLLECTION = "entries"
COUNTERS_SUFFIX = "_counters"
APP_NAME = "meigen"


@contextmanager
def _backend_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as exc:
        raise StoreError(f"MongoDB {operation} failed: {exc}", operation=operation) from exc


def _to_quote(doc: Mapping[str, Any], operation: str) -> Quote:
    try:
        return Quote.model_validate(
            {
                "id": doc.get("id"),
                "author": doc.get("author"),
                "content": doc.get("content"),
                # Documents written before likes existed have no such field.
                "loved_by": doc.get("loved_by") or [],
            }
        )
    except ValidationError as exc:
        raise QuoteDeserializationError(
            f"Invalid quote document {doc.get('_id')!r}: {exc}", operation=operation
        ) from exc


def _valid_id(quote_id: int) -> bool:
    return 1 <= quote_id <= MAX_QUOTE_ID


def _substring_pattern(text: str) -> dict[str, str]:
    return {"$regex": re.escape(text)}


class QuoteStoreMongo(QuoteStore):
    """MongoDB implementation of :class:`QuoteStore`.

    Each quote is one document ``{id, author, content, loved_by}``. The next id
    is the larger of the stored ``$max`` and a ``current_id`` high-water mark
    kept in the ``<collection>_counters`` collection, so deleting the newest
    quote never frees its id. Reading and bumping the mark is not atomic on the
    server: concurrent writers outside this process could race. Inside the process the write guard of
    :class:`~meigen.infrastructure.shared_store.SharedQuoteStore` serialises
    saves, and that is what keeps ids monotonic.
    """

    def __init__(self, collection: Collection[Any]) -> None:
        self._collection = collection
        self._counters = collection.database[collection.name + COUNTERS_SUFFIX]

    @classmethod
    def from_uri(
        cls,
        uri: str,
        database: str = DEFAULT_DATABASE,
        collection: str = DEFAULT_COLLECTION,
    ) -> "QuoteStoreMongo":
        with _backend_errors("connect"):
            client: MongoClient[Any] = MongoClient(uri, appname=APP_NAME)
        return cls(client[database][collection])

    def save(self, author: str, content: str) -> Quote:
        validate_quote(author, content)
        new_id = max(self._high_water_mark(), self.current_max_id()) + 1
        if new_id > MAX_QUOTE_ID:
            raise StoreError("Quote id space exhausted", operation="save")

        quote = Quote(id=QuoteId(new_id), author=author, content=content)
        with _backend_errors("save"):
            self._collection.insert_one(quote.to_record())
            self._counters.update_one(
                {"_id": self._collection.name}, {"$set": {"current_id": new_id}}, upsert=True
            )
        logger.info("Saved quote", extra={"quote_id": new_id, "backend": "mongodb"})
        return quote

    def load(self, quote_id: int) -> Optional[Quote]:
        if not _valid_id(quote_id):
            return None
        with _backend_errors("load"):
            doc = self._collection.find_one({"id": quote_id})
        if doc is None:
            return None
        return _to_quote(doc, "load")

    def load_many(self, quote_ids: Iterable[int]) -> list[Quote]:
        ids = sorted({i for i in quote_ids if _valid_id(i)})
        if not ids:
            return []
        with _backend_errors("load_many"):
            docs = list(self._collection.find({"id": {"$in": ids}}))
        quotes = [_to_quote(doc, "load_many") for doc in docs]
        quotes.sort(key=lambda q: q.id)
        return quotes

    def delete(self, quote_id: int) -> bool:
        if not _valid_id(quote_id):
            return False
        with _backend_errors("delete"):
            result = self._collection.delete_one({"id": quote_id})
        deleted = result.deleted_count == 1
        if deleted:
            logger.info("Deleted quote", extra={"quote_id": quote_id, "backend": "mongodb"})
        return deleted

    def count(self) -> int:
        with _backend_errors("count"):
            row = next(self._collection.aggregate([{"$count": "count"}]), None)
        if row is None:
            return 0
        return int(row["count"])

    def current_max_id(self) -> int:
        with _backend_errors("current_max_id"):
            row = next(
                self._collection.aggregate(
                    [{"$group": {"_id": None, "current_id": {"$max": "$id"}}}]
                ),
                None,
            )
        if row is None:
            return 0
        current_id = row.get("current_id")
        if current_id is None:
            return 0
        if not isinstance(current_id, int):
            raise QuoteDeserializationError(
                f"Aggregated max id is not an integer: {current_id!r}",
                operation="current_max_id",
            )
        return current_id

    def _high_water_mark(self) -> int:
        with _backend_errors("save"):
            doc = self._counters.find_one({"_id": self._collection.name})
        if doc is None:
            return 0
        current_id = doc.get("current_id", 0)
        if not isinstance(current_id, int):
            raise QuoteDeserializationError(
                f"Stored current_id is not an integer: {current_id!r}", operation="save"
            )
        return current_id

    def find(self, options: FindOptions) -> list[Quote]:
        # $limit must be positive on the server, and $skip fits in an int64;
        # no collection can hold more than MAX_QUOTE_ID quotes.
        if options.limit == 0 or options.offset >= MAX_QUOTE_ID:
            return []
        match: dict[str, Any] = {}
        if options.author is not None:
            match["author"] = _substring_pattern(options.author)
        if options.content is not None:
            match["content"] = _substring_pattern(options.content)

        pipeline: list[dict[str, Any]] = [
            {"$match": match},
            {"$sort": {"id": -1}},
            {"$skip": options.offset},
            {"$limit": min(options.limit, MAX_QUOTE_ID)},
        ]
        with _backend_errors("find"):
            docs = list(self._collection.aggregate(pipeline))
        return [_to_quote(doc, "find") for doc in docs]

    def add_lover(self, quote_id: int, user_id: int) -> bool:
        if not _valid_id(quote_id):
            return False
        with _backend_errors("add_lover"):
            result = self._collection.update_one(
                {"id": quote_id}, {"$addToSet": {"loved_by": user_id}}
            )
        return result.modified_count == 1

    def remove_lover(self, quote_id: int, user_id: int) -> bool:
        if not _valid_id(quote_id):
            return False
        with _backend_errors("remove_lover"):
            result = self._collection.update_one({"id": quote_id}, {"$pull": {"loved_by": user_id}})
        return result.modified_count == 1
