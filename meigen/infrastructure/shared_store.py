from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from meigen.domain.entities import Quote
from meigen.repositories.quotes import FindOptions, QuoteStore

from .rwlock import ReadWriteLock


class QuoteReader:
    """Read-only view of a store, handed out under a read guard."""

    def __init__(self, store: QuoteStore) -> None:
        self._store = store

    def load(self, quote_id: int) -> Optional[Quote]:
        return self._store.load(quote_id)

    def load_many(self, quote_ids: Iterable[int]) -> list[Quote]:
        return self._store.load_many(quote_ids)

    def count(self) -> int:
        return self._store.count()

    def current_max_id(self) -> int:
        return self._store.current_max_id()

    def find(self, options: FindOptions) -> list[Quote]:
        return self._store.find(options)


class SharedQuoteStore:
    """The one store handle shared by every caller.

    Mutations (save, delete, lover updates) run under the write side of a
    :class:`ReadWriteLock`; everything else under the read side. Id allocation
    is a read-then-write inside ``save``, so it is only monotonic because saves
    never overlap. Any backend swapped in behind this handle relies on that.

    Use :meth:`read` / :meth:`write` to run several calls under one guard, or
    the single-call helpers below.
    """

    def __init__(self, store: QuoteStore, lock: Optional[ReadWriteLock] = None) -> None:
        self._store = store
        self._reader = QuoteReader(store)
        self._lock = lock or ReadWriteLock()

    @contextmanager
    def read(self) -> Iterator[QuoteReader]:
        with self._lock.read():
            yield self._reader

    @contextmanager
    def write(self) -> Iterator[QuoteStore]:
        with self._lock.write():
            yield self._store

    def save(self, author: str, content: str) -> Quote:
        with self.write() as store:
            return store.save(author, content)

    def delete(self, quote_id: int) -> bool:
        with self.write() as store:
            return store.delete(quote_id)

    def add_lover(self, quote_id: int, user_id: int) -> bool:
        with self.write() as store:
            return store.add_lover(quote_id, user_id)

    def remove_lover(self, quote_id: int, user_id: int) -> bool:
        with self.write() as store:
            return store.remove_lover(quote_id, user_id)

    def load(self, quote_id: int) -> Optional[Quote]:
        with self.read() as reader:
            return reader.load(quote_id)

    def load_many(self, quote_ids: Iterable[int]) -> list[Quote]:
        with self.read() as reader:
            return reader.load_many(quote_ids)

    def count(self) -> int:
        with self.read() as reader:
            return reader.count()

    def current_max_id(self) -> int:
        with self.read() as reader:
            return reader.current_max_id()

    def find(self, options: FindOptions) -> list[Quote]:
        with self.read() as reader:
            return reader.find(options)
