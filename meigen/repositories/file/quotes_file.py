from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml
from pydantic import ValidationError

from meigen.domain.entities import Quote
from meigen.domain.value_objects.ids import MAX_QUOTE_ID, QuoteId, UserId

from ..errors import (
    QuoteDeserializationError,
    StoreError,
    StoreFileExistsError,
    StoreFileNotFoundError,
)
from ..quotes import FindOptions, QuoteStore, validate_quote

logger = logging.getLogger(__name__)


class QuoteStoreFile(QuoteStore):
    """YAML file implementation of :class:`QuoteStore`.

    The whole collection lives in memory and every mutation rewrites the file:
    the new state is written to a sibling ``.tmp`` file which then replaces the
    target with :func:`os.replace`. When writing fails the error is raised but
    memory keeps the mutation; it stays authoritative for this process.

    The file keeps ``current_id``, the highest id ever issued, so ids are never
    handed out twice even after the newest quote is deleted.

    Example:
        >>> store = QuoteStoreFile.create(tmp_dir / "quotes.yaml")
        >>> store.save("Alice", "Hello")
        Quote(id=1, author='Alice', content='Hello', loved_by=frozenset())
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._current_id = 0
        self._quotes: dict[int, Quote] = {}
        self._read_file()

    @classmethod
    def create(cls, path: Path | str) -> "QuoteStoreFile":
        """Write a new, empty store file at ``path`` and open it."""
        target = Path(path)
        if target.exists():
            raise StoreFileExistsError(f"Quote file already exists: {target}", operation="create")
        target.parent.mkdir(parents=True, exist_ok=True)
        _write_atomic(target, _dump({"current_id": 0, "quotes": []}), operation="create")
        logger.info("Created quote file", extra={"path": str(target)})
        return cls(target)

    @property
    def path(self) -> Path:
        return self._path

    def _read_file(self) -> None:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise StoreFileNotFoundError(
                f"Quote file not found: {self._path}", operation="open"
            ) from exc
        except OSError as exc:
            raise StoreError(f"Failed to open quote file {self._path}: {exc}", operation="open") from exc

        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise QuoteDeserializationError(
                f"Quote file {self._path} is not valid YAML: {exc}", operation="open"
            ) from exc
        if not isinstance(raw, dict):
            raise QuoteDeserializationError(
                f"Quote file {self._path} must contain a mapping", operation="open"
            )

        current_id = raw.get("current_id", 0)
        if not isinstance(current_id, int) or current_id < 0:
            raise QuoteDeserializationError(
                f"Invalid current_id in {self._path}: {current_id!r}", operation="open"
            )

        quotes: dict[int, Quote] = {}
        for record in raw.get("quotes") or []:
            try:
                quote = Quote.model_validate(record)
            except ValidationError as exc:
                raise QuoteDeserializationError(
                    f"Invalid quote record in {self._path}: {exc}", operation="open"
                ) from exc
            if quote.id in quotes:
                raise QuoteDeserializationError(
                    f"Duplicate quote id {quote.id} in {self._path}", operation="open"
                )
            quotes[quote.id] = quote

        self._current_id = current_id
        # Keep ascending id order regardless of how the file was edited.
        self._quotes = {qid: quotes[qid] for qid in sorted(quotes)}

    def _persist(self, operation: str) -> None:
        payload = {
            "current_id": self._current_id,
            "quotes": [q.to_record() for q in self._quotes.values()],
        }
        _write_atomic(self._path, _dump(payload), operation=operation)

    def save(self, author: str, content: str) -> Quote:
        validate_quote(author, content)
        new_id = max(self._current_id, self.current_max_id()) + 1
        if new_id > MAX_QUOTE_ID:
            raise StoreError("Quote id space exhausted", operation="save")

        quote = Quote(id=QuoteId(new_id), author=author, content=content)
        self._quotes[new_id] = quote
        self._current_id = new_id
        self._persist("save")
        logger.info("Saved quote", extra={"quote_id": new_id, "backend": "file"})
        return quote

    def load(self, quote_id: int) -> Optional[Quote]:
        return self._quotes.get(quote_id)

    def load_many(self, quote_ids: Iterable[int]) -> list[Quote]:
        wanted = set(quote_ids)
        return [q for qid, q in self._quotes.items() if qid in wanted]

    def delete(self, quote_id: int) -> bool:
        if self._quotes.pop(quote_id, None) is None:
            return False
        self._persist("delete")
        logger.info("Deleted quote", extra={"quote_id": quote_id, "backend": "file"})
        return True

    def count(self) -> int:
        return len(self._quotes)

    def current_max_id(self) -> int:
        # Dict order is ascending id, so the last key is the maximum.
        return next(reversed(self._quotes), 0)

    def find(self, options: FindOptions) -> list[Quote]:
        out: list[Quote] = []
        skipped = 0
        for quote in reversed(self._quotes.values()):
            if len(out) >= options.limit:
                break
            if not options.matches(quote):
                continue
            if skipped < options.offset:
                skipped += 1
                continue
            out.append(quote)
        return out

    def add_lover(self, quote_id: int, user_id: int) -> bool:
        quote = self._quotes.get(quote_id)
        if quote is None or quote.is_loved_by(user_id):
            return False
        self._quotes[quote_id] = quote.model_copy(
            update={"loved_by": quote.loved_by | {UserId(user_id)}}
        )
        self._persist("add_lover")
        return True

    def remove_lover(self, quote_id: int, user_id: int) -> bool:
        quote = self._quotes.get(quote_id)
        if quote is None or not quote.is_loved_by(user_id):
            return False
        self._quotes[quote_id] = quote.model_copy(
            update={"loved_by": quote.loved_by - {UserId(user_id)}}
        )
        self._persist("remove_lover")
        return True


def _dump(payload: dict[str, Any]) -> str:
    return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)


def _write_atomic(path: Path, text: str, *, operation: str) -> None:
    tmp = path.with_name(path.name + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except OSError as exc:
        tmp.unlink(missing_ok=True)
        raise StoreError(f"Failed to write quote file {path}: {exc}", operation=operation) from exc
