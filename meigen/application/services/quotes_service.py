from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from typing import Iterator, Optional

from meigen.domain.entities import Quote
from meigen.infrastructure.shared_store import QuoteReader, SharedQuoteStore
from meigen.repositories.errors import QuoteValidationError, StoreError
from meigen.repositories.quotes import FindOptions

from .pagination import (
    ITEM_LENGTH_LIMIT,
    LIST_COUNT,
    LIST_LENGTH_LIMIT,
    PAGE,
    RANDOM_COUNT,
    SEARCH_COUNT,
    PaginationError,
    clamp_option,
    fold_list,
    page_window,
)

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_MESSAGE = "The quote store is unavailable right now. Please try again later."

HELP_TEXT = """```asciidoc
= meigen =
g!meigen [subcommand] [args...]
= subcommands =
    help                                  :: show this text
    make [author] [content]               :: register a quote
    list [count=5] [page=1]               :: list quotes, newest first
    id [quote id]                         :: show the quote with that id
    search author [text] [count=5] [page=1]   :: search by author
    search content [text] [count=5] [page=1]  :: search by content
    random [count=1]                      :: show random quotes
    status                                :: show how many quotes are stored
    love [quote id]                       :: like a quote
    unlove [quote id]                     :: take back a like
    delete [quote id]                     :: delete a quote (administrator only)
```"""

SEARCH_HELP_TEXT = """```asciidoc
= meigen (search help) =
g!meigen search [author|content] [text] [count=5] [page=1]

= search targets =
author  :: search by the name of who said it
content :: search by the quote itself

Every search matches substrings and is case-sensitive.
```"""


class StoreUnavailableError(RuntimeError):
    """The backing store failed; details were logged where it happened."""


class QuoteService:
    """Command-level operations on the shared quote store.

    - Every method returns the reply text for the user.
    - User mistakes (too long, bad page, no match) come back as text too.
    - Backend failures are logged with full detail and re-raised as
      :class:`StoreUnavailableError`.
    """

    def __init__(
        self,
        shared: SharedQuoteStore,
        *,
        rng: Optional[random.Random] = None,
        list_length: int = LIST_LENGTH_LIMIT,
        item_length: int = ITEM_LENGTH_LIMIT,
    ) -> None:
        self._shared = shared
        self._rng = rng or random.Random()
        self._list_length = list_length
        self._item_length = item_length

    @contextmanager
    def _store_call(self, operation: str) -> Iterator[None]:
        try:
            yield
        except StoreError as exc:
            logger.exception(
                "Quote store call failed",
                extra={"operation": operation, "store_operation": exc.operation},
            )
            raise StoreUnavailableError(STORE_UNAVAILABLE_MESSAGE) from exc

    def _fold(self, quotes: list[Quote]) -> str:
        return fold_list(quotes, max_length=self._list_length, item_length=self._item_length)

    def help(self) -> str:
        return HELP_TEXT

    def search_help(self) -> str:
        return SEARCH_HELP_TEXT

    def status(self) -> str:
        with self._store_call("status"):
            total = self._shared.count()
        return f"```yaml\ntotal_count: {total}\n```"

    def make(self, author: str, content: str) -> str:
        # Backticks would break the code block the quote is rendered in.
        author = author.replace("`", "")
        content = content.replace("`", "")
        try:
            with self._store_call("make"):
                quote = self._shared.save(author, content)
        except QuoteValidationError as exc:
            return str(exc)
        return quote.format()

    def show(self, quote_id: int) -> str:
        with self._store_call("show"):
            quote = self._shared.load(quote_id)
        if quote is None:
            return f"There is no quote with ID {quote_id}."
        return quote.format()

    def list_quotes(self, show_count: Optional[int] = None, page: Optional[int] = None) -> str:
        count, count_notice = clamp_option("show_count", show_count, LIST_COUNT)
        page_no, page_notice = clamp_option("page", page, PAGE)
        notice = count_notice + page_notice
        try:
            with self._store_call("list"), self._shared.read() as reader:
                total = reader.count()
                start, stop = page_window(total, count, page_no)
                quotes = reader.find(FindOptions(offset=total - stop, limit=stop - start))
            return notice + self._fold(quotes)
        except PaginationError as exc:
            return notice + str(exc)

    def search_author(
        self, author: str, show_count: Optional[int] = None, page: Optional[int] = None
    ) -> str:
        return self._search(FindOptions(author=author), show_count, page)

    def search_content(
        self, content: str, show_count: Optional[int] = None, page: Optional[int] = None
    ) -> str:
        return self._search(FindOptions(content=content), show_count, page)

    def _search(
        self, filters: FindOptions, show_count: Optional[int], page: Optional[int]
    ) -> str:
        count, count_notice = clamp_option("show_count", show_count, SEARCH_COUNT)
        page_no, page_notice = clamp_option("page", page, PAGE)
        notice = count_notice + page_notice
        options = FindOptions(
            author=filters.author,
            content=filters.content,
            offset=(page_no - 1) * count,
            limit=count,
        )
        with self._store_call("search"):
            quotes = self._shared.find(options)
        try:
            return notice + self._fold(quotes)
        except PaginationError as exc:
            return notice + str(exc)

    def random_quotes(self, count: Optional[int] = None) -> str:
        wanted, notice = clamp_option("count", count, RANDOM_COUNT)
        with self._store_call("random"), self._shared.read() as reader:
            total = reader.count()
            if wanted > total:
                return notice + "count is larger than the number of stored quotes."
            quotes = self._pick_random(reader, total, wanted)
        try:
            return notice + self._fold(quotes)
        except PaginationError as exc:
            return notice + str(exc)

    def _pick_random(self, reader: QuoteReader, total: int, wanted: int) -> list[Quote]:
        # One single-row query per pick; positions index the newest-first order.
        found: list[Quote] = []
        for position in self._rng.sample(range(total), wanted):
            found.extend(reader.find(FindOptions(offset=position, limit=1)))
        return found

    def delete(self, quote_id: int, *, is_admin: bool) -> str:
        if not is_admin:
            return "Only the administrator can delete quotes."
        with self._store_call("delete"):
            deleted = self._shared.delete(quote_id)
        if deleted:
            return "Deleted."
        return f"There is no quote with ID {quote_id}."

    def love(self, quote_id: int, user_id: int) -> str:
        with self._store_call("love"):
            updated = self._shared.add_lover(quote_id, user_id)
        if updated:
            return "Liked."
        return "Could not like it. The quote does not exist or you already like it."

    def unlove(self, quote_id: int, user_id: int) -> str:
        with self._store_call("unlove"):
            updated = self._shared.remove_lover(quote_id, user_id)
        if updated:
            return "Like removed."
        return "Could not remove the like. The quote does not exist or you had not liked it."
