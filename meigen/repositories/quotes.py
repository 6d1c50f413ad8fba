from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional

from meigen.domain.entities import Quote

from .errors import QuoteValidationError

# Combined author + content length, counted in code points.
QUOTE_LENGTH_LIMIT = 300
DEFAULT_FIND_LIMIT = 10


@dataclass(frozen=True)
class FindOptions:
    """Filters and paging for :meth:`QuoteStore.find`.

    ``author`` and ``content`` are case-sensitive substrings; ``None`` means no
    filter on that field.
    """

    author: Optional[str] = None
    content: Optional[str] = None
    offset: int = 0
    limit: int = DEFAULT_FIND_LIMIT

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError("offset must be non-negative")
        if self.limit < 0:
            raise ValueError("limit must be non-negative")

    def matches(self, quote: Quote) -> bool:
        if self.author is not None and self.author not in quote.author:
            return False
        if self.content is not None and self.content not in quote.content:
            return False
        return True


def validate_quote(author: str, content: str) -> None:
    """Raise :class:`QuoteValidationError` if the pair cannot be stored."""
    if not author.strip():
        raise QuoteValidationError("The author must not be empty.")
    length = len(author) + len(content)
    if length > QUOTE_LENGTH_LIMIT:
        raise QuoteValidationError(
            f"The quote is too long ({length} characters). "
            f"Keep author and content within {QUOTE_LENGTH_LIMIT} characters."
        )


class QuoteStore(ABC):
    """Storage contract shared by every quote backend.

    Implementations must behave identically from the caller's point of view.
    They are not thread-safe on their own: share one instance through
    :class:`meigen.infrastructure.shared_store.SharedQuoteStore`, which keeps
    mutations single-writer. Id allocation relies on that.
    """

    @abstractmethod
    def save(self, author: str, content: str) -> Quote:
        """Validate, assign the next id, persist and return the new quote."""

    @abstractmethod
    def load(self, quote_id: int) -> Optional[Quote]:
        """Return the quote with ``quote_id`` or ``None`` when absent."""

    @abstractmethod
    def load_many(self, quote_ids: Iterable[int]) -> list[Quote]:
        """Return the existing quotes among ``quote_ids``, sorted by id."""

    @abstractmethod
    def delete(self, quote_id: int) -> bool:
        """Remove a quote; ``False`` when nothing had that id."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored quotes."""

    @abstractmethod
    def current_max_id(self) -> int:
        """Highest stored id, or 0 for an empty store."""

    @abstractmethod
    def find(self, options: FindOptions) -> list[Quote]:
        """Filtered quotes, newest first, after ``offset`` and capped at ``limit``."""

    @abstractmethod
    def add_lover(self, quote_id: int, user_id: int) -> bool:
        """Record that ``user_id`` likes the quote.

        Returns ``False`` when the quote does not exist or the user already
        liked it.
        """

    @abstractmethod
    def remove_lover(self, quote_id: int, user_id: int) -> bool:
        """Undo :meth:`add_lover`; ``False`` when there was nothing to remove."""
