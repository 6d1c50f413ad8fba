"""Clamping, windowing and length-bounded rendering of quote lists.

Everything here is pure: functions take already fetched quotes (or plain
numbers) and return text or raise a :class:`PaginationError`. Pagination
errors are user-facing and never indicate a broken store, so callers can show
``str(exc)`` directly without logging.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from meigen.domain.entities import QUOTE_TEMPLATE_OVERHEAD, Quote

LIST_LENGTH_LIMIT = 400
ITEM_LENGTH_LIMIT = 150

TIDY_SUFFIX = "..."
NO_SPACE_MESSAGE = "Not enough space..."
TRUNCATED_NOTICE = "Some quotes were omitted because the result was too long.\n"


class PaginationError(ValueError):
    """Base class for user-facing listing errors."""

    default_message = "Could not build the list."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class NoMatchError(PaginationError):
    default_message = "No quotes matched those conditions."


class TooManyMatchesError(PaginationError):
    default_message = "The result is too long to display. Try a smaller count."


class PageOutOfRangeError(PaginationError):
    default_message = "That page is out of range."


@dataclass(frozen=True)
class OptionBounds:
    default: int
    minimum: int
    maximum: Optional[int] = None


RANDOM_COUNT = OptionBounds(default=1, minimum=1, maximum=5)
LIST_COUNT = OptionBounds(default=5, minimum=1, maximum=10)
SEARCH_COUNT = OptionBounds(default=5, minimum=1, maximum=10)
PAGE = OptionBounds(default=1, minimum=1)


def clamp_option(name: str, value: Optional[int], bounds: OptionBounds) -> tuple[int, str]:
    """Return ``(value, notice)`` with ``value`` forced into ``bounds``.

    ``notice`` is empty unless clamping happened; it is meant to be prepended
    to the reply so the user knows their number was changed.

    >>> clamp_option("count", None, LIST_COUNT)
    (5, '')
    >>> clamp_option("count", 10000, LIST_COUNT)
    (10, 'count was too large and has been rounded to 10.\\n')
    """
    if value is None:
        return bounds.default, ""
    if bounds.maximum is not None and value > bounds.maximum:
        return bounds.maximum, f"{name} was too large and has been rounded to {bounds.maximum}.\n"
    if value < bounds.minimum:
        return bounds.minimum, f"{name} was too small and has been rounded to {bounds.minimum}.\n"
    return value, ""


def page_window(end: int, show_count: int, page: int) -> tuple[int, int]:
    """Index window ``[start, stop)`` of ``page`` over ``[0, end)``, newest last.

    Page 1 is the ``show_count`` items just below ``end``; each further page
    moves one window towards 0. The first window may be partial.

    >>> page_window(12, 5, 1)
    (7, 12)
    >>> page_window(12, 5, 3)
    (0, 2)
    """
    if show_count < 1 or page < 1:
        raise PageOutOfRangeError()
    if end <= 0:
        return 0, 0
    stop = end - show_count * (page - 1)
    if stop <= 0:
        raise PageOutOfRangeError(f"There are no quotes on page {page}.")
    start = max(0, stop - show_count)
    return start, stop


def tidy_format(quote: Quote, max_length: int = ITEM_LENGTH_LIMIT) -> str:
    """Render ``quote`` within ``max_length`` characters where possible.

    Long content is cut and suffixed with ``...``. When the author alone leaves
    no room for any content, a fixed placeholder replaces the body.
    """
    remain = max_length - QUOTE_TEMPLATE_OVERHEAD - len(str(quote.id)) - len(quote.author)
    if remain >= len(quote.content):
        return quote.format()
    if remain <= len(NO_SPACE_MESSAGE):
        return f"Meigen No.{quote.id}\n```{NO_SPACE_MESSAGE}```"
    content = quote.content[: remain - len(TIDY_SUFFIX)] + TIDY_SUFFIX
    return quote.model_copy(update={"content": content}).format()


def fold_list(
    quotes: Sequence[Quote],
    max_length: int = LIST_LENGTH_LIMIT,
    item_length: int = ITEM_LENGTH_LIMIT,
) -> str:
    """Join tidied quotes, oldest first, into one bounded message.

    Newer quotes win the space: items are taken from the newest down while
    they fit in ``max_length``. If anything was left out, a notice is put in
    front.
    """
    if not quotes:
        raise NoMatchError()

    taken: list[str] = []
    length = 0
    dropped = 0
    for quote in sorted(quotes, key=lambda q: q.id, reverse=True):
        if dropped:
            dropped += 1
            continue
        rendered = tidy_format(quote, item_length)
        cost = len(rendered) + (1 if taken else 0)
        if length + cost > max_length:
            if not taken:
                raise TooManyMatchesError()
            dropped += 1
            continue
        taken.append(rendered)
        length += cost

    text = "\n".join(reversed(taken))
    if dropped:
        text = TRUNCATED_NOTICE + text
    return text
