from __future__ import annotations

import logging
from typing import Optional, Sequence

from .quotes_service import QuoteService, StoreUnavailableError

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "g!meigen"


class CommandUsageError(ValueError):
    """The command was addressed to us but its arguments are wrong."""


def _int_arg(args: Sequence[str], index: int) -> Optional[int]:
    if index >= len(args):
        return None
    value = args[index]
    try:
        return int(value)
    except ValueError:
        raise CommandUsageError(
            f"Argument {index + 1} is not a valid number: {value}"
        ) from None


def _required_int_arg(args: Sequence[str], index: int) -> int:
    value = _int_arg(args, index)
    if value is None:
        raise CommandUsageError("Not enough arguments.")
    return value


class CommandRouter:
    """Map one line of chat text to one :class:`QuoteService` call.

    Lines look like ``g!meigen <subcommand> [args...]``; ASCII and full-width
    spaces both separate arguments. :meth:`handle` returns ``None`` for text
    that is not a command for this bot.
    """

    def __init__(self, service: QuoteService, admin_user_id: Optional[int] = None) -> None:
        self._service = service
        self._admin_user_id = admin_user_id

    def handle(self, text: str, user_id: int) -> Optional[str]:
        tokens = text.split()
        if not tokens or tokens[0] != COMMAND_PREFIX:
            return None
        if len(tokens) == 1:
            return self._service.help()

        sub_command, args = tokens[1], tokens[2:]
        try:
            return self._dispatch(sub_command, args, user_id)
        except CommandUsageError as exc:
            return str(exc)
        except StoreUnavailableError as exc:
            return str(exc)

    def _dispatch(self, sub_command: str, args: Sequence[str], user_id: int) -> str:
        svc = self._service
        if sub_command == "help":
            return svc.help()
        if sub_command == "status":
            return svc.status()
        if sub_command == "make":
            if len(args) < 2:
                raise CommandUsageError("Not enough arguments.")
            return svc.make(args[0], " ".join(args[1:]))
        if sub_command == "list":
            return svc.list_quotes(_int_arg(args, 0), _int_arg(args, 1))
        if sub_command == "id":
            return svc.show(_required_int_arg(args, 0))
        if sub_command == "random":
            return svc.random_quotes(_int_arg(args, 0))
        if sub_command == "search":
            return self._search(args)
        if sub_command == "delete":
            is_admin = self._admin_user_id is not None and user_id == self._admin_user_id
            return svc.delete(_required_int_arg(args, 0), is_admin=is_admin)
        if sub_command == "love":
            return svc.love(_required_int_arg(args, 0), user_id)
        if sub_command == "unlove":
            return svc.unlove(_required_int_arg(args, 0), user_id)

        logger.debug("Unknown subcommand", extra={"sub_command": sub_command})
        return f"Unknown subcommand: {sub_command}. See `{COMMAND_PREFIX} help`."

    def _search(self, args: Sequence[str]) -> str:
        svc = self._service
        if len(args) < 2 or args[0] == "help":
            return svc.search_help()
        target, query = args[0], args[1]
        show_count, page = _int_arg(args, 2), _int_arg(args, 3)
        if target == "author":
            return svc.search_author(query, show_count, page)
        if target == "content":
            return svc.search_content(query, show_count, page)
        return f"Unknown search target: {target}. Use author or content."
