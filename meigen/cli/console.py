from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Sequence, TextIO

from meigen.application.services.command_router import COMMAND_PREFIX, CommandRouter
from meigen.application.services.quotes_service import QuoteService
from meigen.infrastructure.shared_store import SharedQuoteStore
from meigen.logging_config import get_logger
from meigen.repositories.errors import StoreError
from meigen.repositories.factory import open_store
from meigen.repositories.quotes import QuoteStore

logger = logging.getLogger(__name__)


def build_router(store: QuoteStore, admin_user_id: Optional[int] = None) -> CommandRouter:
    """Wire one store into the shared handle, service and router."""
    return CommandRouter(QuoteService(SharedQuoteStore(store)), admin_user_id=admin_user_id)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description=f"Local console for the quote bot. Type '{COMMAND_PREFIX} help' to start."
    )
    p.add_argument("--backend", choices=["file", "mongodb"], help="Override MEIGEN_BACKEND")
    p.add_argument("--file", metavar="PATH", help="Quote file for the file backend")
    p.add_argument(
        "--user-id", type=int, default=0, help="User id the commands are sent as (default: 0)"
    )
    p.add_argument(
        "-c", "--command", metavar="TEXT", help="Run a single command, print the reply and exit"
    )
    return p


def run_console(router: CommandRouter, user_id: int, stdin: TextIO, stdout: TextIO) -> None:
    while True:
        stdout.write("> ")
        stdout.flush()
        line = stdin.readline()
        if not line:
            break
        begin = time.perf_counter()
        reply = router.handle(line.strip(), user_id)
        if reply is not None:
            stdout.write(reply + "\n")
        elapsed_ms = (time.perf_counter() - begin) * 1000
        stdout.write(f"process took {elapsed_ms:.0f}ms\n")


def main(argv: Sequence[str] | None = None, stdin: TextIO | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    get_logger()

    # Lazy import to keep environment validation out of module import
    try:
        from meigen.config.settings import settings
    except RuntimeError as exc:
        logger.error("Invalid configuration", extra={"error": str(exc)})
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    overrides: dict[str, object] = {}
    if args.backend:
        overrides["backend"] = args.backend
    if args.file:
        overrides["file_path"] = Path(args.file)
    cfg = settings.model_copy(update=overrides)

    try:
        store = open_store(cfg)
    except (StoreError, RuntimeError) as exc:
        logger.error("Failed to open quote store", extra={"backend": cfg.backend, "error": str(exc)})
        print(f"Could not open the quote store: {exc}", file=sys.stderr)
        return 1

    router = build_router(store, cfg.admin_user_id)

    if args.command is not None:
        reply = router.handle(args.command, args.user_id)
        if reply is None:
            print(f"Commands start with '{COMMAND_PREFIX}'.")
            return 2
        print(reply)
        return 0

    run_console(router, args.user_id, stdin or sys.stdin, sys.stdout)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
