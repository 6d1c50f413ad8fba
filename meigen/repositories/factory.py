from __future__ import annotations

from typing import TYPE_CHECKING

from .quotes import QuoteStore

if TYPE_CHECKING:  # pragma: no cover - import for type checkers only
    from meigen.config.settings import Settings


def open_store(settings: "Settings") -> QuoteStore:
    """Open the backend selected by ``settings``.

    The file backend requires an existing file (see ``scripts/init_store.py``);
    a missing one raises :class:`~meigen.repositories.errors.StoreFileNotFoundError`.
    """
    if settings.backend == "mongodb":
        # Lazy import so the file backend works without a MongoDB driver configured
        from .mongo.quotes_mongo import QuoteStoreMongo

        if not settings.mongodb_uri:
            raise RuntimeError("MONGODB_URI is required when MEIGEN_BACKEND=mongodb")
        return QuoteStoreMongo.from_uri(
            settings.mongodb_uri,
            database=settings.mongodb_database,
            collection=settings.mongodb_collection,
        )

    from .file.quotes_file import QuoteStoreFile

    return QuoteStoreFile(settings.file_path)
