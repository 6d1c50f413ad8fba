"""Application settings for the quote store.

This module centralises configuration for choosing and reaching the quote
backend. Environment variables are loaded from a ``.env`` file using
``python-dotenv`` and exposed through a Pydantic settings object.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables from a .env file if present
load_dotenv()

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_BACKEND = "file"
DEFAULT_FILE_PATH = Path("data/meigen.yaml")
DEFAULT_MONGODB_DATABASE = "meigen"
DEFAULT_MONGODB_COLLECTION = "entries"

Backend = Literal["file", "mongodb"]


class Settings(BaseModel):
    """Immutable settings object used across the application."""

    backend: Backend = DEFAULT_BACKEND
    file_path: Path = DEFAULT_FILE_PATH
    mongodb_uri: Optional[str] = None
    mongodb_database: str = DEFAULT_MONGODB_DATABASE
    mongodb_collection: str = DEFAULT_MONGODB_COLLECTION
    admin_user_id: Optional[int] = None

    model_config = ConfigDict(frozen=True)


def _build_settings() -> Settings:
    """Construct the ``Settings`` instance based on environment variables."""

    backend = os.getenv("MEIGEN_BACKEND", DEFAULT_BACKEND).strip().lower()
    if backend not in ("file", "mongodb"):
        raise RuntimeError(f"MEIGEN_BACKEND must be 'file' or 'mongodb', got {backend!r}")

    mongodb_uri = os.getenv("MONGODB_URI") or None
    if backend == "mongodb" and not mongodb_uri:
        raise RuntimeError("MONGODB_URI is required when MEIGEN_BACKEND=mongodb")

    raw_admin = os.getenv("MEIGEN_ADMIN_USER_ID")
    admin_user_id: Optional[int] = None
    if raw_admin:
        try:
            admin_user_id = int(raw_admin)
        except ValueError:
            raise RuntimeError(f"MEIGEN_ADMIN_USER_ID must be an integer, got {raw_admin!r}") from None

    return Settings(
        backend=backend,  # type: ignore[arg-type]
        file_path=Path(os.getenv("MEIGEN_FILE_PATH", str(DEFAULT_FILE_PATH))),
        mongodb_uri=mongodb_uri,
        mongodb_database=os.getenv("MEIGEN_MONGODB_DATABASE", DEFAULT_MONGODB_DATABASE),
        mongodb_collection=os.getenv("MEIGEN_MONGODB_COLLECTION", DEFAULT_MONGODB_COLLECTION),
        admin_user_id=admin_user_id,
    )


# Public settings instance
settings = _build_settings()
