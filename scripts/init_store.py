from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path


def main(argv: list[str] | None = None) -> int:
    # Ensure project root (containing 'meigen') is importable
    project_root = Path(__file__).resolve().parents[1]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

    from meigen.repositories.errors import StoreFileExistsError
    from meigen.repositories.file.quotes_file import QuoteStoreFile

    parser = argparse.ArgumentParser(description="Create an empty quote file for the file backend")
    parser.add_argument(
        "--file",
        default=os.getenv("MEIGEN_FILE_PATH", os.path.join("data", "meigen.yaml")),
        help="Path to the YAML quote file (must not exist yet)",
    )
    args = parser.parse_args(argv)

    path = Path(args.file).resolve()
    try:
        QuoteStoreFile.create(path)
    except StoreFileExistsError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    print(f"Initialized quote file at: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
