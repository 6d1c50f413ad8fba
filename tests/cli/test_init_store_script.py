from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType

import pytest

from meigen.repositories.file.quotes_file import QuoteStoreFile

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "init_store.py"


def _load_script() -> ModuleType:
    spec = importlib.util.spec_from_file_location("init_store", SCRIPT)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_init_store_creates_empty_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    target = tmp_path / "nested" / "quotes.yaml"
    rc = _load_script().main(["--file", str(target)])
    assert rc == 0
    assert "Initialized quote file" in capsys.readouterr().out
    assert QuoteStoreFile(target).count() == 0


def test_init_store_refuses_existing(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    target = tmp_path / "quotes.yaml"
    QuoteStoreFile.create(target)
    rc = _load_script().main(["--file", str(target)])
    assert rc == 1
    assert "already exists" in capsys.readouterr().err
