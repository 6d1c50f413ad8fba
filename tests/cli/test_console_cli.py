from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest

import meigen.cli.console as console_cli
from meigen.repositories.file.quotes_file import QuoteStoreFile


@pytest.fixture(autouse=True)
def no_log_files(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(console_cli, "get_logger", lambda: None)


@pytest.fixture
def quote_file(tmp_path: Path) -> Path:
    store = QuoteStoreFile.create(tmp_path / "quotes.yaml")
    store.save("Alice", "Hello")
    return store.path


def test_single_command(quote_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = console_cli.main(
        ["--backend", "file", "--file", str(quote_file), "-c", "g!meigen id 1"]
    )
    assert rc == 0
    assert "Meigen No.1" in capsys.readouterr().out


def test_single_command_not_for_bot(quote_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = console_cli.main(["--backend", "file", "--file", str(quote_file), "-c", "hi"])
    assert rc == 2
    assert "g!meigen" in capsys.readouterr().out


def test_missing_file_fails_cleanly(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = console_cli.main(["--backend", "file", "--file", str(tmp_path / "none.yaml"), "-c", "x"])
    assert rc == 1
    assert "Could not open the quote store" in capsys.readouterr().err


def test_interactive_loop_persists(quote_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    stdin = io.StringIO("g!meigen make Bob World\nnot a command\ng!meigen status\n")
    rc = console_cli.main(["--backend", "file", "--file", str(quote_file)], stdin=stdin)
    out = capsys.readouterr().out
    assert rc == 0
    assert "Meigen No.2\n```\nWorld\n    --- Bob\n```" in out
    assert "total_count: 2" in out
    assert out.count("process took") == 3
    assert QuoteStoreFile(quote_file).count() == 2


def test_build_router_wires_admin(quote_file: Path) -> None:
    router = console_cli.build_router(QuoteStoreFile(quote_file), admin_user_id=5)
    assert router.handle("g!meigen delete 1", 4) == "Only the administrator can delete quotes."
    assert router.handle("g!meigen delete 1", 5) == "Deleted."


def test_invalid_environment_fails_cleanly(
    quote_file: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("dotenv.load_dotenv", lambda *a, **k: None, raising=False)
    monkeypatch.delitem(sys.modules, "meigen.config.settings", raising=False)
    monkeypatch.setenv("MEIGEN_BACKEND", "mongodb")
    monkeypatch.delenv("MONGODB_URI", raising=False)

    rc = console_cli.main(
        ["--backend", "file", "--file", str(quote_file), "-c", "g!meigen id 1"]
    )
    assert rc == 1
    assert "Invalid configuration" in capsys.readouterr().err
