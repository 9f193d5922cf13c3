"""CLI parser and command behaviour tests."""

from __future__ import annotations

import io
import json

import pytest

from bookcheck.cli import _build_parser, main
from tests._fixtures.book_builder import BookBuilder


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "check"])
    assert args.verbose is True
    assert args.command == "check"
    assert args.path == "."


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["check", "--verbose"])
    assert args.verbose is True
    assert args.command == "check"


def test_cli_accepts_follow_web_links_flag() -> None:
    parser = _build_parser()
    args = parser.parse_args(["check", "book", "--follow-web-links"])
    assert args.path == "book"
    assert args.follow_web_links is True


def test_check_command_reports_every_broken_link(book_builder: BookBuilder, capsys) -> None:
    book_builder.write(
        {
            "SUMMARY.md": "- [Intro](intro.md)\n",
            "intro.md": "# Intro\n\n[gone](gone.md)\n\n[also gone](#nowhere)\n",
        }
    )

    with pytest.raises(SystemExit) as excinfo:
        main(["check", str(book_builder.path())])

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert '"gone.md" in intro.md#3: reference not found' in err
    assert '"#nowhere" in intro.md#5: reference not found (no anchor "#nowhere" in intro.md)' in err
    assert "Found 2 broken link(s)" in err


def test_check_command_succeeds_for_valid_book(book_builder: BookBuilder, capsys) -> None:
    book_builder.write(
        {
            "SUMMARY.md": "- [Intro](intro.md)\n- [Next](next.md)\n",
            "intro.md": "# Intro\n\n[next](next.html) and [web](https://example.com)\n",
            "next.md": "# Next\n",
        }
    )

    main(["check", str(book_builder.path())])

    assert "All 2 links OK" in capsys.readouterr().out


def test_check_command_reports_missing_book(tmp_path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["check", str(tmp_path)])

    assert excinfo.value.code == 1
    assert "Book source directory not found" in capsys.readouterr().err


def test_check_command_reports_config_errors(book_builder: BookBuilder, capsys) -> None:
    book_builder.write({"intro.md": "# Intro\n"})
    book_builder.write_config("linkcheck:\n  max-workers: 0\n")

    with pytest.raises(SystemExit) as excinfo:
        main(["check", str(book_builder.path())])

    assert excinfo.value.code == 1
    assert "bookcheck check failed" in capsys.readouterr().err


def test_mdbook_command_reads_render_context(monkeypatch, capsys) -> None:
    payload = {
        "root": "/nonexistent",
        "config": {"book": {"src": "src"}, "output": {"linkcheck": {"follow-web-links": False}}},
        "book": {
            "sections": [
                {
                    "Chapter": {
                        "name": "Intro",
                        "content": "[missing](missing.md)\n",
                        "path": "intro.md",
                        "sub_items": [],
                    }
                }
            ]
        },
    }
    monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(payload)))

    with pytest.raises(SystemExit) as excinfo:
        main(["mdbook"])

    assert excinfo.value.code == 1
    assert '"missing.md" in intro.md#1: reference not found' in capsys.readouterr().err


def test_mdbook_command_rejects_invalid_json(monkeypatch, capsys) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("not json"))

    with pytest.raises(SystemExit) as excinfo:
        main(["mdbook"])

    assert excinfo.value.code == 1
    assert "Unable to parse the mdBook render context" in capsys.readouterr().err


def test_serve_command_starts_service(monkeypatch) -> None:
    calls: list[tuple[str, int]] = []
    monkeypatch.setattr(
        "bookcheck.service.app.run_service",
        lambda host, port: calls.append((host, port)),
    )

    main(["serve", "--host", "0.0.0.0", "--port", "9000"])

    assert calls == [("0.0.0.0", 9000)]
