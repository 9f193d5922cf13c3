"""CLI entrypoints for bookcheck commands."""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from pathlib import Path

from .book import BookError, book_from_render_context, load_book
from .checker import CheckReport, LinkChecker
from .config import ConfigError, LinkcheckConfig, config_from_render_context, load_config
from .logging import configure_logging


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_follow_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--follow-web-links",
        action="store_true",
        help="Fetch external links and report unsuccessful responses.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookcheck",
        description="Check every link and image reference in a Markdown book.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log output to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check",
        help="Check the book rooted at PATH.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    _add_follow_option(check_parser)
    check_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the book root holding .bookcheck.yml (defaults to current directory).",
    )

    mdbook_parser = subparsers.add_parser(
        "mdbook",
        help="Run as an mdBook backend, reading the render context from stdin.",
    )
    _add_verbose_option(mdbook_parser, suppress_default=True)
    _add_follow_option(mdbook_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve link checks over HTTP (GET /health, POST /check).",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for bookcheck commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
        return

    if args.command == "check":
        book_path = Path(args.path)
        try:
            if not book_path.exists():
                raise FileNotFoundError(f"Book not found: {book_path}")
            config = load_config(book_path)
            book = load_book(config.root, config.src)
        except FileNotFoundError as exc:
            parser.exit(1, f"{exc}\n")
        except (BookError, ConfigError) as exc:
            parser.exit(1, f"bookcheck check failed: {exc}\n")
        linkcheck = _with_overrides(config.linkcheck, args)
    elif args.command == "mdbook":
        try:
            payload = json.load(sys.stdin)
            book = book_from_render_context(payload)
            linkcheck = _with_overrides(config_from_render_context(payload), args)
        except json.JSONDecodeError as exc:
            parser.exit(1, f"Unable to parse the mdBook render context: {exc}\n")
        except (BookError, ConfigError) as exc:
            parser.exit(1, f"bookcheck mdbook failed: {exc}\n")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")

    report = LinkChecker(linkcheck).check(book)
    _print_report(parser, report)


def _with_overrides(config: LinkcheckConfig, args: argparse.Namespace) -> LinkcheckConfig:
    if getattr(args, "follow_web_links", False):
        return dataclasses.replace(config, follow_web_links=True)
    return config


def _print_report(parser: argparse.ArgumentParser, report: CheckReport) -> None:
    if report.ok:
        print(f"All {len(report.links)} links OK")
        return
    for failure in report.failures:
        print(failure, file=sys.stderr)
    parser.exit(1, f"Found {len(report.failures)} broken link(s)\n")


if __name__ == "__main__":
    main(sys.argv[1:])
