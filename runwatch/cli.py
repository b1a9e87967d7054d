"""
runwatch CLI: follow remote CI runs from the terminal.

Usage:
    runwatch watch <run-id> [--interval N] [--logs | --quiet] [--timeout 30m]
    runwatch log <run-id> [--raw]
"""

from __future__ import annotations

import argparse
import logging
import sys
from functools import partial

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.text import Text

from .client import RunClient
from .config import DEFAULT_INTERVAL, get_http_timeout, get_server_url, get_token, load_dotenv
from .errors import EXIT_FAILURE, ExitError, RunwatchError
from .failure_summary import report_failure_summary
from .logparse import LOG_SHAPE, normalize_log
from .output import RED, SEVERITY_STYLES, console, parse_duration
from .render import make_renderer
from .session import WatchMode, WatchSession
from .watch import WatchController


def _add_watch_parser(subparsers: argparse._SubParsersAction):
    parser = subparsers.add_parser("watch", help="Watch a run until it completes")
    parser.add_argument("run_id", help="Run (build) id")
    parser.add_argument(
        "--interval",
        "-i",
        type=int,
        default=DEFAULT_INTERVAL,
        help=f"Refresh interval in seconds (default: {DEFAULT_INTERVAL})",
    )
    presentation = parser.add_mutually_exclusive_group()
    presentation.add_argument("--logs", action="store_true", help="Full-screen view streaming the run log")
    presentation.add_argument(
        "--quiet",
        "-Q",
        action="store_true",
        help="Minimal output, show only state changes and result",
    )
    parser.add_argument("--timeout", default=None, help="Stop watching after this long (e.g. 30m, 1h); 0 disables")


def _add_log_parser(subparsers: argparse._SubParsersAction):
    parser = subparsers.add_parser("log", help="Print the log of a run")
    parser.add_argument("run_id", help="Run (build) id")
    parser.add_argument("--raw", action="store_true", help="Show raw log without formatting")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="runwatch",
        description="runwatch: follow remote CI runs from the terminal",
    )
    parser.add_argument("--server", help="Server URL (default: RUNWATCH_SERVER_URL)")
    parser.add_argument("--token", help="Access token (default: RUNWATCH_TOKEN)")
    parser.add_argument("--debug", action="store_true", help="Log diagnostics to stderr")
    subparsers = parser.add_subparsers(dest="mode", required=True)

    _add_watch_parser(subparsers)
    _add_log_parser(subparsers)

    return parser


def _configure_logging(debug: bool):
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=debug)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # httpx logs every request at INFO; keep it for --debug only.
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


def _make_client(args: argparse.Namespace) -> RunClient:
    return RunClient(
        get_server_url(args.server),
        get_token(args.token),
        timeout=get_http_timeout(),
    )


def _watch_mode(args: argparse.Namespace) -> WatchMode:
    if args.logs:
        return WatchMode.INTERACTIVE
    if args.quiet:
        return WatchMode.QUIET
    return WatchMode.PLAIN


def _handle_watch(args: argparse.Namespace):
    mode = _watch_mode(args)
    timeout = parse_duration(args.timeout) if args.timeout else None
    session = WatchSession(run_id=args.run_id, interval=args.interval, mode=mode, timeout=timeout)

    with _make_client(args) as client:
        controller = WatchController(
            session,
            client,
            make_renderer(mode, console),
            failure_reporter=partial(report_failure_summary, client, console=console),
        )
        outcome = controller.run()

    if outcome.exit_code != 0:
        raise ExitError(outcome.exit_code)


def _handle_log(args: argparse.Namespace):
    with _make_client(args) as client:
        text = client.fetch_log(args.run_id)

    if args.raw:
        console.out(text, highlight=False, end="")
        return
    for line in normalize_log(text, LOG_SHAPE):
        console.print(Text.from_ansi(line.display, style=SEVERITY_STYLES[line.severity]))


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(bool(args.debug))
    load_dotenv()

    handlers = {
        "watch": _handle_watch,
        "log": _handle_log,
    }
    try:
        handlers[args.mode](args)
    except ExitError as exc:
        sys.exit(exc.code)
    except RunwatchError as exc:
        console.print(f"[{RED}]Error:[/] {escape(str(exc))}")
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
