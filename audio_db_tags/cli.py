from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from .commands import scan as cmd_scan
from .commands import show as cmd_show
from .commands import watch as cmd_watch
from .config import load_settings

LOG_FORMAT = "%(levelname)-7s %(name)s: %(message)s"

ANSI_RESET = "\033[0m"
PROBLEM_COLOURS = {
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
}


class LibraryLogFormatter(logging.Formatter):
    """Drops library root prefixes from messages so file paths stay readable.

    With ``colour`` set, warnings are yellow and errors (critical included) red.
    """

    def __init__(self, roots: list[Path], *, colour: bool = False) -> None:
        super().__init__(LOG_FORMAT)
        self.prefixes = [f"{root}/" for root in roots if str(root)]
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for prefix in self.prefixes:
            message = message.replace(prefix, "")
        if self.colour and record.levelno >= logging.WARNING:
            code = PROBLEM_COLOURS.get(record.levelno, PROBLEM_COLOURS[logging.ERROR])
            return f"{code}{message}{ANSI_RESET}"
        return message


class FailureSummary(logging.Handler):
    """Keeps every warning/error of a run for the recap printed after a scan."""

    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(self.format(record))

    def print_summary(self) -> None:
        if not self.messages:
            return
        print(f"\n{PROBLEM_COLOURS[logging.WARNING]}{len(self.messages)} warnings/errors:{ANSI_RESET}")
        for line in self.messages:
            print(f" - {line}")


def configure_logging(level_name: str, roots: list[Path]) -> FailureSummary:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level_name.upper(), logging.INFO))

    console = logging.StreamHandler()
    console.setFormatter(LibraryLogFormatter(roots, colour=console.stream.isatty()))
    root_logger.addHandler(console)

    summary = FailureSummary()
    summary.setFormatter(LibraryLogFormatter(roots))
    root_logger.addHandler(summary)

    logging.getLogger("watchdog").setLevel(logging.WARNING)
    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Read FLAC and ID3v2 tags straight from file bytes")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)
    scan_parser = subparsers.add_parser("scan", help="Decode every .flac/.mp3 file under the given paths")
    scan_parser.add_argument("paths", nargs="*", type=Path, help="Files or directories (default: configured roots)")
    scan_parser.add_argument("--json", action="store_true", help="Emit one JSON record per file")
    scan_parser.add_argument(
        "--include-binary",
        action="store_true",
        help="Embed picture/padding/identifier bytes as base64 in JSON output",
    )
    scan_parser.add_argument("--workers", type=int, default=None, help="Number of concurrent decoders")

    show_parser = subparsers.add_parser("show", help="Decode a single file and print it as JSON")
    show_parser.add_argument("path", type=Path)
    show_parser.add_argument("--include-binary", action="store_true")

    watch_parser = subparsers.add_parser("watch", help="Decode files as they appear or change")
    watch_parser.add_argument("paths", nargs="*", type=Path, help="Directories to watch (default: configured roots)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(args.config)
    settings = settings.with_roots(list(getattr(args, "paths", None) or []))
    output_updates = {}
    if getattr(args, "json", False):
        output_updates["json_lines"] = True
    if getattr(args, "include_binary", False):
        output_updates["include_binary"] = True
    if output_updates:
        settings = settings.model_copy(
            update={"output": settings.output.model_copy(update=output_updates)}
        )
    if getattr(args, "workers", None):
        settings = settings.model_copy(
            update={"workers": settings.workers.model_copy(update={"concurrency": max(1, args.workers)})}
        )

    summary = configure_logging(args.log_level, settings.library.roots)

    exit_code = 0
    try:
        match args.command:
            case "scan":
                if not settings.library.roots:
                    parser.error("scan needs paths or library.roots in the config")
                report = cmd_scan.run(settings)
                if not report.ok:
                    exit_code = 1
            case "show":
                if not cmd_show.run(args.path, include_binary=settings.output.include_binary):
                    exit_code = 1
            case "watch":
                if not settings.library.roots:
                    parser.error("watch needs paths or library.roots in the config")
                cmd_watch.run(settings)
            case _:
                parser.error("Unknown command")
    finally:
        if args.command == "scan" and not settings.output.json_lines:
            summary.print_summary()
    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
