"""Entry point for the eazyinput CLI.

Reads one line with the modal editor and prints it to stdout. When stdin is
not a terminal, or the terminal type cannot be driven, the line is read with
plain buffered input instead.
"""

from __future__ import annotations

import argparse
import logging
import sys

from eazyinput.editor import read_line
from eazyinput.errors import (
    EazyInputError,
    NoUserInputError,
    NotATerminalError,
    UnsupportedTerminalError,
)

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="eazyinput",
        description="Read a line with vi-style editing (i: insert, ctrl+d: normal, enter: accept, ctrl+c: abort)",
    )
    parser.add_argument("--prompt", default="> ", help="Prompt to display (default: '> ')")
    parser.add_argument(
        "--log-level",
        default="warning",
        choices=["debug", "info", "warning", "error"],
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Write logs to this file (default: no logging; stderr shares the screen with the editor)",
    )
    return parser.parse_args(argv)


def _read_plain_line(prompt: str) -> bytes:
    sys.stdout.write(prompt)
    sys.stdout.flush()
    line = sys.stdin.buffer.readline()
    if not line:
        raise NoUserInputError("end of input")
    return line.rstrip(b"\r\n")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=getattr(logging, args.log_level.upper()),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    else:
        # Keep warnings off the screen without creating a file
        logging.getLogger().addHandler(logging.NullHandler())

    try:
        try:
            line = read_line(args.prompt)
        except (NotATerminalError, UnsupportedTerminalError) as e:
            logger.info("falling back to plain input: %s", e)
            line = _read_plain_line(args.prompt)
    except NoUserInputError:
        return 1
    except EazyInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    sys.stdout.buffer.write(line + b"\n")
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
