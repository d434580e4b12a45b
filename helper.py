from __future__ import annotations

import sys
from typing import TextIO

GRAY = "\033[90m"
RESET = "\033[0m"


def print_event_gray(text: str, *, stream: TextIO | None = None) -> None:
    """
    Print a trace line in gray using ANSI escape codes.

    Goes to stderr by default so traces never end up in generated output
    written to stdout. The escape codes are left out when the stream is
    not a terminal.
    """
    stream = stream or sys.stderr
    if stream.isatty():
        print(f"{GRAY}{text}{RESET}", file=stream)
    else:
        print(text, file=stream)
