"""Debug output for the client.

Lines go through a single sink (``print`` by default) and are dropped unless
the verbosity flag is on. Nothing in the package depends on them.
"""

from typing import Callable

from . import config

VERBOSE = config.DEBUG

_sink: Callable[[str], None] = print


def set_verbose(enabled: bool) -> None:
    global VERBOSE
    VERBOSE = bool(enabled)


def is_verbose() -> bool:
    return VERBOSE


def set_sink(sink: Callable[[str], None]) -> None:
    """Route debug lines somewhere other than stdout (tests, UIs)."""
    global _sink
    _sink = sink if sink is not None else print


def log(line: str) -> None:
    if VERBOSE:
        _sink(f"[DEBUG] {line}")


def truncate(text, limit: int = 500) -> str:
    """Shorten ``text`` for log output, marking the cut with ``...``."""
    text = "" if text is None else str(text)
    if limit <= 0:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
