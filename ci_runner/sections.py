"""Collapsible log sections understood by the CI host."""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime

RULE = "=" * 76


def now() -> str:
    """Timestamp used in section headers, in the format of ``date``."""
    return datetime.now().astimezone().strftime("%a %d %b %Y %H:%M:%S %Z")


def start_section(title: str) -> None:
    print()
    print(f">>> startsection {title} <<<")
    print(RULE)


def stop_section() -> None:
    print(RULE)
    print(">>> stopsection <<<")


@contextmanager
def section(title: str) -> Generator[None, None, None]:
    """Print start/stop markers around the body, even if it raises."""
    start_section(title)
    try:
        yield
    finally:
        stop_section()
