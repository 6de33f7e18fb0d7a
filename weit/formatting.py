from __future__ import annotations

THIN_SPACE = " "


def format_number(n: int) -> str:
    """Format with thin-space thousands separators, e.g. ``12 345``."""
    return f"{n:,}".replace(",", THIN_SPACE)


def pluralize(word: str, count: int) -> str:
    return word if count == 1 else f"{word}s"
