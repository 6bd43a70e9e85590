"""Human readable byte counts."""

from typing import Any

_SUFFIXES = ("", "K", "M", "G", "T")


def readable_size(value: Any) -> str:
    """
    Format a byte count with 1024 steps.

    aria2 reports sizes as decimal strings, so strings are accepted too.
    Callers append the unit themselves ("B", "B/s").

    Examples:
        readable_size("512")   -> "512"
        readable_size(1536)    -> "1.50K"
        readable_size("oops")  -> "0"
    """
    try:
        size = float(value)
    except (TypeError, ValueError):
        return "0"

    if size < 1024:
        return str(int(size))

    index = 0
    while size >= 1024 and index < len(_SUFFIXES) - 1:
        size /= 1024
        index += 1
    return f"{size:.2f}{_SUFFIXES[index]}"
