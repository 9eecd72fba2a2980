"""Small text helpers shared by the command builder and the exo writer."""

from __future__ import annotations

UNSPECIFIED = "指定なし"
"""Choice label meaning that an option is left to the transcriber's default."""

HEX_BLOCK_SIZE = 2048
"""Size in bytes of the UTF-16 text block stored in exo text items."""

ELLIPSIS = "…"


def is_arg_valid(value: str) -> bool:
    """Return True if *value* should be passed on as a command-line argument."""
    return bool(value) and value != UNSPECIFIED


def to_hex_string(text: str) -> str:
    """Encode *text* as a fixed-size, zero-padded UTF-16LE block in lower-case hex.

    Text longer than the block is cut off at the block boundary.
    """
    encoded = text.encode("utf-16-le")[:HEX_BLOCK_SIZE]
    return encoded.ljust(HEX_BLOCK_SIZE, b"\0").hex()


def escape_backslashes(text: str) -> str:
    """Double every backslash in *text*."""
    return text.replace("\\", "\\\\")


def truncate_stem(text: str, max_length: int) -> str:
    """Shorten *text* for use as a file stem.

    Text of at least *max_length* characters is cut to *max_length* characters,
    the last of which becomes an ellipsis.
    """
    if max_length <= 0:
        raise ValueError("max_length must be positive")
    if len(text) < max_length:
        return text
    return text[: max_length - 1] + ELLIPSIS