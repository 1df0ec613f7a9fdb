"""
Display helpers for rank table entries.
"""

import unicodedata


def _display_char(c: str) -> str:
    # Cc, Cf, Cn, Co and Cs all start with "C"
    if unicodedata.category(c).startswith("C"):
        return f"\\u{ord(c):04x}"
    return c


def render_bytes(token: bytes) -> str:
    """
    Render token bytes for a vocabulary listing.

    Partial UTF-8 sequences (common in byte-level tokens) show up as U+FFFD,
    and control or format characters are written as ``\\uXXXX`` escapes so that
    every entry stays on one line.
    """
    return "".join(map(_display_char, token.decode("utf-8", errors="replace")))
