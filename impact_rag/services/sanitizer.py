"""
Text Sanitizer

Strips characters that break downstream processing (JSON encoding,
PostgreSQL text columns, tokenizers) from raw document text:

    - NUL and the rest of the C0 control block (U+0000-U+001F)
    - DEL and the C1 control block (U+007F-U+009F)
    - Zero-width space (U+200B)

Runs of line-layout controls (tab, LF, VT, FF, CR) become a single space
so that words and sentences on adjacent lines stay separated. Leading and
trailing whitespace is trimmed afterwards. The function is pure, never
raises, and is idempotent.
"""

from __future__ import annotations

import re
from typing import Final

_LAYOUT_CHARS: Final[re.Pattern[str]] = re.compile("[\t\n\x0b\x0c\r]+")
_UNSAFE_CHARS: Final[re.Pattern[str]] = re.compile("[\x00-\x1f\x7f-\x9f\u200b]")


def sanitize(text: str) -> str:
    """
    Remove control and zero-width characters, then trim.

    Args:
        text: Raw text, possibly empty.

    Returns:
        Sanitized text. Empty input yields an empty string.
    """
    if not text:
        return ""
    text = _LAYOUT_CHARS.sub(" ", text)
    return _UNSAFE_CHARS.sub("", text).strip()
