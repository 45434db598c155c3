"""File name derivation for delivered notes."""

from __future__ import annotations

import re
import unicodedata

from unidecode import unidecode

UNTITLED = "Untitled"

# letters, combining marks (vowel signs, accents) and decimal digits
_KEPT_CATEGORIES = ("L", "M", "Nd")


def _keep(ch: str) -> bool:
    if ch.isspace():
        return True
    category = unicodedata.category(ch)
    return category[0] in _KEPT_CATEGORIES or category in _KEPT_CATEGORIES


def sanitize_title(title: str, transliterate: bool = False) -> str:
    """Keep only letters, digits and whitespace from a note title.

    Letters with their combining marks and decimal digits from any script
    survive; punctuation, symbols, emoji, underscores and other numerics
    such as superscripts and fractions are dropped. With `transliterate`
    the title is first converted to ASCII so the file name stays portable.
    """
    s = re.sub(r"[\r\n\t]+", " ", title or "")
    if transliterate:
        s = unidecode(s)
    s = "".join(ch for ch in s if _keep(ch))
    return s.strip() or UNTITLED


def note_filename(title: str, created_date: str, transliterate: bool = False) -> str:
    """Return "<YYYY-MM-DD> <title>.md" for a note.

    >>> note_filename("Hello, World! \U0001F600", "2024-03-05")
    '2024-03-05 Hello World.md'
    """
    name = sanitize_title(title, transliterate=transliterate)
    if created_date:
        name = f"{created_date} {name}"
    return f"{name}.md"
