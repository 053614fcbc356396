"""
Storage key naming.

Turns an uploaded file name into a URL-safe blob key of the form
``<slug>[-<width>]-<ticks><.ext>``. The tick suffix is strictly increasing
within the process, so two uploads of the same file never share a key.
"""

import re
import time
import threading
import unicodedata
from typing import Optional, Tuple

# Letters NFKD does not decompose into ASCII
_TRANSLITERATIONS = {
    "ß": "ss", "æ": "ae", "œ": "oe", "ø": "o", "đ": "d", "ð": "d",
    "ł": "l", "þ": "th", "ı": "i",
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d", "е": "e", "ё": "e",
    "ж": "zh", "з": "z", "и": "i", "й": "y", "к": "k", "л": "l", "м": "m",
    "н": "n", "о": "o", "п": "p", "р": "r", "с": "s", "т": "t", "у": "u",
    "ф": "f", "х": "kh", "ц": "ts", "ч": "ch", "ш": "sh", "щ": "shch",
    "ъ": "", "ы": "y", "ь": "", "э": "e", "ю": "yu", "я": "ya",
    "є": "ye", "і": "i", "ї": "yi", "ґ": "g", "ў": "u", "ј": "j",
}

_INVALID_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_INVALID_EXTENSION_CHARS = re.compile(r"[^a-z0-9]")


def transliterate(text: str) -> str:
    """Fold text to ASCII, dropping whatever has no approximation."""
    folded = "".join(_TRANSLITERATIONS.get(char, char) for char in text.lower())
    decomposed = unicodedata.normalize("NFKD", folded)
    return decomposed.encode("ascii", "ignore").decode("ascii")


def generate_slug(text: str) -> str:
    """Lower-case, hyphenated, ``[a-z0-9-]`` only. May be empty."""
    slug = transliterate(text)
    slug = _INVALID_CHARS.sub("", slug)
    slug = _WHITESPACE.sub(" ", slug).strip()
    return slug.replace(" ", "-")


def split_file_name(file_name: str) -> Tuple[str, str]:
    """Split a (possibly path-qualified) file name into base name and extension.

    Browsers may send a full client path; only the last segment is kept.
    The extension comes back lower-cased with its dot, or empty.
    """
    name = re.split(r"[\\/]", file_name or "")[-1]
    base, dot, extension = name.rpartition(".")
    if not dot or not base:
        return name, ""

    extension = _INVALID_EXTENSION_CHARS.sub("", extension.lower())
    return base, f".{extension}" if extension else ""


class MonotonicTicks:
    """Strictly increasing 100-nanosecond ticks since the Unix epoch."""

    def __init__(self, clock=time.time_ns):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            ticks = max(self._clock() // 100, self._last + 1)
            self._last = ticks
            return ticks


class SlugNamer:
    """Builds collision-resistant storage keys from original file names."""

    def __init__(self, ticks: Optional[MonotonicTicks] = None):
        self._ticks = ticks or _default_ticks

    def make_key(self, file_name: str, width: Optional[int] = None) -> str:
        base, extension = split_file_name(file_name)

        parts = [generate_slug(base)]
        if width is not None and width > 0:
            parts.append(str(width))
        parts.append(str(self._ticks.next()))

        return "-".join(part for part in parts if part) + extension


_default_ticks = MonotonicTicks()
