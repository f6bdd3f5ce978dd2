"""Text canonicalization passes used by the ingredient scanner.

Two independent passes:

- ``normalize_lenient`` keeps word boundaries so legitimate INCI names
  ("Mercuric Chloride", "Benzene-1,4-diol") match their registry spelling.
- ``deobfuscate`` throws away everything but letters, so disguised terms
  ("h-y-d-r-o-q-u-i-n-o-n-e", "f o r m a l d e h y d e") collapse into
  contiguous runs.
"""

from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[^a-z0-9 ]")
_WHITESPACE = re.compile(r"\s+")
_NON_LETTER = re.compile(r"[^a-z]")


def normalize_lenient(text: str | None) -> str:
    """Lowercase, turn punctuation into spaces, collapse whitespace."""
    if not text:
        return ""
    text = _NON_ALNUM.sub(" ", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def deobfuscate(text: str | None) -> str:
    """Lowercase and delete every character that is not a letter."""
    if not text:
        return ""
    return _NON_LETTER.sub("", text.lower())
