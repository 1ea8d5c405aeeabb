"""
Free-text order parsing. Used by the store for chat input.
Never raises on odd input; returns an empty list (or None for confirmations) instead.
"""
import re
from typing import List, Optional, Tuple

from .catalog import VEGETABLES, VegetableType


NEGATION_WORDS = frozenset({"no", "not", "don't", "dont", "never", "hate"})
PROCEED_WORDS = frozenset({"proceed", "yes", "bring"})
SCRATCH_WORDS = frozenset({"scratch", "no", "cancel"})

MAX_TYPO_DISTANCE = 3

_PHRASE_SPLIT_RE = re.compile(r"[,.;]")
_WORD_RE = re.compile(r"[a-z']+")
_INT_RE = re.compile(r"^\+?\d+$")
_STRIP_CHARS = "!?:\"()[]{}"


def levenshtein_distance(a: str, b: str) -> int:
    """Classic single-character edit distance (insert, delete, substitute cost 1)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                cur.append(prev[j - 1])
            else:
                cur.append(min(prev[j - 1], prev[j], cur[j - 1]) + 1)
        prev = cur
    return prev[-1]


def find_closest_vegetable(word: str) -> Optional[VegetableType]:
    """Exact name (or name + 's') first, then the nearest spelling under MAX_TYPO_DISTANCE."""
    lower = (word or "").strip(_STRIP_CHARS).lower()
    if not lower:
        return None

    for veg in VEGETABLES:
        name = veg.value.lower()
        if lower == name or lower == name + "s":
            return veg

    best: Optional[VegetableType] = None
    min_dist = MAX_TYPO_DISTANCE
    for veg in VEGETABLES:
        name = veg.value.lower()
        dist = min(levenshtein_distance(name, lower), levenshtein_distance(name + "s", lower))
        if dist < min_dist:
            min_dist = dist
            best = veg
    return best


def _words(text: str) -> List[str]:
    return _WORD_RE.findall((text or "").lower())


def is_negated(phrase: str) -> bool:
    return any(w in NEGATION_WORDS for w in _words(phrase))


def _parse_count(token: str) -> Optional[int]:
    token = token.strip(_STRIP_CHARS)
    if not _INT_RE.match(token):
        return None
    value = int(token)
    return value if value > 0 else None


def parse_user_order(text: str) -> List[Tuple[VegetableType, int]]:
    """
    Parse "I want 3 tomatoes, 2 corn" style requests into (type, count) pairs.
    Phrases holding a negation word are dropped whole. Duplicates are not merged.
    """
    orders: List[Tuple[VegetableType, int]] = []
    for phrase in _PHRASE_SPLIT_RE.split((text or "").lower()):
        if is_negated(phrase):
            continue
        tokens = phrase.split()
        i = 0
        while i < len(tokens):
            count = _parse_count(tokens[i])
            if count is None:
                i += 1
                continue
            found: Optional[VegetableType] = None
            consumed = i
            for ahead in (i + 1, i + 2):
                if ahead < len(tokens):
                    found = find_closest_vegetable(tokens[ahead])
                    if found:
                        consumed = ahead
                        break
            if found:
                orders.append((found, count))
            i = consumed + 1
    return orders


def parse_confirmation(text: str) -> Optional[str]:
    """Read a shortage resolution: 'PROCEED', 'SCRATCH', or None when unclear."""
    words = set(_words(text))
    if words & PROCEED_WORDS:
        return "PROCEED"
    if words & SCRATCH_WORDS:
        return "SCRATCH"
    return None
