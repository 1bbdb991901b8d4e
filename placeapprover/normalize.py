import math
import re

GENERIC_WORDS = ("cafe", "coffee", "shop", "house", "bar", "kitchen")

_APOSTROPHES = re.compile(r"['‘’`]")
_GENERIC = re.compile(r"\b(?:" + "|".join(GENERIC_WORDS) + r")\b", re.IGNORECASE)
_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize_text(s: str) -> str:
    return " ".join(s.strip().lower().split())


def normalize_name(name: str) -> str:
    """Reduce a place name to a comparable form.

    "Joe's Coffee & Bakery" -> "joes and bakery"
    """
    s = name.lower()
    s = _APOSTROPHES.sub("", s)
    s = _GENERIC.sub("", s)
    s = s.replace("&", "and")
    s = _PUNCTUATION.sub("", s)
    return normalize_text(s)


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit insert/delete/substitute costs."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def name_similarity(name1: str, name2: str) -> float:
    """Similarity of two place names as a percentage, one decimal place."""
    n1 = normalize_name(name1)
    n2 = normalize_name(name2)

    if n1 == n2:
        return 100.0
    if not n1 or not n2:
        return 0.0

    max_len = max(len(n1), len(n2))
    score = (max_len - levenshtein(n1, n2)) * 100 / max_len
    # halves round up: 99.25 -> 99.3
    return math.floor(score * 10 + 0.5) / 10
