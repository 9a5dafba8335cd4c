import math
import re

from rapidfuzz.distance import Levenshtein

# Similarity a license token needs to count as the profile first/last name
LICENSE_NAME_SIMILARITY = 0.75
# Edits allowed per character of the profile name on ID cards (at least 1)
ID_CARD_EDIT_RATIO = 0.25


def levenshtein_distance(str1: str, str2: str) -> int:
    """Case-insensitive edit distance (insert, delete, substitute)."""
    return Levenshtein.distance(str1.lower(), str2.lower())


def calculate_string_similarity(str1: str, str2: str) -> float:
    """1 - distance / longer length, in [0, 1]; identical strings score 1."""
    s1 = str1.lower()
    s2 = str2.lower()
    if s1 == s2:
        return 1.0
    return 1 - Levenshtein.distance(s1, s2) / max(len(s1), len(s2))


def normalize_string(value: str) -> str:
    value = value.lower()
    value = re.sub(r"[^\w\s]", "", value, flags=re.ASCII)
    value = re.sub(r"\s+", " ", value)
    return value.strip()


def to_percent(score: float) -> int:
    # half-up rounding, Python's round() would round halves to even
    return int(math.floor(score * 100 + 0.5))


def tokens_match_name(tokens, first_name: str, last_name: str,
                      threshold: float = LICENSE_NAME_SIMILARITY):
    """
    Look for the profile first and last name among ``tokens``.

    Each token is compared independently against both names, so order and
    adjacency do not matter.

    Returns:
        tuple: (first_name_match, last_name_match)
    """
    first_match = False
    last_match = False
    for token in tokens:
        if not first_match and calculate_string_similarity(token, first_name) >= threshold:
            first_match = True
        if not last_match and calculate_string_similarity(token, last_name) >= threshold:
            last_match = True
        if first_match and last_match:
            break
    return first_match, last_match


def within_edit_tolerance(token: str, name: str, ratio: float = ID_CARD_EDIT_RATIO) -> bool:
    """True if ``token`` is ``name`` or within max(1, ratio * len(name)) edits of it."""
    if token == name:
        return True
    return levenshtein_distance(token, name) <= max(1, len(name) * ratio)
