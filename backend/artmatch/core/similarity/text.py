"""String similarity calculators.

Two algorithms live here and are deliberately kept apart:

- Normalized edit-distance similarity (Levenshtein), used for bulk-import
  titles and for artist names.
- Prefix-weighted similarity (Jaro-Winkler), used only for titles in the
  general strategy.

Title normalization also differs: the general strategy strips stop words
(normalize_title), the bulk-import strategy does not (normalize_text).
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from rapidfuzz.distance import Levenshtein

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_ARTIST_SEPARATOR_RE = re.compile(r"[&,]|\band\b", re.IGNORECASE)

WINKLER_PREFIX_SCALE = 0.1
WINKLER_MAX_PREFIX = 4


def normalize_text(value: str | None) -> str:
    """Lowercase, strip punctuation and collapse whitespace.

    Args:
        value: Raw string (None is treated as empty)

    Returns:
        Normalized string, e.g. "The  Red-Horse!" -> "the redhorse"
    """
    if not value:
        return ""
    stripped = _PUNCTUATION_RE.sub("", value.lower())
    return " ".join(stripped.split())


def normalize_title(title: str | None, stop_words: Iterable[str]) -> str:
    """Normalize a title and drop stop words (general strategy only)."""
    stop = set(stop_words)
    return " ".join(word for word in normalize_text(title).split() if word not in stop)


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance (insertions, deletions, substitutions) between two strings."""
    return Levenshtein.distance(a, b)


def levenshtein_similarity(a: str | None, b: str | None) -> float:
    """Edit-distance similarity in [0, 1] over normalized strings.

    Computed as 1 - distance / max(len1, len2). When both strings normalize
    to empty, the result is 1.0 if the original strings are equal and 0.0
    otherwise.

    Example:
        >>> levenshtein_similarity("Red Horse", "red horse!")
        1.0
    """
    norm_a = normalize_text(a)
    norm_b = normalize_text(b)

    if not norm_a and not norm_b:
        return 1.0 if (a or "") == (b or "") else 0.0

    distance = levenshtein_distance(norm_a, norm_b)
    return 1.0 - distance / max(len(norm_a), len(norm_b))


def jaro_similarity(s1: str, s2: str) -> float:
    """Jaro similarity in [0, 1].

    Characters match when equal and no further apart than
    floor(max(len1, len2) / 2) - 1 positions. Half the number of matched
    characters that appear in a different order counts as transpositions.
    """
    if s1 == s2:
        return 1.0

    len1 = len(s1)
    len2 = len(s2)
    if len1 == 0 or len2 == 0:
        return 0.0

    match_window = max(len1, len2) // 2 - 1
    s1_matches = [False] * len1
    s2_matches = [False] * len2

    matches = 0
    for i, char in enumerate(s1):
        start = max(0, i - match_window)
        end = min(i + match_window + 1, len2)
        for j in range(start, end):
            if s2_matches[j] or s2[j] != char:
                continue
            s1_matches[i] = s2_matches[j] = True
            matches += 1
            break

    if matches == 0:
        return 0.0

    # Count matched characters that are out of order
    transpositions = 0
    k = 0
    for i, char in enumerate(s1):
        if not s1_matches[i]:
            continue
        while not s2_matches[k]:
            k += 1
        if char != s2[k]:
            transpositions += 1
        k += 1

    return (matches / len1 + matches / len2 + (matches - transpositions / 2) / matches) / 3


def common_prefix_length(s1: str, s2: str, limit: int = WINKLER_MAX_PREFIX) -> int:
    """Length of the shared prefix, capped at limit."""
    prefix = 0
    for c1, c2 in zip(s1[:limit], s2[:limit], strict=False):
        if c1 != c2:
            break
        prefix += 1
    return prefix


def jaro_winkler_similarity(s1: str, s2: str) -> float:
    """Jaro-Winkler similarity in [0, 1].

    Adds 0.1 * prefix * (1 - jaro) for a common prefix of up to 4
    characters. The boost is applied at every Jaro score, without the
    0.7 boost threshold some implementations use.

    Example:
        >>> round(jaro_winkler_similarity("MARTHA", "MARHTA"), 3)
        0.961
    """
    jaro = jaro_similarity(s1, s2)
    prefix = common_prefix_length(s1, s2)
    return jaro + WINKLER_PREFIX_SCALE * prefix * (1 - jaro)


def split_artists(artists: str | None) -> list[str]:
    """Split an artist credit on ",", "&" and the word "and".

    Example:
        >>> split_artists("Jane Doe, John Smith and Ann Lee")
        ['Jane Doe', 'John Smith', 'Ann Lee']
    """
    if not artists:
        return []
    return [name.strip() for name in _ARTIST_SEPARATOR_RE.split(artists) if name.strip()]


def best_artist_match(
    query_artists: str | None,
    candidate_artists: str | None,
) -> tuple[float, str | None, str | None]:
    """Find the best-matching pair of names between two artist credits.

    Every query name is compared with every candidate name and the highest
    edit-distance similarity wins, so one strong match among several
    collaborators is enough.

    Returns:
        Tuple of (score, query_name, candidate_name); names are None when
        either credit has no names
    """
    best: tuple[float, str | None, str | None] = (0.0, None, None)
    for query_name in split_artists(query_artists):
        for candidate_name in split_artists(candidate_artists):
            score = levenshtein_similarity(query_name, candidate_name)
            if best[1] is None or score > best[0]:
                best = (score, query_name, candidate_name)
    return best


def artist_similarity(query_artists: str | None, candidate_artists: str | None) -> float:
    """Maximum pairwise similarity between the names of two artist credits."""
    return best_artist_match(query_artists, candidate_artists)[0]
