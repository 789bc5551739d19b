"""Tag parsing and tag overlap calculators.

Candidate tags arrive in several shapes:

- flat map:        {"material": "bronze", "artist": "Jane Doe"}
- structured map:  {"tags": {"material": "bronze"}, "version": "1.0"}
- list of strings: ["bronze", "statue"]
- any of the above serialized as a JSON string

parse_tags() turns every shape into a ParsedTags value up front, so the
scoring code never has to sniff payload shapes. Each strategy then reads the
view it needs: values() for the general strategy (a flat set of strings) and
label_map() for the bulk-import strategy (label -> value pairs).
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, NamedTuple

from .errors import TagParseError
from .text import normalize_text

TagShape = Literal["empty", "flat", "structured", "list"]
TagMatchKind = Literal["label_value", "label", "value"]

ARTIST_TAG_KEYS: tuple[str, ...] = ("artist", "created_by")


def _scalar_to_str(value: Any) -> str | None:
    """Convert a JSON scalar to a tag string; containers and null are dropped."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    return None


@dataclass(frozen=True)
class ParsedTags:
    """Candidate tags after the parse step.

    Attributes:
        shape: Which payload shape was found
        fields: Top-level key/value pairs (flat and structured shapes)
        nested: Key/value pairs of the nested "tags" object (structured shape)
        items: Items of a list payload (list shape)
    """

    shape: TagShape
    fields: tuple[tuple[str, Any], ...] = ()
    nested: tuple[tuple[str, Any], ...] = ()
    items: tuple[Any, ...] = ()

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to compare."""
        return not (self.fields or self.nested or self.items)

    def values(self) -> list[str]:
        """Flat list of string tag values (general strategy view).

        Top-level string values are kept, the string values of a nested
        "tags" object are flattened in, and non-string values are dropped.
        """
        if self.shape == "list":
            return [item for item in self.items if isinstance(item, str)]

        values = [value for _, value in self.fields if isinstance(value, str)]
        values.extend(value for _, value in self.nested if isinstance(value, str))
        return values

    def label_map(self) -> dict[str, str]:
        """Label -> value map (bulk-import strategy view).

        Uses the nested "tags" object when present, otherwise the top-level
        object. Numbers and booleans are stringified; other values are dropped.
        List payloads have no labels and give an empty map.
        """
        source = self.nested if self.shape == "structured" else self.fields
        labels: dict[str, str] = {}
        for label, value in source:
            text = _scalar_to_str(value)
            if text is not None:
                labels[label] = text
        return labels


EMPTY_TAGS = ParsedTags(shape="empty")


def _from_parsed(parsed: Any) -> ParsedTags:
    if isinstance(parsed, Mapping):
        fields = tuple((str(key), value) for key, value in parsed.items())
        nested_tags = parsed.get("tags")
        if isinstance(nested_tags, Mapping):
            nested = tuple((str(key), value) for key, value in nested_tags.items())
            return ParsedTags(shape="structured", fields=fields, nested=nested)
        return ParsedTags(shape="flat", fields=fields)

    if isinstance(parsed, Sequence) and not isinstance(parsed, str | bytes):
        return ParsedTags(shape="list", items=tuple(parsed))

    # JSON scalars (numbers, strings, null) carry no tags
    return EMPTY_TAGS


def parse_tags(raw: str | Mapping[str, Any] | Sequence[Any] | None) -> ParsedTags:
    """Parse a candidate tag payload into a ParsedTags value.

    Args:
        raw: JSON string, already-parsed mapping or list, or None

    Returns:
        ParsedTags (shape "empty" for None, blank strings and JSON scalars)

    Raises:
        TagParseError: If a string payload is not valid JSON or cannot be
            decoded, or the payload has an unsupported type
    """
    if raw is None:
        return EMPTY_TAGS

    if isinstance(raw, str):
        if not raw.strip():
            return EMPTY_TAGS
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise TagParseError(raw, e.msg) from e
        except (ValueError, RecursionError) as e:
            # Oversized integer literals and deeply nested arrays
            raise TagParseError(raw, str(e)) from e
        return _from_parsed(parsed)

    if isinstance(raw, Mapping | Sequence) and not isinstance(raw, bytes):
        return _from_parsed(raw)

    raise TagParseError(repr(raw), f"unsupported tag payload type {type(raw).__name__}")


class TagOverlap(NamedTuple):
    """Jaccard overlap between two tag sets."""

    score: float
    common: list[str]
    intersection_size: int
    union_size: int


def tag_overlap(query_tags: Iterable[str], candidate_tags: Iterable[str]) -> TagOverlap:
    """Jaccard similarity (|intersection| / |union|) over lower-cased tag sets."""
    query_set = {tag.lower() for tag in query_tags}
    candidate_set = {tag.lower() for tag in candidate_tags}

    intersection = query_set & candidate_set
    union = query_set | candidate_set
    score = len(intersection) / len(union) if union else 0.0

    return TagOverlap(
        score=score,
        common=sorted(intersection),
        intersection_size=len(intersection),
        union_size=len(union),
    )


def jaccard_similarity(query_tags: Iterable[str], candidate_tags: Iterable[str]) -> float:
    """Jaccard similarity of two tag collections (case-insensitive)."""
    return tag_overlap(query_tags, candidate_tags).score


class TagMatch(NamedTuple):
    """One query tag matched against a candidate tag."""

    query_label: str
    candidate_label: str
    kind: TagMatchKind


class TagMatchSummary(NamedTuple):
    """Result of fuzzy label/value matching."""

    match_count: int
    matches: list[TagMatch]


def match_tags(
    query_tags: Mapping[str, str],
    candidate_tags: Mapping[str, str],
) -> TagMatchSummary:
    """Fuzzy-match query tags against candidate tags on label or value.

    For each query tag, a candidate tag whose label and value both match
    (after normalization) is tried first, then a label-only match, then a
    value-only match. Each query tag is counted at most once, however many
    candidate tags it matches. Empty labels or values never match.
    """
    candidates = [
        (label, normalize_text(label), normalize_text(value))
        for label, value in candidate_tags.items()
    ]

    matches: list[TagMatch] = []
    for query_label, query_value in query_tags.items():
        norm_label = normalize_text(query_label)
        norm_value = normalize_text(query_value)
        match = _find_tag_match(query_label, norm_label, norm_value, candidates)
        if match is not None:
            matches.append(match)

    return TagMatchSummary(match_count=len(matches), matches=matches)


def _find_tag_match(
    query_label: str,
    norm_label: str,
    norm_value: str,
    candidates: list[tuple[str, str, str]],
) -> TagMatch | None:
    if norm_label and norm_value:
        for label, cand_label, cand_value in candidates:
            if cand_label == norm_label and cand_value == norm_value:
                return TagMatch(query_label, label, "label_value")
    if norm_label:
        for label, cand_label, _ in candidates:
            if cand_label == norm_label:
                return TagMatch(query_label, label, "label")
    if norm_value:
        for label, _, cand_value in candidates:
            if cand_value == norm_value:
                return TagMatch(query_label, label, "value")
    return None


def extract_artist(label_map: Mapping[str, str]) -> str | None:
    """Read a candidate's artist credit from its tags.

    Looks for an "artist" tag first, then "created_by" (labels compared
    case-insensitively). Account or submitter identifiers are never used.
    """
    by_label = {label.strip().lower(): value for label, value in label_map.items()}
    for key in ARTIST_TAG_KEYS:
        value = by_label.get(key)
        if value and value.strip():
            return value.strip()
    return None
