"""Weighted approximate matching of a query against search documents."""

from __future__ import annotations

import sys
from collections import Counter
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from quantomdocs.models import SearchDocument

DEFAULT_KEYS: tuple[tuple[str, float], ...] = (
    ("title", 0.4),
    ("content", 0.3),
    ("category", 0.2),
    ("path", 0.1),
)
DEFAULT_THRESHOLD = 0.3
DEFAULT_MIN_MATCH_LENGTH = 2

_EXACT_SCORE = sys.float_info.epsilon


@dataclass(slots=True)
class Match:
    document: SearchDocument
    score: float


class FuzzyMatcher(Protocol):
    """Anything that can index documents and rank them for a query.

    Scores run from 0 (perfect) to 1 (no relevance); lower ranks first.
    """

    def index(self, documents: Sequence[SearchDocument]) -> Any: ...

    def query(self, index: Any, text: str) -> list[Match]: ...


@dataclass(slots=True)
class _Field:
    text: str
    chars: Counter


@dataclass(slots=True)
class _Record:
    document: SearchDocument
    fields: tuple[_Field, ...]


@dataclass(slots=True)
class FuzzyIndex:
    records: list[_Record]

    def __len__(self) -> int:
        return len(self.records)


def _pattern_masks(pattern: str) -> dict[str, int]:
    masks: dict[str, int] = {}
    for position, char in enumerate(pattern):
        masks[char] = masks.get(char, 0) | (1 << position)
    return masks


def _pieces(pattern: str, max_errors: int) -> tuple[str, ...]:
    """Split ``pattern`` into ``max_errors + 1`` disjoint pieces.

    Any substring within ``max_errors`` edits of the pattern contains at least
    one piece verbatim, so a text holding none of them cannot match. Returns
    no pieces when the budget allows every character to be edited.
    """
    count = max_errors + 1
    if count > len(pattern):
        return ()
    size = len(pattern) // count
    bounds = [i * size for i in range(count)] + [len(pattern)]
    return tuple(pattern[bounds[i] : bounds[i + 1]] for i in range(count))


@dataclass(slots=True)
class _Pattern:
    text: str
    max_errors: int
    chars: Counter
    masks: dict[str, int]
    pieces: tuple[str, ...]

    @classmethod
    def compile(cls, text: str, max_errors: int) -> _Pattern:
        return cls(
            text=text,
            max_errors=max_errors,
            chars=Counter(text),
            masks=_pattern_masks(text),
            pieces=_pieces(text, max_errors),
        )


def _bit_parallel_distance(pattern: _Pattern, text: str) -> int:
    """Myers' bit-vector scan: best edit distance of the pattern over ``text``.

    Column ``j`` of the edit-distance matrix is held as vertical +1/-1 deltas
    in two integers, so each text character costs a handful of bit operations.
    """
    length = len(pattern.text)
    mask = (1 << length) - 1
    high = 1 << (length - 1)
    masks = pattern.masks
    plus, minus = mask, 0
    score = best = length
    for char in text:
        eq = masks.get(char, 0)
        xv = eq | minus
        xh = ((((eq & plus) + plus) & mask) ^ plus) | eq
        h_plus = minus | (mask & ~(xh | plus))
        h_minus = plus & xh
        if h_plus & high:
            score += 1
        elif h_minus & high:
            score -= 1
            if score < best:
                best = score
                if best == 0:
                    break
        h_plus = (h_plus << 1) & mask
        h_minus = (h_minus << 1) & mask
        plus = h_minus | (mask & ~(xv | h_plus))
        minus = h_plus & xv
    return best


def _distance(pattern: _Pattern, text: str, text_chars: Counter | None = None) -> int | None:
    if pattern.text in text:
        return 0
    if pattern.max_errors <= 0:
        return None
    if pattern.pieces and not any(piece in text for piece in pattern.pieces):
        return None

    missing = pattern.chars.copy()
    missing.subtract(text_chars if text_chars is not None else Counter(text))
    if sum(count for count in missing.values() if count > 0) > pattern.max_errors:
        return None

    best = _bit_parallel_distance(pattern, text)
    return best if best <= pattern.max_errors else None


def approximate_distance(
    pattern: str, text: str, max_errors: int, text_chars: Counter | None = None
) -> int | None:
    """Fewest edits turning ``pattern`` into some substring of ``text``.

    Returns ``None`` once more than ``max_errors`` edits are certainly needed.
    The match may start anywhere in ``text``.
    """
    if not pattern:
        return 0
    return _distance(_Pattern.compile(pattern, max_errors), text, text_chars)


class WeightedFuzzyMatcher:
    """Approximate substring matching across weighted document fields.

    Each field is scored by the share of the query that had to be edited to
    find it in the field (0 for a verbatim hit). Fields over ``threshold`` do
    not match. A document's score multiplies ``field_score ** weight`` over
    its matching fields, so heavier fields and more matching fields rank it
    higher.
    """

    def __init__(
        self,
        keys: Sequence[tuple[str, float]] = DEFAULT_KEYS,
        *,
        threshold: float = DEFAULT_THRESHOLD,
        min_match_length: int = DEFAULT_MIN_MATCH_LENGTH,
    ) -> None:
        total = sum(weight for _, weight in keys) or 1.0
        self.keys = tuple((name, weight / total) for name, weight in keys)
        self.threshold = threshold
        self.min_match_length = min_match_length

    def index(self, documents: Sequence[SearchDocument]) -> FuzzyIndex:
        records = []
        for document in documents:
            fields = []
            for name, _ in self.keys:
                value = str(getattr(document, name, "") or "").casefold()
                fields.append(_Field(text=value, chars=Counter(value)))
            records.append(_Record(document=document, fields=tuple(fields)))
        return FuzzyIndex(records=records)

    def query(self, index: FuzzyIndex, text: str) -> list[Match]:
        pattern = text.strip().casefold()
        if len(pattern) < self.min_match_length:
            return []
        compiled = _Pattern.compile(pattern, int(self.threshold * len(pattern)))

        matches: list[Match] = []
        for record in index.records:
            score = self._score(record, compiled)
            if score is not None:
                matches.append(Match(document=record.document, score=score))
        matches.sort(key=lambda match: match.score)
        return matches

    def _score(self, record: _Record, pattern: _Pattern) -> float | None:
        total = 1.0
        matched = False
        for (_, weight), field in zip(self.keys, record.fields):
            if not field.text:
                continue
            errors = _distance(pattern, field.text, field.chars)
            if errors is None:
                continue
            field_score = errors / len(pattern.text)
            if field_score > self.threshold:
                continue
            matched = True
            total *= (field_score or _EXACT_SCORE) ** weight
        return total if matched else None
