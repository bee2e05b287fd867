# diy_search/matching/similarity.py

"""Multi-signal title similarity used to match products across retailers."""

import re
from dataclasses import dataclass, field

from rapidfuzz.distance import Levenshtein

from diy_search.config.settings import Settings

_PUNCT_RE = re.compile(r"[^\w\s./]|_")
# "." and "/" survive only between two digits ("2.5", "1/2")
_LOOSE_SEPARATOR_RE = re.compile(r"(?<!\d)[./]|[./](?!\d)")
_SPACE_RE = re.compile(r"\s+")
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


def normalize_title(title: str) -> str:
    """Lowercase, punctuation to spaces, whitespace collapsed.

    Decimal points and fraction slashes between digits are kept so
    ``2.5kg`` and ``1/2 inch`` stay recognisable as measurements.
    """
    text = _PUNCT_RE.sub(" ", title.lower())
    text = _LOOSE_SEPARATOR_RE.sub(" ", text)
    return _SPACE_RE.sub(" ", text).strip()


@dataclass(frozen=True)
class MatcherConfig:
    """Weights, threshold and token tables for the matcher."""

    threshold: float = field(default_factory=lambda: Settings.MATCH_THRESHOLD)
    weights: dict[str, float] = field(
        default_factory=lambda: dict(Settings.MATCH_WEIGHTS)
    )
    stop_words: frozenset[str] = Settings.MATCH_STOP_WORDS
    spec_patterns: tuple[re.Pattern[str], ...] = tuple(
        re.compile(pattern) for _, pattern in Settings.SPEC_PATTERNS
    )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "MatcherConfig":
        settings = settings or Settings()
        return cls(
            threshold=settings.MATCH_THRESHOLD,
            weights=dict(settings.MATCH_WEIGHTS),
            stop_words=frozenset(settings.MATCH_STOP_WORDS),
            spec_patterns=tuple(
                re.compile(pattern) for _, pattern in settings.SPEC_PATTERNS
            ),
        )


def key_terms(normalized: str, stop_words: frozenset[str]) -> set[str]:
    """Words longer than two characters that are not stop words."""
    return {
        word
        for word in normalized.split(" ")
        if len(word) > 2 and word not in stop_words
    }


def extract_specs(
    normalized: str, patterns: tuple[re.Pattern[str], ...],
) -> set[str]:
    """Measurement tokens, spaces removed (``"18 v"`` and ``"18v"`` agree)."""
    specs: set[str] = set()
    for pattern in patterns:
        for match in pattern.findall(normalized):
            specs.add(match.replace(" ", ""))
    return specs


def extract_numbers(normalized: str) -> set[str]:
    return set(_NUMBER_RE.findall(normalized))


def _jaccard(a: set[str], b: set[str]) -> float:
    union = a | b
    return len(a & b) / len(union) if union else 0.0


def _partial(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    a_hits = sum(1 for x in a if any(x in y or y in x for y in b))
    b_hits = sum(1 for y in b if any(x in y or y in x for x in a))
    return max(a_hits, b_hits) / max(len(a), len(b))


def _overlap(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / max(len(a), len(b))


def similarity(
    title_a: str, title_b: str, config: MatcherConfig | None = None,
) -> float:
    """Weighted similarity of two titles in ``[0, 1]``.

    Inputs are normalized first, so already-normalized keys can be passed
    as-is.  The score is symmetric in its arguments.
    """
    config = config or MatcherConfig()
    a = normalize_title(title_a)
    b = normalize_title(title_b)
    if a == b:
        return 1.0

    terms_a = key_terms(a, config.stop_words)
    terms_b = key_terms(b, config.stop_words)
    specs_a = extract_specs(a, config.spec_patterns)
    specs_b = extract_specs(b, config.spec_patterns)
    if not (terms_a or terms_b or specs_a or specs_b):
        return 0.0

    scores = {
        "term": _jaccard(terms_a, terms_b),
        "spec": _jaccard(specs_a, specs_b),
        "partial": _partial(terms_a, terms_b),
        "numbers": _overlap(extract_numbers(a), extract_numbers(b)),
    }
    # Edit distance alone never makes unrelated titles similar
    if not any(scores.values()):
        return 0.0
    scores["levenshtein"] = Levenshtein.normalized_similarity(a, b)

    total = sum(
        config.weights.get(name, 0.0) * value
        for name, value in scores.items()
    )
    return min(total, 1.0)
