"""Confidence scoring.

A candidate's confidence is rebuilt from ``BASE_CONFIDENCE`` by folding the
signed deltas of the signals below, then clamped to [0, 100]. The weights are
defaults; their relative order is what ranking depends on: popularity is the
weakest signal, then similarity, specialization and pattern specificity, and
the scam penalty outweighs any single bonus.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from tgtrace.extractor import similarity
from tgtrace.models import Candidate, CandidateKind

BASE_CONFIDENCE = 50

SIMILARITY_WEIGHT = 20
POPULARITY_TIERS: tuple[tuple[int, int], ...] = ((10, 3), (50, 4), (200, 5))
NEGATIVE_POPULARITY_PENALTY = -10
SPECIALIZED_BONUS = 25
ADJACENT_BONUS = 12
CORROBORATION_STEP = 5
CORROBORATION_CAP = 20
TRUST_BONUS = 8
SCAM_PENALTY = -40
INVITE_PENALTY = -10

# Matched as substrings of the lower-cased sub-collection name.
SPECIALIZED_KEYWORDS: tuple[str, ...] = ("telegram",)
ADJACENT_KEYWORDS: tuple[str, ...] = ("crypto", "bitcoin", "ethereum", "defi", "altcoin")

_TRUST_KEYWORDS = ("official", "verified")
_SCAM_RE = re.compile(r"\b(?:scam|scammer|fake|fraud)\b", re.I)

Signal = Callable[[Candidate, str], int]


def clamp(value: float) -> int:
    return int(max(0, min(100, round(value))))


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------


def similarity_signal(candidate: Candidate, identifier: str) -> int:
    if candidate.kind is CandidateKind.INVITE_LINK:
        return 0
    return round(similarity(candidate.identifier, identifier) * SIMILARITY_WEIGHT)


def pattern_signal(candidate: Candidate, identifier: str) -> int:
    return candidate.pattern_priority


def popularity_signal(candidate: Candidate, identifier: str) -> int:
    values = [p.popularity for p in candidate.provenance if p.popularity is not None]
    if not values:
        return 0
    best = max(values)
    if best < 0:
        return NEGATIVE_POPULARITY_PENALTY
    return sum(bonus for threshold, bonus in POPULARITY_TIERS if best > threshold)


def is_specialized(sub_collection: str | None) -> bool:
    name = (sub_collection or "").lower()
    return any(kw in name for kw in SPECIALIZED_KEYWORDS)


def is_adjacent(sub_collection: str | None) -> bool:
    name = (sub_collection or "").lower()
    return any(kw in name for kw in ADJACENT_KEYWORDS)


def specialization_signal(candidate: Candidate, identifier: str) -> int:
    """Bonus for provenance from Telegram-focused or crypto sub-collections."""
    best = 0
    for entry in candidate.provenance:
        if is_specialized(entry.sub_collection):
            return SPECIALIZED_BONUS
        if is_adjacent(entry.sub_collection):
            best = ADJACENT_BONUS
    return best


def corroboration_signal(candidate: Candidate, identifier: str) -> int:
    extra = max(0, len(candidate.provenance) - 1)
    return min(CORROBORATION_CAP, extra * CORROBORATION_STEP)


def trust_signal(candidate: Candidate, identifier: str) -> int:
    titles = " ".join(p.post_title for p in candidate.provenance).lower()
    if _SCAM_RE.search(titles):
        return SCAM_PENALTY
    return sum(TRUST_BONUS for word in _TRUST_KEYWORDS if word in titles)


def invite_signal(candidate: Candidate, identifier: str) -> int:
    return INVITE_PENALTY if candidate.kind is CandidateKind.INVITE_LINK else 0


SIGNALS: tuple[Signal, ...] = (
    similarity_signal,
    pattern_signal,
    popularity_signal,
    specialization_signal,
    corroboration_signal,
    trust_signal,
    invite_signal,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def contributions(candidate: Candidate, identifier: str) -> dict[str, int]:
    """Per-signal deltas, keyed by signal name without the ``_signal`` suffix."""
    return {
        signal.__name__.removesuffix("_signal"): signal(candidate, identifier)
        for signal in SIGNALS
    }


def score(candidate: Candidate, identifier: str) -> Candidate:
    """Return a copy of *candidate* with its confidence recomputed."""
    total = BASE_CONFIDENCE + sum(contributions(candidate, identifier).values())
    return candidate.model_copy(update={"confidence": clamp(total)})
