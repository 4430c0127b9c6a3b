"""Quality filtering, ranking and per-candidate recommendation labels."""

from __future__ import annotations

import logging

from tgtrace.extractor import STOPLIST, SUSPICIOUS
from tgtrace.models import Candidate, CandidateKind
from tgtrace.scoring import is_specialized

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 30
MIN_IDENTIFIER_LENGTH = 5


def passes_quality(candidate: Candidate) -> bool:
    if candidate.confidence < MIN_CONFIDENCE:
        return False
    if len(candidate.identifier) < MIN_IDENTIFIER_LENGTH:
        return False
    if candidate.kind is CandidateKind.INVITE_LINK:
        # Opaque tokens are not words.
        return True
    name = candidate.identifier.lower()
    return name not in STOPLIST and name not in SUSPICIOUS


def quality_filter(candidates: list[Candidate]) -> list[Candidate]:
    kept = [c for c in candidates if passes_quality(c)]
    if len(kept) != len(candidates):
        logger.debug("Quality filter dropped %d candidate(s)", len(candidates) - len(kept))
    return kept


def rank(candidates: list[Candidate], identifier: str) -> list[Candidate]:
    """Order candidates: exact match first, then confidence, popularity and
    corroboration, all descending. Python's sort is stable, so equal keys
    keep their input order."""
    target = identifier.lower()
    return sorted(
        candidates,
        key=lambda c: (
            c.identifier.lower() != target,
            -c.confidence,
            -c.popularity,
            -c.source_count,
        ),
    )


def confidence_level(confidence: int) -> str:
    if confidence >= 80:
        return "very_high"
    if confidence >= 60:
        return "high"
    if confidence >= 40:
        return "medium"
    if confidence >= 20:
        return "low"
    return "very_low"


def recommendation_reasons(candidate: Candidate, identifier: str) -> list[str]:
    reasons: list[str] = []
    if candidate.identifier.lower() == identifier.lower():
        reasons.append("exact identifier match")
    if candidate.confidence >= 80:
        reasons.append("very high confidence")
    if candidate.popularity > 50:
        reasons.append("popular source post")
    if any(is_specialized(p.sub_collection) for p in candidate.provenance):
        reasons.append("found in a Telegram-focused community")
    if candidate.source_count > 1:
        reasons.append("confirmed by several sources")
    return reasons
