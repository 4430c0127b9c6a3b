"""Run statistics over the final candidate list."""

from __future__ import annotations

from collections import Counter

from tgtrace.models import Candidate, Statistics


def confidence_bucket(confidence: int) -> str:
    if confidence >= 70:
        return "high"
    if confidence >= 40:
        return "medium"
    return "low"


def compute_statistics(candidates: list[Candidate]) -> Statistics:
    buckets = Counter({"high": 0, "medium": 0, "low": 0})
    buckets.update(confidence_bucket(c.confidence) for c in candidates)
    seen = [c.first_seen for c in candidates if c.first_seen is not None]
    average = round(sum(c.confidence for c in candidates) / len(candidates)) if candidates else 0
    return Statistics(
        confidence_distribution=dict(buckets),
        kind_distribution=dict(Counter(c.kind.value for c in candidates)),
        source_distribution=dict(Counter(c.found_in for c in candidates)),
        average_confidence=average,
        temporal_span={
            "earliest": min(seen) if seen else None,
            "latest": max(seen) if seen else None,
        },
    )
