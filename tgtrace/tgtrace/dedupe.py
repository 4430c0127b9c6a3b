"""Merge candidates that point at the same destination."""

from __future__ import annotations

import logging
import re

from tgtrace.models import Candidate, ProvenanceEntry

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://")


def normalize_destination(url: str) -> str:
    """Lowercase, drop the scheme, a leading ``www.`` and any trailing slash."""
    key = _SCHEME_RE.sub("", url.strip().lower())
    if key.startswith("www."):
        key = key[4:]
    return key.rstrip("/")


def merge(survivor: Candidate, other: Candidate) -> Candidate:
    """Fold *other* into *survivor*, keeping every provenance entry of both.

    An entry for a post the survivor already cites (same provider and post id
    or URL) is skipped, so one post found by several queries counts once.
    """
    seen = {e.source_key for e in survivor.provenance if e.source_key is not None}
    added: list[ProvenanceEntry] = []
    for entry in other.provenance:
        key = entry.source_key
        if key is not None:
            if key in seen:
                continue
            seen.add(key)
        added.append(entry)
    if len(added) != len(other.provenance):
        logger.debug(
            "Skipped %d repeated provenance entry(ies) for %s",
            len(other.provenance) - len(added),
            survivor.identifier,
        )

    first_seen = [t for t in (survivor.first_seen, other.first_seen) if t is not None]
    return survivor.model_copy(
        update={
            "provenance": [*survivor.provenance, *added],
            "verified": survivor.verified or other.verified,
            "first_seen": min(first_seen) if first_seen else None,
        }
    )


def dedupe(candidates: list[Candidate]) -> list[Candidate]:
    """Collapse candidates by normalized destination.

    The higher-confidence candidate survives a collision (the earlier one on a
    tie) and inherits the loser's provenance. Output keeps the order in which
    each destination was first seen.
    """
    merged: dict[str, Candidate] = {}
    for candidate in candidates:
        key = candidate.key
        current = merged.get(key)
        if current is None:
            merged[key] = candidate
        elif candidate.confidence > current.confidence:
            merged[key] = merge(candidate, current)
        else:
            merged[key] = merge(current, candidate)
    logger.debug("Deduplicated %d candidates into %d", len(candidates), len(merged))
    return list(merged.values())
