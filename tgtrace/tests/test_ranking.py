"""Tests for the quality filter, ranking and run statistics."""

from __future__ import annotations

from datetime import datetime, timezone

from tgtrace.models import Candidate, CandidateKind, Origin, ProvenanceEntry
from tgtrace.ranking import (
    confidence_level,
    passes_quality,
    quality_filter,
    rank,
    recommendation_reasons,
)
from tgtrace.stats import compute_statistics, confidence_bucket


def _candidate(
    identifier: str,
    confidence: int = 60,
    *,
    popularity: int | None = None,
    sources: int = 1,
    sub: str | None = None,
    kind: CandidateKind = CandidateKind.GENERAL,
    first_seen: datetime | None = None,
) -> Candidate:
    entry = ProvenanceEntry(
        origin=Origin.SOCIAL_FORUM, provider="reddit", popularity=popularity, sub_collection=sub
    )
    return Candidate(
        identifier=identifier,
        url=f"https://t.me/{identifier}",
        confidence=confidence,
        kind=kind,
        provenance=[entry] * sources,
        first_seen=first_seen,
    )


class TestQuality:
    def test_thresholds(self) -> None:
        assert passes_quality(_candidate("sample_chan", 30))
        assert not passes_quality(_candidate("sample_chan", 29))
        assert not passes_quality(_candidate("abcd", 90))

    def test_stoplist_and_suspicious(self) -> None:
        assert not passes_quality(_candidate("updates", 90))
        assert not passes_quality(_candidate("https", 90))

    def test_invites_skip_word_lists(self) -> None:
        invite = _candidate("community", 60, kind=CandidateKind.INVITE_LINK)
        assert passes_quality(invite)

    def test_filter_keeps_order(self) -> None:
        kept = quality_filter(
            [_candidate("first_one", 50), _candidate("abc", 90), _candidate("second_one", 40)]
        )
        assert [c.identifier for c in kept] == ["first_one", "second_one"]


class TestRank:
    def test_exact_match_beats_confidence(self) -> None:
        ranked = rank([_candidate("other_chan", 99), _candidate("Sample_Chan", 40)], "sample_chan")
        assert [c.identifier for c in ranked] == ["Sample_Chan", "other_chan"]

    def test_tie_breakers(self) -> None:
        a = _candidate("alpha_chan", 70, popularity=5)
        b = _candidate("beta_chan", 70, popularity=90)
        c = _candidate("gamma_chan", 70, popularity=5, sources=3)
        d = _candidate("delta_chan", 80)
        ranked = rank([a, b, c, d], "nobody")
        assert [x.identifier for x in ranked] == ["delta_chan", "beta_chan", "gamma_chan", "alpha_chan"]

    def test_stable_on_equal_keys(self) -> None:
        items = [_candidate(f"chan_{i:02d}", 50) for i in range(6)]
        assert rank(items, "nobody") == items
        assert rank(rank(items, "nobody"), "nobody") == rank(items, "nobody")

    def test_monotone_without_exact_match(self) -> None:
        ranked = rank([_candidate(f"chan_{c}", c) for c in (35, 90, 60, 72)], "nobody")
        confidences = [c.confidence for c in ranked]
        assert confidences == sorted(confidences, reverse=True)


class TestLabels:
    def test_confidence_level(self) -> None:
        assert confidence_level(80) == "very_high"
        assert confidence_level(79) == "high"
        assert confidence_level(40) == "medium"
        assert confidence_level(20) == "low"
        assert confidence_level(19) == "very_low"

    def test_reasons(self) -> None:
        c = _candidate("sample_chan", 85, popularity=120, sources=2, sub="Telegram")
        assert recommendation_reasons(c, "SAMPLE_CHAN") == [
            "exact identifier match",
            "very high confidence",
            "popular source post",
            "found in a Telegram-focused community",
            "confirmed by several sources",
        ]
        assert recommendation_reasons(_candidate("other_chan", 50), "sample_chan") == []

    def test_specialized_reason_matches_keyword_in_name(self) -> None:
        c = _candidate("other_chan", 50, sub="TelegramGroups_DE")
        assert recommendation_reasons(c, "sample_chan") == ["found in a Telegram-focused community"]


class TestStatistics:
    def test_buckets(self) -> None:
        assert confidence_bucket(70) == "high"
        assert confidence_bucket(69) == "medium"
        assert confidence_bucket(39) == "low"

    def test_compute(self) -> None:
        early = datetime(2023, 1, 1, tzinfo=timezone.utc)
        late = datetime(2024, 6, 1, tzinfo=timezone.utc)
        stats = compute_statistics(
            [
                _candidate("alpha_chan", 90, sub="telegram", first_seen=late),
                _candidate("beta_chan", 50, kind=CandidateKind.BOT, first_seen=early),
                _candidate("gamma_chan", 40, sub="telegram"),
            ]
        )
        assert stats.confidence_distribution == {"high": 1, "medium": 2, "low": 0}
        assert stats.kind_distribution == {"general": 2, "bot": 1}
        assert stats.source_distribution == {"r/telegram": 2, "reddit": 1}
        assert stats.average_confidence == 60
        assert stats.temporal_span == {"earliest": early, "latest": late}

    def test_empty(self) -> None:
        stats = compute_statistics([])
        assert stats.average_confidence == 0
        assert stats.confidence_distribution == {"high": 0, "medium": 0, "low": 0}
        assert stats.temporal_span == {"earliest": None, "latest": None}
