"""Tests for destination normalization and candidate merging."""

from __future__ import annotations

from datetime import datetime, timezone

from tgtrace.dedupe import dedupe, merge, normalize_destination
from tgtrace.models import Candidate, Origin, ProvenanceEntry


def _entry(provider: str, sub: str | None = None) -> ProvenanceEntry:
    return ProvenanceEntry(origin=Origin.SOCIAL_FORUM, provider=provider, sub_collection=sub)


def _candidate(url: str, confidence: int = 50, *providers: str, **kwargs: object) -> Candidate:
    return Candidate(
        identifier=url.rstrip("/").rsplit("/", 1)[-1],
        url=url,
        confidence=confidence,
        provenance=[_entry(p) for p in providers],
        **kwargs,
    )


class TestNormalizeDestination:
    def test_strips_scheme_www_and_slash(self) -> None:
        assert normalize_destination("HTTPS://www.T.me/Sample_Chan/") == "t.me/sample_chan"
        assert normalize_destination("t.me/sample_chan") == "t.me/sample_chan"

    def test_idempotent(self) -> None:
        once = normalize_destination("https://www.t.me/Sample_Chan/")
        assert normalize_destination(once) == once


class TestDedupe:
    def test_two_sources_same_destination(self) -> None:
        a = _candidate("https://t.me/sample_chan", 70, "reddit")
        b = _candidate("https://T.me/Sample_Chan/", 60, "google")
        (survivor,) = dedupe([a, b])
        assert survivor.identifier == "sample_chan"
        assert [p.provider for p in survivor.provenance] == ["reddit", "google"]

    def test_higher_confidence_survives(self) -> None:
        low = _candidate("https://t.me/sample_chan", 40, "reddit")
        high = _candidate("https://t.me/Sample_Chan", 80, "bing")
        (survivor,) = dedupe([low, high])
        assert survivor.identifier == "Sample_Chan"
        assert survivor.confidence == 80
        assert [p.provider for p in survivor.provenance] == ["bing", "reddit"]

    def test_tie_keeps_first(self) -> None:
        first = _candidate("https://t.me/first_name", 50, "reddit", pattern="mention")
        second = _candidate("https://t.me/first_name", 50, "google", pattern="canonical_tme")
        (survivor,) = dedupe([first, second])
        assert survivor.pattern == "mention"

    def test_provenance_is_append_only(self) -> None:
        a = _candidate("https://t.me/sample_chan", 60, "reddit", "reddit")
        b = _candidate("https://t.me/sample_chan", 50, "google", "bing", "telegram")
        (survivor,) = dedupe([a, b])
        assert survivor.source_count == 5

        c = _candidate("https://t.me/sample_chan", 90, "bing")
        (again,) = dedupe([survivor, c])
        assert again.source_count == 6
        assert again.identifier == "sample_chan"

    def test_flags_and_first_seen_are_combined(self) -> None:
        early = datetime(2023, 5, 1, tzinfo=timezone.utc)
        late = datetime(2024, 5, 1, tzinfo=timezone.utc)
        a = _candidate("https://t.me/sample_chan", 70, "reddit", first_seen=late)
        b = _candidate("https://t.me/sample_chan", 60, "google", verified=True, first_seen=early)
        (survivor,) = dedupe([a, b])
        assert survivor.verified is True
        assert survivor.first_seen == early

    def test_order_and_inputs_preserved(self) -> None:
        a = _candidate("https://t.me/alpha_chan", 50, "reddit")
        b = _candidate("https://t.me/beta_chan", 50, "reddit")
        c = _candidate("https://t.me/alpha_chan", 50, "google")
        out = dedupe([a, b, c])
        assert [x.identifier for x in out] == ["alpha_chan", "beta_chan"]
        assert a.source_count == 1
        assert c.source_count == 1

    def test_uniqueness(self) -> None:
        urls = ["https://t.me/a_chan1", "t.me/A_CHAN1", "https://t.me/b_chan2", "www.t.me/b_chan2/"]
        out = dedupe([_candidate(u, 50, "reddit") for u in urls])
        keys = [c.key for c in out]
        assert len(keys) == len(set(keys)) == 2


def test_merge_sizes() -> None:
    a = _candidate("https://t.me/sample_chan", 50, "reddit", "google")
    b = _candidate("https://t.me/sample_chan", 50, "bing")
    merged = merge(a, b)
    assert merged.source_count == a.source_count + b.source_count
    assert merged.source_count >= max(a.source_count, b.source_count)


class TestRepeatedPosts:
    def _cited(self, provider: str, *, post_id: str | None = None, post_url: str | None = None) -> Candidate:
        entry = ProvenanceEntry(
            origin=Origin.SOCIAL_FORUM, provider=provider, post_id=post_id, post_url=post_url
        )
        return Candidate(identifier="sample_chan", url="https://t.me/sample_chan", provenance=[entry])

    def test_same_post_counts_once(self) -> None:
        a = self._cited("reddit", post_id="abc123")
        b = self._cited("reddit", post_id="abc123")
        (survivor,) = dedupe([a, b])
        assert survivor.source_count == 1

    def test_same_url_counts_once(self) -> None:
        a = self._cited("google", post_url="https://example.test/post")
        b = self._cited("google", post_url="https://example.test/post")
        assert merge(a, b).source_count == 1

    def test_same_id_on_another_provider_is_a_new_source(self) -> None:
        a = self._cited("reddit", post_id="abc123")
        b = self._cited("bing", post_id="abc123")
        assert merge(a, b).source_count == 2

    def test_entries_without_reference_are_kept(self) -> None:
        a = self._cited("reddit")
        b = self._cited("reddit")
        assert merge(a, b).source_count == 2
