"""Tests for query generation and the phase plan."""

from __future__ import annotations

import re

from tgtrace.models import PHASE_NAMES
from tgtrace.queries import (
    BASE_PATTERNS,
    PRIORITY_SCOPES,
    TIME_RANGES,
    generate,
    generate_variations,
    plan,
)


class TestGenerate:
    def test_one_query_per_template_in_order(self) -> None:
        out = generate("cryptoNewsHub")
        assert len(out) == len(BASE_PATTERNS)
        assert out[0] == '"cryptoNewsHub"'
        assert '"t.me/cryptoNewsHub"' in out
        assert "cryptoNewsHub telegram" in out

    def test_deterministic(self) -> None:
        assert generate("alice_x") == generate("alice_x")


class TestGenerateVariations:
    def test_bounds_and_uniqueness(self) -> None:
        out = generate_variations("cryptoNewsHub")
        assert 0 < len(out) <= 100
        assert len(out) == len(set(out))
        assert all(3 <= len(v) <= 35 for v in out)

    def test_case_and_affix_variants(self) -> None:
        out = generate_variations("cryptoNewsHub")
        assert "cryptonewshub" in out
        assert "CRYPTONEWSHUB" in out
        assert "Cryptonewshub" in out
        assert "officialcryptonewshub" in out
        assert "cryptonewshub_official" in out
        assert "crypto_newshub" in out
        assert "cryptonewshub7" in out

    def test_separator_replacement(self) -> None:
        out = generate_variations("alice_b")
        assert "aliceb" in out
        assert "alice-b" in out
        assert "alice.b" in out

    def test_trailing_number_is_replaced(self) -> None:
        out = generate_variations("user42")
        assert "user7" in out
        assert "user20" in out
        assert "user4221" not in out

    def test_truncations(self) -> None:
        out = generate_variations("abcdefgh")
        assert {"abcde", "abcdef", "abcdefg"} <= set(out)
        assert "abcd" not in out

    def test_limit(self) -> None:
        assert len(generate_variations("cryptoNewsHub", limit=10)) == 10

    def test_short_and_odd_identifiers_do_not_raise(self) -> None:
        for ident in ("abc", "a.b", "x-y-z", "___", "123"):
            out = generate_variations(ident)
            assert all(3 <= len(v) <= 35 for v in out)

    def test_long_identifier_drops_oversized_variants(self) -> None:
        out = generate_variations("a" * 34)
        assert all(len(v) <= 35 for v in out)


class TestPlan:
    def test_canonical_phase_order(self) -> None:
        assert [p.name for p in plan("cryptoNewsHub")] == list(PHASE_NAMES)

    def test_subset_keeps_canonical_order(self) -> None:
        phases = plan("cryptoNewsHub", phases=["temporal", "direct"])
        assert [p.name for p in phases] == ["direct", "temporal"]

    def test_direct_lookups_are_handles(self) -> None:
        (direct,) = plan("cryptoNewsHub", phases=["direct"])
        assert direct.queries[0].text == "cryptoNewsHub"
        assert 1 < len(direct.queries) <= 11
        handle = re.compile(r"^[A-Za-z][A-Za-z0-9_]{3,30}[A-Za-z0-9]$")
        assert all(handle.match(q.text) for q in direct.queries)
        assert all(q.target == q.text for q in direct.queries)
        lowered = [q.text.lower() for q in direct.queries]
        assert len(lowered) == len(set(lowered))

    def test_patterns_are_global_then_scoped(self) -> None:
        (patterns,) = plan("cryptoNewsHub", phases=["patterns"])
        assert len(patterns.queries) == len(BASE_PATTERNS) * (1 + len(PRIORITY_SCOPES))
        first = patterns.queries[: 1 + len(PRIORITY_SCOPES)]
        assert first[0].scope is None
        assert [q.scope for q in first[1:]] == list(PRIORITY_SCOPES)
        assert {q.text for q in first} == {'"cryptoNewsHub"'}

    def test_temporal_sweeps_time_ranges(self) -> None:
        (temporal,) = plan("cryptoNewsHub", phases=["temporal"])
        assert len(temporal.queries) == 4 * len(TIME_RANGES)
        assert [q.time_range for q in temporal.queries[::4]] == list(TIME_RANGES)

    def test_variation_queries_are_capped(self) -> None:
        (variations,) = plan("cryptoNewsHub", phases=["variations"], max_variation_queries=5)
        assert len(variations.queries) == 20
        assert variations.queries[0].target == "cryptonewshub"
        assert variations.queries[2].scope == "telegram"
        assert variations.queries[3].scope == "crypto"

    def test_cross_platform_and_mentions(self) -> None:
        phases = {p.name: p for p in plan("alice_x", phases=["mentions", "cross_platform"])}
        assert "u/alice_x" in {q.text for q in phases["mentions"].queries}
        assert "alice_x discord" in {q.text for q in phases["cross_platform"].queries}
        assert len(phases["cross_platform"].queries) == 36

    def test_plan_is_deterministic(self) -> None:
        assert plan("cryptoNewsHub") == plan("cryptoNewsHub")
