"""Aggregation run: query phases against providers, then the candidate pipeline.

Pipeline order is fixed: relevance gate, extract, dedupe, score, quality
filter, option filters, rank, truncate. Stages only start once every query
phase has finished, so the same hits always produce the same ranking.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError

from tgtrace import queries
from tgtrace.cache import ResultCache, cache_key
from tgtrace.config import Config
from tgtrace.dedupe import dedupe
from tgtrace.errors import InvalidSearchError, ProviderConfigError, TransientProviderError
from tgtrace.extractor import extract, is_relevant
from tgtrace.models import (
    AggregationMetadata,
    AggregationResult,
    Candidate,
    CandidateAnnotation,
    ProviderPayload,
    RawHit,
    RunError,
    SearchOptions,
)
from tgtrace.providers.base import BaseProvider
from tgtrace.ranking import quality_filter, rank
from tgtrace.scoring import score
from tgtrace.stats import compute_statistics

logger = logging.getLogger(__name__)

Analyzer = Callable[[list[Candidate], str], Awaitable[dict[str, CandidateAnnotation]]]

_SEARCH_TARGET_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
MIN_TARGET_LENGTH = 3
MAX_TARGET_LENGTH = 64


class RunState(str, Enum):
    IDLE = "idle"
    QUERYING = "querying"
    EXTRACTING = "extracting"
    DEDUPLICATING = "deduplicating"
    SCORING = "scoring"
    FILTERING = "filtering"
    RANKING = "ranking"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


def validate_identifier(raw: Any) -> str:
    """Return the cleaned search target or raise :class:`InvalidSearchError`."""
    if not isinstance(raw, str):
        raise InvalidSearchError(["identifier must be a string"])
    value = raw.strip()
    if value.startswith("@"):
        value = value[1:]
    errors: list[str] = []
    if not value:
        errors.append("identifier is required")
    elif not MIN_TARGET_LENGTH <= len(value) <= MAX_TARGET_LENGTH:
        errors.append(
            f"identifier must be {MIN_TARGET_LENGTH}-{MAX_TARGET_LENGTH} characters long"
        )
    if value and not _SEARCH_TARGET_RE.match(value):
        errors.append("identifier may only contain letters, digits, '_', '.' and '-'")
    if errors:
        raise InvalidSearchError(errors)
    return value


def parse_options(options: SearchOptions | dict[str, Any] | None) -> SearchOptions:
    """Coerce *options* into :class:`SearchOptions`, reporting every problem."""
    if options is None:
        return SearchOptions()
    if isinstance(options, SearchOptions):
        return options
    try:
        return SearchOptions.model_validate(options)
    except ValidationError as exc:
        messages = [
            f"{'.'.join(str(p) for p in err['loc']) or 'options'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise InvalidSearchError(messages) from exc


# ---------------------------------------------------------------------------
# Per-run bookkeeping
# ---------------------------------------------------------------------------


@dataclass
class _ProviderOutcome:
    hits: list[RawHit] = field(default_factory=list)
    errors: list[RunError] = field(default_factory=list)
    attempted: int = 0
    succeeded: int = 0


@dataclass
class _Run:
    identifier: str
    state: RunState = RunState.IDLE
    hits: list[RawHit] = field(default_factory=list)
    errors: list[RunError] = field(default_factory=list)
    disabled: set[str] = field(default_factory=set)
    provider_hits: dict[str, int] = field(default_factory=dict)
    queries_issued: int = 0
    partial: bool = False

    def enter(self, state: RunState) -> None:
        logger.debug("Run %s: %s -> %s", self.identifier, self.state.value, state.value)
        self.state = state


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class Aggregator:
    """Run searches for one identifier across a fixed set of providers.

    ``sleep`` is injectable so tests can observe or skip the rate-limit delays.
    """

    def __init__(
        self,
        providers: list[BaseProvider],
        *,
        config: Config | None = None,
        cache: ResultCache | None = None,
        analyzer: Analyzer | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.providers = list(providers)
        self.config = config or Config()
        self.cache = cache
        self.analyzer = analyzer
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def aggregate(
        self,
        identifier: str,
        options: SearchOptions | dict[str, Any] | None = None,
    ) -> AggregationResult:
        """Search for *identifier* and return ranked candidates.

        Only validation errors are raised. Provider, payload and analysis
        failures are collected in ``result.errors``.
        """
        identifier = validate_identifier(identifier)
        opts = parse_options(options)
        key = cache_key(identifier, opts)

        if opts.use_cache and self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                logger.info("Returning cached result for %s", identifier)
                result = cached.model_copy(deep=True)
                result.metadata.cached = True
                return result

        started = time.monotonic()
        run = _Run(identifier)

        run.enter(RunState.QUERYING)
        plan = queries.plan(
            identifier,
            phases=opts.phases,
            max_variations=self.config.max_variations,
            max_variation_queries=self.config.max_variation_queries,
        )
        for phase in plan:
            await self._run_phase(phase, run)

        ranked, total = self._process(run, opts)
        annotations = await self._annotate(ranked, run, opts)

        result = AggregationResult(
            results=ranked,
            metadata=AggregationMetadata(
                identifier=identifier,
                total_found=total,
                options=opts,
                queries_issued=run.queries_issued,
                raw_hits=len(run.hits),
                provider_hits=run.provider_hits,
                duration_ms=int((time.monotonic() - started) * 1000),
                partial=run.partial,
                annotations=annotations,
            ),
            statistics=compute_statistics(ranked) if opts.include_stats else None,
            errors=run.errors,
        )
        run.enter(RunState.DONE)
        logger.info(
            "Search for %s finished: %d result(s), %d error(s), %d queries",
            identifier,
            len(ranked),
            len(run.errors),
            run.queries_issued,
        )

        if self.cache is not None:
            self.cache.set(key, result.model_copy(deep=True))
        return result

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    async def _run_phase(self, phase: queries.QueryPhase, run: _Run) -> None:
        active = [
            p for p in self.providers if p.serves(phase.name) and p.name not in run.disabled
        ]
        if not active or not phase.queries:
            logger.debug("Phase %s: no provider serves it, skipping", phase.name)
            return

        logger.info(
            "Phase %s: %d queries across %s",
            phase.name,
            len(phase.queries),
            ", ".join(p.name for p in active),
        )
        outcomes = await asyncio.gather(
            *(self._run_provider(provider, phase, run) for provider in active)
        )

        # Merge in provider order so hit order does not depend on timing.
        for provider, outcome in zip(active, outcomes):
            run.hits.extend(outcome.hits)
            run.errors.extend(outcome.errors)
            run.provider_hits[provider.name] = (
                run.provider_hits.get(provider.name, 0) + len(outcome.hits)
            )

        attempted = sum(o.attempted for o in outcomes)
        if attempted and not any(o.succeeded for o in outcomes):
            logger.warning("Phase %s: every query failed, continuing with partial data", phase.name)
            run.enter(RunState.FAILED)
            run.partial = True
            run.enter(RunState.QUERYING)

    async def _run_provider(
        self, provider: BaseProvider, phase: queries.QueryPhase, run: _Run
    ) -> _ProviderOutcome:
        outcome = _ProviderOutcome()
        for query in phase.queries:
            if provider.name in run.disabled:
                break
            if query.scope and not provider.supports_scope:
                continue

            outcome.attempted += 1
            run.queries_issued += 1
            try:
                payload = await self._call_with_retry(provider, query)
            except ProviderConfigError as exc:
                logger.warning("Disabling provider %s: %s", provider.name, exc.message)
                run.disabled.add(provider.name)
                outcome.errors.append(
                    RunError(
                        provider=provider.name,
                        kind="config",
                        message=exc.message,
                        phase=phase.name,
                        query=query.text,
                    )
                )
                break
            except Exception as exc:
                logger.warning(
                    "Query %r failed on %s, skipping", query.text, provider.name, exc_info=True
                )
                outcome.errors.append(
                    RunError(
                        provider=provider.name,
                        kind="transient",
                        message=str(exc) or type(exc).__name__,
                        phase=phase.name,
                        query=query.text,
                    )
                )
            else:
                outcome.succeeded += 1
                outcome.hits.extend(self._to_hits(provider, phase.name, query, payload, outcome))
            finally:
                await self._sleep(self.config.request_delay)
        return outcome

    async def _call_with_retry(
        self, provider: BaseProvider, query: queries.Query
    ) -> ProviderPayload:
        """Call *provider*, retrying transient failures with linear backoff.

        A negative ``retry_attempts`` is treated as zero: the query is always
        tried once.
        """
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(
                    provider.search(query.text, query.scope, time_range=query.time_range),
                    timeout=self.config.query_timeout,
                )
            except ProviderConfigError:
                raise
            except asyncio.TimeoutError:
                error: Exception = TransientProviderError(
                    provider.name, f"timed out after {self.config.query_timeout:g}s"
                )
            except Exception as exc:
                error = exc
            if attempt >= self.config.retry_attempts:
                raise error
            attempt += 1
            logger.debug("Retrying %r on %s (attempt %d)", query.text, provider.name, attempt + 1)
            await self._sleep(self.config.retry_backoff * attempt)

    @staticmethod
    def _to_hits(
        provider: BaseProvider,
        phase: str,
        query: queries.Query,
        payload: ProviderPayload,
        outcome: _ProviderOutcome,
    ) -> list[RawHit]:
        hits: list[RawHit] = []
        for item in payload.items:
            try:
                hits.append(
                    RawHit(
                        **{
                            **item,
                            "origin": provider.origin,
                            "provider": provider.name,
                            "query": query.text,
                            "phase": phase,
                            "target": query.target,
                        }
                    )
                )
            except (ValidationError, TypeError) as exc:
                logger.debug("Dropping unparseable item from %s: %s", provider.name, exc)
                outcome.errors.append(
                    RunError(
                        provider=provider.name,
                        kind="payload",
                        message=f"unparseable item: {exc.__class__.__name__}",
                        phase=phase,
                        query=query.text,
                    )
                )
        return hits

    # ------------------------------------------------------------------
    # Candidate pipeline
    # ------------------------------------------------------------------

    def _process(self, run: _Run, opts: SearchOptions) -> tuple[list[Candidate], int]:
        identifier = run.identifier

        run.enter(RunState.EXTRACTING)
        relevant = [hit for hit in run.hits if is_relevant(hit)]
        drafts: list[Candidate] = []
        for hit in relevant:
            drafts.extend(extract(hit, identifier))
        logger.debug(
            "%d of %d hits relevant, %d drafts extracted", len(relevant), len(run.hits), len(drafts)
        )

        run.enter(RunState.DEDUPLICATING)
        merged = dedupe(drafts)

        run.enter(RunState.SCORING)
        scored = [score(c, identifier) for c in merged]

        run.enter(RunState.FILTERING)
        kept = [c for c in quality_filter(scored) if c.confidence >= opts.min_confidence]
        if opts.sub_collection_filter:
            wanted = opts.sub_collection_filter.lower()
            kept = [
                c
                for c in kept
                if any((p.sub_collection or "").lower() == wanted for p in c.provenance)
            ]

        run.enter(RunState.RANKING)
        ranked = rank(kept, identifier)
        return ranked[: opts.max_results], len(ranked)

    async def _annotate(
        self, ranked: list[Candidate], run: _Run, opts: SearchOptions
    ) -> dict[str, CandidateAnnotation]:
        if not opts.ai_analysis or not ranked:
            return {}
        if self.analyzer is None:
            run.errors.append(
                RunError(provider="analysis", kind="analysis", message="no analyzer configured")
            )
            return {}
        try:
            return await self.analyzer(ranked, run.identifier)
        except Exception as exc:
            logger.warning("AI analysis failed, continuing without annotations", exc_info=True)
            run.errors.append(
                RunError(provider="analysis", kind="analysis", message=str(exc) or type(exc).__name__)
            )
            return {}
