"""Core data models for tgtrace."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    """Output models: snake_case attributes, camelCase when serialized by alias."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Origin(str, Enum):
    """Which kind of external source produced a hit."""

    SEARCH_ENGINE_A = "search-engine-a"
    SEARCH_ENGINE_B = "search-engine-b"
    SOCIAL_FORUM = "social-forum"
    BOT_API = "bot-api"


class CandidateKind(str, Enum):
    CHANNEL = "channel"
    GROUP = "group"
    BOT = "bot"
    INVITE_LINK = "invite_link"
    GENERAL = "general"
    INFERRED = "inferred"


class RawHit(BaseModel, frozen=True):
    """One item returned by a provider for one query."""

    origin: Origin
    provider: str
    title: str = ""
    body: str = ""
    url: str = ""
    permalink: str | None = None
    popularity: int | None = None
    replies: int | None = None
    sub_collection: str | None = None
    author: str | None = None
    id: str | None = None
    query: str = ""
    phase: str = ""
    target: str = ""
    created_at: datetime | None = None

    @field_validator("title", "body", "url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("created_at", mode="before")
    @classmethod
    def _epoch_to_datetime(cls, value: Any) -> Any:
        # Reddit reports created_utc as epoch seconds.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return datetime.fromtimestamp(value, tz=timezone.utc)
        return value

    @property
    def text(self) -> str:
        return f"{self.title} {self.body} {self.url}"


class ProvenanceEntry(_CamelModel, frozen=True):
    """Evidence that one RawHit contributed to a Candidate."""

    origin: Origin
    provider: str
    sub_collection: str | None = None
    popularity: int | None = None
    replies: int | None = None
    post_url: str | None = None
    post_id: str | None = None
    post_title: str = ""
    author: str | None = None
    query: str = ""
    phase: str = ""
    created_at: datetime | None = None

    @property
    def source_key(self) -> tuple[str, str] | None:
        """Identifies the post behind this entry; None when the provider gave nothing to go on."""
        ref = self.post_id or self.post_url
        return (self.provider, ref) if ref else None

    @property
    def found_in(self) -> str:
        if self.sub_collection:
            return f"r/{self.sub_collection}" if self.origin is Origin.SOCIAL_FORUM else self.sub_collection
        return self.provider

    @classmethod
    def from_hit(cls, hit: RawHit) -> ProvenanceEntry:
        return cls(
            origin=hit.origin,
            provider=hit.provider,
            sub_collection=hit.sub_collection,
            popularity=hit.popularity,
            replies=hit.replies,
            post_url=hit.permalink or hit.url or None,
            post_id=hit.id,
            post_title=hit.title,
            author=hit.author,
            query=hit.query,
            phase=hit.phase,
            created_at=hit.created_at,
        )


class Candidate(_CamelModel):
    """A probable Telegram destination inferred from one or more hits.

    Pipeline stages never mutate a candidate in place; they return updated
    copies via ``model_copy``.
    """

    identifier: str
    url: str
    kind: CandidateKind = CandidateKind.GENERAL
    confidence: int = Field(default=50, ge=0, le=100)
    verified: bool = False
    pattern: str = ""
    pattern_priority: int = 0
    provenance: list[ProvenanceEntry] = Field(default_factory=list)
    first_seen: datetime | None = None

    @property
    def key(self) -> str:
        """Merge key: the destination without scheme, www. or trailing slash."""
        from tgtrace.dedupe import normalize_destination

        return normalize_destination(self.url)

    @property
    def popularity(self) -> int:
        values = [p.popularity for p in self.provenance if p.popularity is not None]
        return max(values) if values else 0

    @property
    def source_count(self) -> int:
        return len(self.provenance)

    @property
    def found_in(self) -> str:
        return self.provenance[0].found_in if self.provenance else "unknown"


PHASE_NAMES: tuple[str, ...] = (
    "direct",
    "site",
    "patterns",
    "variations",
    "temporal",
    "reverse",
    "mentions",
    "contextual",
    "cross_platform",
)


class SearchOptions(_CamelModel, frozen=True):
    """Per-run options accepted by ``Aggregator.aggregate``."""

    model_config = ConfigDict(extra="forbid")

    use_cache: bool = True
    max_results: int = Field(default=1000, ge=1, le=10000)
    min_confidence: int = Field(default=0, ge=0, le=100)
    sub_collection_filter: str | None = None
    include_stats: bool = False
    phases: list[str] | None = None
    ai_analysis: bool = False

    @field_validator("phases")
    @classmethod
    def _known_phases(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        unknown = [p for p in value if p not in PHASE_NAMES]
        if unknown:
            raise ValueError(f"unknown phases: {', '.join(unknown)}")
        return value


ErrorKind = Literal["transient", "config", "payload", "analysis"]


class RunError(_CamelModel, frozen=True):
    """A recoverable failure recorded during a run."""

    provider: str
    kind: ErrorKind
    message: str
    phase: str | None = None
    query: str | None = None


class CandidateAnnotation(_CamelModel, frozen=True):
    """Per-candidate output of the optional AI analysis step."""

    credibility: int | None = None
    sentiment: str = "neutral"
    threat: str = "unknown"
    entities: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class AggregationMetadata(_CamelModel):
    identifier: str
    total_found: int
    timestamp: datetime = Field(default_factory=_utc_now)
    options: SearchOptions
    queries_issued: int = 0
    raw_hits: int = 0
    provider_hits: dict[str, int] = Field(default_factory=dict)
    duration_ms: int = 0
    partial: bool = False
    cached: bool = False
    annotations: dict[str, CandidateAnnotation] = Field(default_factory=dict)


class Statistics(_CamelModel):
    confidence_distribution: dict[str, int]
    kind_distribution: dict[str, int]
    source_distribution: dict[str, int]
    average_confidence: int
    temporal_span: dict[str, datetime | None]


class AggregationResult(_CamelModel):
    """Ranked candidates plus run metadata, optional statistics and errors."""

    results: list[Candidate] = Field(default_factory=list)
    metadata: AggregationMetadata
    statistics: Statistics | None = None
    errors: list[RunError] = Field(default_factory=list)


class ProviderPayload(BaseModel, frozen=True):
    """Items returned by one provider call, normalised to plain dicts."""

    items: list[dict[str, Any]] = Field(default_factory=list)
