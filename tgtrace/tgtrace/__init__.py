"""tgtrace: OSINT aggregation of Telegram destinations linked to a username."""

from tgtrace.cache import FileResultCache, InMemoryResultCache, ResultCache
from tgtrace.config import Config, LLMConfig
from tgtrace.errors import (
    InvalidSearchError,
    ProviderConfigError,
    ProviderError,
    TgTraceError,
    TransientProviderError,
)
from tgtrace.models import AggregationResult, Candidate, RawHit, SearchOptions
from tgtrace.orchestrator import Aggregator, parse_options, validate_identifier

__version__ = "0.1.0"

__all__ = [
    "Aggregator",
    "AggregationResult",
    "Candidate",
    "Config",
    "FileResultCache",
    "InMemoryResultCache",
    "InvalidSearchError",
    "LLMConfig",
    "ProviderConfigError",
    "ProviderError",
    "RawHit",
    "ResultCache",
    "SearchOptions",
    "TgTraceError",
    "TransientProviderError",
    "parse_options",
    "validate_identifier",
]
