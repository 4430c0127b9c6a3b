"""Query generation: search phrasings, identifier variations and the phase plan."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from tgtrace.models import PHASE_NAMES

# ---------------------------------------------------------------------------
# Fixed template vocabulary
# ---------------------------------------------------------------------------

BASE_PATTERNS: tuple[str, ...] = (
    '"{x}"',
    '"@{x}"',
    '"{x}" telegram',
    '"{x}" channel',
    '"{x}" group',
    '"t.me/{x}"',
    "{x} telegram",
    "{x} t.me",
    "{x} channel",
    "{x} group",
    "telegram {x}",
    "channel {x}",
    "join {x}",
    "invite {x}",
    "{x} bot",
    "{x} community",
    "{x} discussion",
)

SITE_PATTERNS: tuple[str, ...] = (
    'site:t.me "{x}"',
    'site:t.me "@{x}"',
    "site:t.me/{x}",
    '"{x}" telegram group OR channel',
    'inurl:t.me "{x}"',
    '"telegram.me/{x}"',
    '"{x}" telegram chat',
    'site:telegram.me "{x}"',
)

TEMPORAL_PATTERNS: tuple[str, ...] = (
    '"{x}" telegram',
    "t.me/{x}",
    "{x} group",
    "{x} channel",
)

REVERSE_QUERIES: tuple[str, ...] = (
    'url:"t.me"',
    'url:"telegram.me"',
    "site:t.me",
    '"t.me/"',
    '"telegram.me/"',
    '"joinchat"',
    '"telegram invite"',
    '"telegram link"',
    '"telegram group"',
    '"telegram channel"',
    "join telegram",
    "telegram join",
    "invite telegram",
    "telegram community",
)

MENTION_PATTERNS: tuple[str, ...] = (
    "u/{x}",
    "/u/{x}",
    "user {x}",
    "@{x}",
    "{x} said",
    "{x} posted",
    "{x} shared",
    "{x} mentioned",
    "{x} wrote",
    "{x} created",
    "by {x}",
    "from {x}",
    "thanks {x}",
    "kudos {x}",
    "credit {x}",
    "source {x}",
    "via {x}",
    "see {x}",
    "check {x}",
    "ask {x}",
    "contact {x}",
)

CONTEXTUAL_PATTERNS: tuple[str, ...] = (
    "{x} community",
    "{x} fans",
    "{x} followers",
    "{x} members",
    "join {x}",
    "follow {x}",
    "subscribe to {x}",
    "check out {x}",
    "recommend {x}",
    "suggest {x}",
    "{x} scam",
    "{x} fake",
    "{x} real",
    "{x} legit",
    "{x} official",
    "{x} verified",
    "{x} bot",
    "{x} content",
    "{x} updates",
    "similar to {x}",
    "like {x}",
    "vs {x}",
)

CROSS_PLATFORMS: tuple[str, ...] = (
    "discord",
    "whatsapp",
    "signal",
    "twitter",
    "instagram",
    "facebook",
    "youtube",
    "twitch",
    "tiktok",
)

CROSS_PATTERNS: tuple[str, ...] = (
    "{x} {p}",
    "{x} and {p}",
    "{x} from {p}",
    "{p} {x}",
)

PRIORITY_SCOPES: tuple[str, ...] = (
    "telegram",
    "crypto",
    "cryptocurrency",
    "bitcoin",
    "ethereum",
    "telegramchannels",
    "TelegramBots",
)

REVERSE_SCOPES: tuple[str, ...] = ("crypto", "cryptocurrency", "bitcoin", "ethereum")

TIME_RANGES: tuple[str, ...] = ("day", "week", "month", "year", "all")

VARIATION_PREFIXES: tuple[str, ...] = ("the", "real", "official", "main", "new", "crypto", "btc")
VARIATION_SUFFIXES: tuple[str, ...] = ("official", "real", "main", "channel", "group", "bot")

_SEPARATORS = ("_", "-", ".")
_TRAILING_DIGITS_RE = re.compile(r"\d+$")
_HANDLE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]{3,30}[A-Za-z0-9]$")

MIN_VARIATION_LENGTH = 3
MAX_VARIATION_LENGTH = 35
DIRECT_LOOKUPS = 10


# ---------------------------------------------------------------------------
# Plan records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Query:
    """One provider call: the text, an optional sub-collection and time range."""

    text: str
    target: str
    scope: str | None = None
    time_range: str | None = None


@dataclass(frozen=True)
class QueryPhase:
    name: str
    queries: list[Query] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate(identifier: str) -> list[str]:
    """Return the base search phrasings for *identifier*, in fixed order."""
    return [p.format(x=identifier) for p in BASE_PATTERNS]


def generate_variations(identifier: str, *, limit: int = 100) -> list[str]:
    """Return mutated spellings of *identifier*, deduplicated and in a stable order.

    Covers case variants, separator insertion/removal, a numeric-suffix sweep,
    fixed prefixes/suffixes and short truncations. Entries outside 3-35
    characters are dropped and the list is capped at *limit*.
    """
    original = identifier.lower()
    found: dict[str, None] = {}

    def add(value: str) -> None:
        found.setdefault(value, None)

    add(original)
    add(identifier.upper())
    add(identifier.capitalize())

    present = [sep for sep in _SEPARATORS if sep in original]
    if present:
        for sep in present:
            add(original.replace(sep, ""))
            for other in _SEPARATORS:
                if other != sep:
                    add(original.replace(sep, other))
    else:
        add(original + "_")
        add(original + "-")
        for i in range(1, len(original)):
            add(original[:i] + "_" + original[i:])
            add(original[:i] + "-" + original[i:])

    base = _TRAILING_DIGITS_RE.sub("", original)
    for n in range(21):
        add(f"{base}{n}")

    for prefix in VARIATION_PREFIXES:
        add(prefix + original)
        add(f"{prefix}_{original}")
    for suffix in VARIATION_SUFFIXES:
        add(original + suffix)
        add(f"{original}_{suffix}")

    for length in range(max(MIN_VARIATION_LENGTH, len(original) - 3), len(original)):
        add(original[:length])

    variations = [
        v for v in found if MIN_VARIATION_LENGTH <= len(v) <= MAX_VARIATION_LENGTH
    ]
    return variations[: max(limit, 0)]


def plan(
    identifier: str,
    *,
    phases: list[str] | None = None,
    max_variations: int = 100,
    max_variation_queries: int = 50,
) -> list[QueryPhase]:
    """Build the ordered phase plan for *identifier*.

    Phases always come back in the canonical order regardless of the order
    of *phases*; queries inside a phase are deterministic.
    """
    wanted = set(phases) if phases is not None else set(PHASE_NAMES)
    variations = generate_variations(identifier, limit=max_variations)
    builders = {
        "direct": lambda: _direct_queries(identifier, variations),
        "site": lambda: _templated(SITE_PATTERNS, identifier),
        "patterns": lambda: _pattern_queries(identifier),
        "variations": lambda: _variation_queries(variations[:max_variation_queries]),
        "temporal": lambda: _temporal_queries(identifier),
        "reverse": lambda: _reverse_queries(identifier),
        "mentions": lambda: _templated(MENTION_PATTERNS, identifier),
        "contextual": lambda: _templated(CONTEXTUAL_PATTERNS, identifier),
        "cross_platform": lambda: _cross_platform_queries(identifier),
    }
    return [QueryPhase(name, builders[name]()) for name in PHASE_NAMES if name in wanted]


# ---------------------------------------------------------------------------
# Phase builders
# ---------------------------------------------------------------------------


def _templated(templates: tuple[str, ...], identifier: str) -> list[Query]:
    return [Query(t.format(x=identifier), target=identifier) for t in templates]


def _direct_queries(identifier: str, variations: list[str]) -> list[Query]:
    handles = [identifier]
    for variation in variations:
        if len(handles) > DIRECT_LOOKUPS:
            break
        if _HANDLE_RE.match(variation) and variation.lower() not in {h.lower() for h in handles}:
            handles.append(variation)
    return [Query(handle, target=handle) for handle in handles]


def _pattern_queries(identifier: str) -> list[Query]:
    queries: list[Query] = []
    for text in generate(identifier):
        queries.append(Query(text, target=identifier))
        queries.extend(Query(text, target=identifier, scope=scope) for scope in PRIORITY_SCOPES)
    return queries


def _variation_queries(variations: list[str]) -> list[Query]:
    queries: list[Query] = []
    for v in variations:
        queries.append(Query(f'"{v}" telegram', target=v))
        queries.append(Query(f'"t.me/{v}"', target=v))
        queries.append(Query(v, target=v, scope="telegram"))
        queries.append(Query(v, target=v, scope="crypto"))
    return queries


def _temporal_queries(identifier: str) -> list[Query]:
    return [
        Query(t.format(x=identifier), target=identifier, time_range=time_range)
        for time_range in TIME_RANGES
        for t in TEMPORAL_PATTERNS
    ]


def _reverse_queries(identifier: str) -> list[Query]:
    queries: list[Query] = []
    for text in REVERSE_QUERIES:
        queries.append(Query(text, target=identifier))
        queries.extend(Query(text, target=identifier, scope=scope) for scope in REVERSE_SCOPES)
    return queries


def _cross_platform_queries(identifier: str) -> list[Query]:
    return [
        Query(t.format(x=identifier, p=platform), target=identifier)
        for platform in CROSS_PLATFORMS
        for t in CROSS_PATTERNS
    ]
