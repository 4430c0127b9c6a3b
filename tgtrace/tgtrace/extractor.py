"""Link extraction: find Telegram destinations in the free text of a hit.

Patterns are applied in order, most specific first. Each pattern carries the
weight the scorer later uses as its specificity bonus, and an optional kind
hint that overrides the context-based kind inference.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from tgtrace.dedupe import normalize_destination
from tgtrace.models import Candidate, CandidateKind, ProvenanceEntry, RawHit

logger = logging.getLogger(__name__)

_HANDLE = r"([A-Za-z0-9_]{5,32})(?![A-Za-z0-9_])"
_HOST_PREFIX = r"(?<![\w.-])(?:https?://)?(?:www\.)?"


@dataclass(frozen=True)
class ExtractionPattern:
    name: str
    regex: re.Pattern[str]
    weight: int
    kind_hint: CandidateKind | None = None
    invite: str | None = None  # URL template for invite tokens


PATTERNS: tuple[ExtractionPattern, ...] = (
    # Fully-qualified canonical links
    ExtractionPattern(
        "canonical_tme",
        re.compile(_HOST_PREFIX + r"t\.me/(?:s/)?(?!joinchat/)" + _HANDLE, re.I),
        30,
    ),
    ExtractionPattern(
        "canonical_telegram_me",
        re.compile(_HOST_PREFIX + r"telegram\.me/(?:s/)?(?!joinchat/)" + _HANDLE, re.I),
        30,
    ),
    # Invite links, token kept verbatim
    ExtractionPattern(
        "invite_joinchat",
        re.compile(_HOST_PREFIX + r"(?:t|telegram)\.me/joinchat/([A-Za-z0-9_-]{16,})", re.I),
        28,
        CandidateKind.INVITE_LINK,
        "https://t.me/joinchat/{}",
    ),
    ExtractionPattern(
        "invite_plus",
        re.compile(_HOST_PREFIX + r"(?:t|telegram)\.me/\+([A-Za-z0-9_-]{10,})", re.I),
        28,
        CandidateKind.INVITE_LINK,
        "https://t.me/+{}",
    ),
    # @handle mentions
    ExtractionPattern(
        "mention",
        re.compile(r"(?<![A-Za-z0-9_@./])@([A-Za-z][A-Za-z0-9_]{4,31})(?![A-Za-z0-9_])"),
        22,
    ),
    # Obfuscated links
    ExtractionPattern(
        "obfuscated_spaced",
        re.compile(r"\b(?:t|telegram)\s*\.\s*me\s*/\s*" + _HANDLE, re.I),
        18,
    ),
    ExtractionPattern(
        "obfuscated_bracketed",
        re.compile(
            r"\b(?:t|telegram)\s*(?:\[\.\]|\(\.\)|\[dot\]|\(dot\)|\s+dot\s+)\s*me\s*/\s*" + _HANDLE,
            re.I,
        ),
        18,
    ),
    ExtractionPattern(
        "obfuscated_separator",
        re.compile(r"\b(?:t|telegram)\s*[-_]\s*me\s*[-/_]\s*" + _HANDLE, re.I),
        16,
    ),
    # Contextual phrasings
    ExtractionPattern(
        "context_label",
        re.compile(r"\b(?:telegram|tg|channel|group|chat|community)\s*[:=]\s*@?" + _HANDLE, re.I),
        12,
    ),
    ExtractionPattern(
        "context_join",
        re.compile(r"\b(?:join|follow|check(?:\s+out)?)\s+@?" + _HANDLE, re.I),
        12,
    ),
    ExtractionPattern(
        "context_suffix",
        re.compile(
            r"(?<![\w@/.])([A-Za-z0-9_]{5,32})(?=\s+(?:on\s+)?(?:telegram|channel|group|chat)\b)",
            re.I,
        ),
        10,
    ),
    ExtractionPattern(
        "context_contact",
        re.compile(
            r"\b(?:contact|reach|find)\s+(?:me|us|them)\s+(?:(?:at|on)\s+)?@?" + _HANDLE,
            re.I,
        ),
        10,
    ),
)

INFERENCE_WEIGHT = 5
INFERENCE_CONFIDENCE = 45
INFERENCE_SIMILARITY = 0.6

STOPLIST = frozenset(
    {
        "telegram", "channel", "channels", "group", "groups", "admin", "support",
        "help", "about", "contact", "join", "joinchat", "invite", "link", "links",
        "chat", "news", "info", "update", "updates", "post", "share", "here",
        "there", "official", "main", "real", "true", "new", "old", "community",
        "the", "and", "for", "are", "with", "this", "that", "their", "these",
        "those", "where", "which", "https", "http", "reddit",
    }
)

SUSPICIOUS = frozenset(
    {"admin", "support", "help", "bot", "official", "scam", "fake", "test", "example", "sample"}
)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*[A-Za-z0-9]$")
_TOKEN_RE = re.compile(r"(?<![A-Za-z0-9_])[A-Za-z][A-Za-z0-9_]{4,31}(?![A-Za-z0-9_])")
_TELEGRAM_CONTEXT_RE = re.compile(
    r"telegram|t\.me|joinchat"
    r"|\b(?:tg|channels?|groups?|chats?|broadcast|bots?|messaging|invites?|links?"
    r"|community|discussion|signal|whatsapp)\b",
    re.I,
)
_GROUP_RE = re.compile(r"\b(?:groups?|chats?|joinchat)\b", re.I)
_CHANNEL_RE = re.compile(r"\b(?:channels?|broadcast)\b", re.I)
_BOT_RE = re.compile(r"\bbots?\b", re.I)
_VERIFIED_RE = re.compile(r"\b(?:official|verified)\b|✓|✔", re.I)

MIN_POPULARITY = -10


# ---------------------------------------------------------------------------
# Validation and matching helpers
# ---------------------------------------------------------------------------


def is_valid_identifier(value: str) -> bool:
    """True for a plausible public handle: 5-32 chars, letter first, no
    trailing underscore, and not a common word."""
    return (
        5 <= len(value) <= 32
        and _IDENTIFIER_RE.match(value) is not None
        and value.lower() not in STOPLIST
    )


def flexible_match(text: str, target: str) -> bool:
    """Loose check that *text* talks about *target*.

    A plain substring hit covers the ``@target``, ``/target`` and word-bounded
    forms; otherwise a few one-letter variants of the target are tried.
    """
    if not target:
        return False
    text_l = text.lower()
    target_l = target.lower()
    if target_l in text_l:
        return True
    minor = (target_l + "s", target_l + "er", target_l[:-1], target_l[1:])
    return any(len(v) >= 4 and v in text_l for v in minor)


def levenshtein(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(
                min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + (ca != cb))
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Case-insensitive similarity in [0, 1]; containment counts as 0.8."""
    a_l, b_l = a.lower(), b.lower()
    if a_l == b_l:
        return 1.0
    if not a_l or not b_l:
        return 0.0
    if a_l in b_l or b_l in a_l:
        return 0.8
    longest = max(len(a_l), len(b_l))
    return max(0.0, (longest - levenshtein(a_l, b_l)) / longest)


def infer_kind(text: str, identifier: str) -> CandidateKind:
    if _GROUP_RE.search(text):
        return CandidateKind.GROUP
    if _CHANNEL_RE.search(text):
        return CandidateKind.CHANNEL
    if _BOT_RE.search(text) or identifier.lower().endswith("bot"):
        return CandidateKind.BOT
    return CandidateKind.GENERAL


def is_telegram_related(text: str) -> bool:
    return _TELEGRAM_CONTEXT_RE.search(text) is not None


def looks_verified(hit: RawHit) -> bool:
    """Heuristic only: well-received post, or an official/verified marker."""
    if (hit.popularity or 0) > 10 and (hit.replies or 0) > 5:
        return True
    return _VERIFIED_RE.search(f"{hit.title} {hit.body}") is not None


def is_relevant(hit: RawHit) -> bool:
    """Gate applied before extraction.

    The hit must mention its query target, carry some Telegram context
    (in its text or its sub-collection name) and not be heavily downvoted.
    """
    if (hit.popularity or 0) < MIN_POPULARITY:
        return False
    if hit.target and not flexible_match(hit.text, hit.target):
        return False
    return is_telegram_related(f"{hit.text} {hit.sub_collection or ''}")


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract(hit: RawHit, identifier: str) -> list[Candidate]:
    """Return candidate drafts found in *hit*, at most one per destination.

    Explicit patterns run first; the inference pass only adds destinations
    they did not already produce.
    """
    text = hit.text
    context = f"{hit.title} {hit.body}"
    verified = looks_verified(hit)
    provenance = ProvenanceEntry.from_hit(hit)
    drafts: dict[str, Candidate] = {}

    def add(
        handle: str,
        url: str,
        kind: CandidateKind,
        pattern: str,
        weight: int,
        confidence: int,
    ) -> None:
        key = normalize_destination(url)
        if key in drafts:
            return
        drafts[key] = Candidate(
            identifier=handle,
            url=url,
            kind=kind,
            confidence=max(0, min(100, confidence)),
            verified=verified,
            pattern=pattern,
            pattern_priority=weight,
            provenance=[provenance],
            first_seen=hit.created_at,
        )

    for pattern in PATTERNS:
        for match in pattern.regex.finditer(text):
            handle = match.group(1)
            if pattern.invite:
                add(
                    handle,
                    pattern.invite.format(handle),
                    CandidateKind.INVITE_LINK,
                    pattern.name,
                    pattern.weight,
                    50 + pattern.weight,
                )
                continue
            if not is_valid_identifier(handle):
                continue
            kind = pattern.kind_hint or infer_kind(context, handle)
            add(handle, f"https://t.me/{handle}", kind, pattern.name, pattern.weight, 50 + pattern.weight)

    if is_telegram_related(context) and flexible_match(text, identifier):
        for match in _TOKEN_RE.finditer(context):
            token = match.group(0)
            if is_valid_identifier(token) and similarity(token, identifier) > INFERENCE_SIMILARITY:
                add(
                    token,
                    f"https://t.me/{token}",
                    CandidateKind.INFERRED,
                    "inference",
                    INFERENCE_WEIGHT,
                    INFERENCE_CONFIDENCE,
                )

    if drafts:
        logger.debug("Extracted %d candidate(s) from %s hit", len(drafts), hit.provider)
    return list(drafts.values())
