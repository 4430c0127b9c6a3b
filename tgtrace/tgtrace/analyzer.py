"""Optional AI annotation of ranked candidates via litellm."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import litellm

from tgtrace.config import LLMConfig
from tgtrace.models import Candidate, CandidateAnnotation

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 20

_SENTIMENTS = {"positive", "neutral", "negative"}
_THREATS = {"low", "medium", "high"}

_CODE_FENCE_RE = re.compile(
    r"^\s*```(?:json)?\s*\n(.*?)\n\s*```\s*$",
    re.DOTALL,
)

_SYSTEM = """\
You are an OSINT analyst reviewing Telegram destinations that were found by
searching public sources for a username.

For every candidate, assess:
- credibility: integer 0-100, how likely the destination is genuine and owned
  by the searched identity
- sentiment: positive, neutral or negative tone of the posts that mention it
- threat: low, medium or high risk (scams, phishing, impersonation, malware)
- entities: people, organisations or projects named in the evidence

Answer with JSON only, no prose:
{"candidates": [{"identifier": "...", "credibility": 0, "sentiment": "neutral",
"threat": "low", "entities": []}]}
"""


def _strip_code_fences(content: str) -> str:
    """Remove wrapping ```json fences if the LLM added them."""
    match = _CODE_FENCE_RE.match(content.strip())
    if match:
        return match.group(1).strip()
    return content.strip()


def _describe(candidates: list[Candidate]) -> str:
    lines: list[str] = []
    for c in candidates:
        titles = "; ".join(dict.fromkeys(p.post_title for p in c.provenance if p.post_title))
        lines.append(
            f"- {c.identifier} ({c.kind.value}, confidence {c.confidence}, "
            f"found in {c.found_in}): {titles[:300]}"
        )
    return "\n".join(lines)


def _tags(annotation: CandidateAnnotation) -> list[str]:
    tags: list[str] = []
    if annotation.credibility is not None and annotation.credibility >= 80:
        tags.append("high-credibility")
    if annotation.threat == "high":
        tags.append("high-risk")
    if annotation.sentiment == "positive":
        tags.append("positive-sentiment")
    if annotation.entities:
        tags.append("contains-entities")
    return tags


def _parse_entry(entry: dict[str, Any]) -> CandidateAnnotation:
    credibility = entry.get("credibility")
    try:
        credibility = max(0, min(100, int(credibility))) if credibility is not None else None
    except (TypeError, ValueError):
        credibility = None
    sentiment = str(entry.get("sentiment", "neutral")).lower()
    threat = str(entry.get("threat", "unknown")).lower()
    annotation = CandidateAnnotation(
        credibility=credibility,
        sentiment=sentiment if sentiment in _SENTIMENTS else "neutral",
        threat=threat if threat in _THREATS else "unknown",
        entities=[str(e) for e in entry.get("entities") or []],
    )
    return annotation.model_copy(update={"tags": _tags(annotation)})


class LLMAnalyzer:
    """Annotate candidates with one chat completion.

    Raises on transport or parse failures; the caller decides whether that
    is fatal.
    """

    def __init__(self, llm: LLMConfig | None = None) -> None:
        self.llm = llm or LLMConfig()

    async def __call__(
        self, candidates: list[Candidate], identifier: str
    ) -> dict[str, CandidateAnnotation]:
        batch = candidates[:MAX_CANDIDATES]
        if not batch:
            return {}

        kwargs = self.llm.to_litellm_kwargs()
        kwargs.update({
            "messages": [
                {"role": "system", "content": _SYSTEM},
                {
                    "role": "user",
                    "content": f"Searched identifier: {identifier}\n\nCandidates:\n{_describe(batch)}",
                },
            ],
            "temperature": 0.2,
            "max_tokens": 2048,
            "timeout": 120,
            "num_retries": 2,
        })
        response = await litellm.acompletion(**kwargs)
        if not response.choices:
            raise RuntimeError("LLM returned empty choices list")
        content = response.choices[0].message.content
        if content is None:
            raise RuntimeError("LLM returned None content (possibly content-filtered)")

        data = json.loads(_strip_code_fences(content))
        known = {c.identifier for c in batch}
        annotations: dict[str, CandidateAnnotation] = {}
        for entry in data.get("candidates", []):
            ident = entry.get("identifier")
            if ident in known:
                annotations[ident] = _parse_entry(entry)
        logger.info("AI analysis annotated %d of %d candidate(s)", len(annotations), len(batch))
        return annotations
