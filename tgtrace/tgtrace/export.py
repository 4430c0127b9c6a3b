"""Serialize an AggregationResult as JSON, CSV or a text summary."""

from __future__ import annotations

import csv
import io
import json
from collections import Counter
from pathlib import Path
from typing import Any

from tgtrace.models import AggregationResult, Candidate
from tgtrace.ranking import confidence_level, recommendation_reasons
from tgtrace.stats import compute_statistics

FORMATS = ("json", "csv", "summary")

CSV_COLUMNS = [
    "Identifier",
    "URL",
    "Kind",
    "Confidence",
    "Level",
    "Source",
    "Popularity",
    "Sources",
    "First seen",
]

SUMMARY_TOP = 10


def to_json(result: AggregationResult) -> str:
    data: dict[str, Any] = result.model_dump(mode="json", by_alias=True)
    identifier = result.metadata.identifier
    for entry, candidate in zip(data["results"], result.results):
        entry["confidenceLevel"] = confidence_level(candidate.confidence)
        entry["reasons"] = recommendation_reasons(candidate, identifier)
    return json.dumps(data, indent=2, ensure_ascii=False)


def to_csv(result: AggregationResult) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for c in result.results:
        writer.writerow(
            [
                c.identifier,
                c.url,
                c.kind.value,
                c.confidence,
                confidence_level(c.confidence),
                c.found_in,
                c.popularity,
                c.source_count,
                c.first_seen.isoformat() if c.first_seen else "",
            ]
        )
    return buf.getvalue()


def _top_line(index: int, candidate: Candidate, identifier: str) -> str:
    line = f"{index}. {candidate.identifier} ({candidate.confidence}%) - {candidate.url}"
    reasons = recommendation_reasons(candidate, identifier)
    if reasons:
        line += f"\n   {', '.join(reasons)}"
    return line


def to_summary(result: AggregationResult) -> str:
    """Human-readable report: counts, distributions and the top results."""
    meta = result.metadata
    stats = result.statistics or compute_statistics(result.results)
    buckets = stats.confidence_distribution

    lines = [
        f"tgtrace report for {meta.identifier}",
        "=" * 40,
        "",
        f"Results: {len(result.results)} (of {meta.total_found} found)",
        f"High confidence (>=70): {buckets.get('high', 0)}",
        f"Medium confidence (40-69): {buckets.get('medium', 0)}",
        f"Low confidence (<40): {buckets.get('low', 0)}",
        f"Average confidence: {stats.average_confidence}%",
        f"Queries issued: {meta.queries_issued}, raw hits: {meta.raw_hits}",
    ]
    if meta.cached:
        lines.append("(served from cache)")
    if meta.partial:
        lines.append("Warning: at least one query phase failed entirely")

    if stats.kind_distribution:
        lines += ["", "Kinds:"]
        for kind, count in Counter(stats.kind_distribution).most_common():
            lines.append(f"- {kind}: {count}")

    if stats.source_distribution:
        lines += ["", "Top sources:"]
        for source, count in Counter(stats.source_distribution).most_common(SUMMARY_TOP):
            lines.append(f"- {source}: {count}")

    if result.results:
        lines += ["", f"Top {min(SUMMARY_TOP, len(result.results))} results:"]
        for i, candidate in enumerate(result.results[:SUMMARY_TOP], 1):
            lines.append(_top_line(i, candidate, meta.identifier))

    if result.errors:
        lines += ["", f"Errors ({len(result.errors)}):"]
        for provider, count in Counter(e.provider for e in result.errors).most_common():
            lines.append(f"- {provider}: {count}")

    return "\n".join(lines) + "\n"


def export_result(result: AggregationResult, fmt: str = "json") -> str:
    fmt = fmt.lower()
    if fmt == "json":
        return to_json(result)
    if fmt == "csv":
        return to_csv(result)
    if fmt == "summary":
        return to_summary(result)
    raise ValueError(f"Unknown export format: {fmt!r} (expected one of {', '.join(FORMATS)})")


def write_export(result: AggregationResult, fmt: str, path: str) -> Path:
    """Write the exported result to *path*, creating parent directories."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(export_result(result, fmt), encoding="utf-8")
    return out
