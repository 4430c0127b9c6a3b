"""CLI entry point for tgtrace."""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import replace

import click

from tgtrace.cache import FileResultCache, InMemoryResultCache, ResultCache
from tgtrace.config import Config
from tgtrace.errors import InvalidSearchError
from tgtrace.export import FORMATS, export_result, write_export
from tgtrace.models import PHASE_NAMES
from tgtrace.orchestrator import Aggregator, parse_options, validate_identifier
from tgtrace.providers import build_providers, provider_names

_NOISY_LOGGERS = ("httpx", "httpcore", "LiteLLM", "litellm", "asyncio")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _build_cache(config: Config) -> ResultCache:
    if config.cache_dir:
        return FileResultCache(config.cache_dir, config.cache_ttl, config.cache_capacity)
    return InMemoryResultCache(config.cache_ttl, config.cache_capacity)


@click.command()
@click.argument("username")
@click.option(
    "--provider", "-p", multiple=True, type=click.Choice(provider_names()),
    help="Provider to query (repeatable, default: all configured)",
)
@click.option(
    "--phase", multiple=True, type=click.Choice(list(PHASE_NAMES)),
    help="Query phase to run (repeatable, default: all)",
)
@click.option("--min-confidence", type=int, default=0, show_default=True, help="Drop results below this confidence")
@click.option("--max-results", type=int, default=1000, show_default=True, help="Maximum number of results")
@click.option("--sub-collection", default=None, help="Only keep results found in this subreddit/site")
@click.option("--stats", is_flag=True, help="Include run statistics")
@click.option("--no-cache", is_flag=True, help="Ignore cached results")
@click.option("--ai", is_flag=True, help="Annotate results with an LLM")
@click.option("--model", "-m", default=None, help="LLM model for --ai (e.g. openai/gpt-4o-mini)")
@click.option("--format", "fmt", type=click.Choice(FORMATS), default="json", show_default=True)
@click.option("--output", "-o", default=None, help="Write to this file instead of stdout")
@click.option("--delay", type=float, default=None, help="Seconds to wait after each provider call")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def main(
    username: str,
    provider: tuple[str, ...],
    phase: tuple[str, ...],
    min_confidence: int,
    max_results: int,
    sub_collection: str | None,
    stats: bool,
    no_cache: bool,
    ai: bool,
    model: str | None,
    fmt: str,
    output: str | None,
    delay: float | None,
    verbose: bool,
) -> None:
    """tgtrace: find Telegram channels and groups linked to USERNAME."""
    _configure_logging(verbose)

    config = Config.from_env()
    if delay is not None:
        config = replace(config, request_delay=delay)
    if model:
        config = replace(config, llm=replace(config.llm, model=model))

    try:
        target = validate_identifier(username)
        options = parse_options(
            {
                "use_cache": not no_cache,
                "max_results": max_results,
                "min_confidence": min_confidence,
                "sub_collection_filter": sub_collection,
                "include_stats": stats,
                "phases": list(phase) or None,
                "ai_analysis": ai,
            }
        )
    except InvalidSearchError as e:
        for message in e.errors:
            click.echo(f"Error: {message}", err=True)
        sys.exit(2)

    providers = build_providers(config, list(provider) or None)
    if not providers:
        click.echo(
            "No providers configured. Set TELEGRAM_BOT_TOKEN, GOOGLE_API_KEY + "
            "GOOGLE_SEARCH_ENGINE_ID, BING_API_KEY or REDDIT_CLIENT_ID + REDDIT_CLIENT_SECRET.",
            err=True,
        )
        sys.exit(1)

    analyzer = None
    if ai:
        from tgtrace.analyzer import LLMAnalyzer

        analyzer = LLMAnalyzer(config.llm)

    aggregator = Aggregator(
        providers,
        config=config,
        cache=_build_cache(config),
        analyzer=analyzer,
    )
    click.echo(
        f"tgtrace: searching {target} with {', '.join(p.name for p in providers)}...",
        err=True,
    )
    result = asyncio.run(aggregator.aggregate(target, options))

    if output:
        path = write_export(result, fmt, output)
        click.echo(f"✓ {len(result.results)} result(s) written to {path}", err=True)
    else:
        click.echo(export_result(result, fmt))

    if result.errors:
        click.echo(f"  {len(result.errors)} recoverable error(s) during the run", err=True)


if __name__ == "__main__":
    main()
