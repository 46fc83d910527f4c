#!/usr/bin/env python3
import argparse
import asyncio
import json
import os
import sys
import time
from typing import Any, Dict, List

from dotenv import load_dotenv


def _duration_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


def _summarize(candidate) -> Dict[str, Any]:
    return {
        "rank": getattr(candidate, "rank", None),
        "title": candidate.title,
        "source": candidate.source.value,
        "source_id": candidate.source_id,
        "release_date": candidate.release_date,
        "platforms": candidate.platforms,
        "developer": candidate.developer,
        "confidence": round(candidate.confidence, 3),
        "enhanced": bool(
            candidate.search_metadata and candidate.search_metadata.enhanced_with_wikipedia
        ),
    }


async def probe_provider(provider, query: str) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "provider": provider.id,
        "provider_name": provider.name,
        "search_ms": None,
        "result_count": 0,
        "results": [],
    }

    start = time.time()
    candidates = await provider.fetch(query)
    result["search_ms"] = _duration_ms(start)
    result["result_count"] = len(candidates)
    result["results"] = [_summarize(c) for c in candidates]
    return result


async def probe_search(orchestrator, query: str) -> Dict[str, Any]:
    start = time.time()
    results = await orchestrator.search(query)
    return {
        "provider": "orchestrator",
        "search_ms": _duration_ms(start),
        "result_count": len(results),
        "results": [_summarize(r) for r in results],
        "statistics": orchestrator.get_search_statistics(),
    }


async def run(args: argparse.Namespace) -> List[Dict[str, Any]]:
    from gameshelf_app.metadata.providers import (  # pylint: disable=import-outside-toplevel
        WikidataProvider,
        WikipediaProvider,
    )
    from gameshelf_app.search import SearchOrchestrator  # pylint: disable=import-outside-toplevel

    if args.provider:
        provider_cls = {"wikidata": WikidataProvider, "wikipedia": WikipediaProvider}[args.provider]
        provider = provider_cls()
        try:
            return [await probe_provider(provider, args.query)]
        finally:
            await provider.close()

    async with SearchOrchestrator() as orchestrator:
        return [await probe_search(orchestrator, args.query)]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a game search against the live knowledge bases.")
    parser.add_argument("--query", default="breath of the wild", help="Search query to test.")
    parser.add_argument(
        "--provider",
        choices=("wikidata", "wikipedia"),
        default=None,
        help="Query a single provider instead of the full search."
    )
    parser.add_argument(
        "--output",
        default="instance/search_probe.json",
        help="Output JSON report path."
    )
    parser.add_argument("--env", default=".env", help="Path to .env file.")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    if args.env and os.path.exists(args.env):
        load_dotenv(args.env)

    sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

    probes = asyncio.run(run(args))

    for probe in probes:
        print(f"[{probe['provider']}] {probe['result_count']} results in {probe['search_ms']}ms")
        for item in probe["results"]:
            label = f"#{item['rank']} " if item["rank"] else ""
            print(f"  {label}{item['title']} ({item['source']}, confidence {item['confidence']})")

    report = {
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
        "query": args.query,
        "provider": args.provider or "all",
        "probes": probes,
    }

    output_dir = os.path.dirname(args.output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(args.output, "w", encoding="utf-8") as handle:
        json.dump(report, handle, indent=2, sort_keys=True, default=str)

    print(f"Wrote report to {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
