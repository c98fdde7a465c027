#!/usr/bin/env python3
"""
check_progress.py - Report embedding coverage of the three collections

Counts documents (total and with an embedding) in legal_articles, case_law
and methodology_resources, so operators can follow the offline embedding job.

Usage:
    python scripts/check_progress.py [--json]
"""

import argparse
import asyncio
import json
import sys

import structlog

from api.retrieval import RetrievalEngine
from libs.common.logging import configure_logging
from libs.common.settings import get_settings

logger = structlog.get_logger(__name__)


async def check(as_json: bool) -> int:
    settings = get_settings()
    async with RetrievalEngine.from_settings(settings) as engine:
        stats = await engine.source_statistics()

    if as_json:
        print(json.dumps(stats.model_dump(), indent=2))
    else:
        for name, source in stats:
            progress = (source.with_embeddings / source.total * 100) if source.total else 0.0
            print(f"{name:<14} {source.with_embeddings}/{source.total} ({progress:.1f}%)")
            print(f"{'':<14} remaining: {source.total - source.with_embeddings}")

    if not stats.ready:
        logger.warning("No embedded documents found; retrieval will return no sources")
        return 1
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Report embedding coverage per collection")
    parser.add_argument("--json", action="store_true", help="Print statistics as JSON")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    sys.exit(asyncio.run(check(args.json)))


if __name__ == "__main__":
    main()
