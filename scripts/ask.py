#!/usr/bin/env python3
"""
ask.py - Run a question through retrieval (and optionally the chat model)

Prints the sources block that would be injected into the system prompt, or,
with --chat, the generated answer followed by its Légifrance links.

Usage:
    python scripts/ask.py "Que dit l'article 1240 ?" [--chat] [--identity ID]
"""

import argparse
import asyncio

from api.composer.context import format_bundle
from api.orchestrators.chat_orchestrator import ChatOrchestrator
from api.retrieval import RetrievalEngine
from libs.common.logging import configure_logging
from libs.common.settings import get_settings


async def show_sources(question: str) -> None:
    async with RetrievalEngine.from_settings() as engine:
        bundle = await engine.search(question)

    print(f"{bundle.total_sources} source(s) retrieved")
    for source_name, results in (
        ("articles", bundle.articles),
        ("jurisprudence", bundle.jurisprudence),
        ("methodologies", bundle.methodologies),
    ):
        for result in results:
            print(f"  [{source_name}] {result.document.label} ({result.similarity:.3f})")
    print()
    print(format_bundle(bundle) or "(no context)")


async def chat(question: str, identity: str) -> None:
    async with ChatOrchestrator.from_settings() as orchestrator:
        result = await orchestrator.answer(identity, question)

    print(result.answer)
    if result.references:
        print()
        for reference in result.references:
            print(f"- {reference.text}: {reference.url}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Query the MouseLaw retrieval core")
    parser.add_argument("question", help="Question in French")
    parser.add_argument("--chat", action="store_true", help="Generate an answer with the chat model")
    parser.add_argument("--identity", default="cli", help="Rate-limit identity")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)

    if args.chat:
        asyncio.run(chat(args.question, args.identity))
    else:
        asyncio.run(show_sources(args.question))


if __name__ == "__main__":
    main()
