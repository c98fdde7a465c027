"""Chat orchestrator: rate limit, retrieve, prompt, complete, link citations.

One call to ``ChatOrchestrator.answer`` serves one user message. Retrieval
never fails the request (see ``RetrievalEngine.search``); only the rate
limiter and the chat-completion service can.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import structlog

from api.composer.citations import Reference, parse_references
from api.composer.context import format_bundle
from api.composer.prompts import build_chat_messages, to_chat_payload
from api.llm.mistral_chat import MistralChatClient
from api.middleware.rate_limiter import TokenBucketRateLimiter
from api.models import ChatTurn, ResultBundle, RetrievalOptions
from api.retrieval import RetrievalEngine
from libs.common.settings import Settings, get_settings

logger = structlog.get_logger(__name__)


@dataclass
class ChatAnswer:
    """Generated answer with the sources and context it was grounded on."""

    answer: str
    bundle: ResultBundle
    context: str
    references: List[Reference] = field(default_factory=list)


class ChatOrchestrator:
    def __init__(
        self,
        engine: RetrievalEngine,
        chat_client: MistralChatClient,
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
    ):
        self.engine = engine
        self.chat_client = chat_client
        self.rate_limiter = rate_limiter

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ChatOrchestrator":
        settings = settings or get_settings()
        return cls(
            engine=RetrievalEngine.from_settings(settings),
            chat_client=MistralChatClient.from_settings(settings),
            rate_limiter=TokenBucketRateLimiter.from_settings(settings),
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self.engine.aclose()
        await self.chat_client.aclose()

    async def answer(
        self,
        identity: str,
        message: str,
        history: Sequence[ChatTurn] = (),
        options: Optional[RetrievalOptions] = None,
    ) -> ChatAnswer:
        """Answer ``message`` for ``identity`` using retrieved legal sources.

        Raises:
            RateLimitExceeded: ``identity`` is over its request budget.
            ValueError: ``message`` is blank.
            ChatCompletionError: the chat model failed.
        """
        if self.rate_limiter is not None:
            self.rate_limiter.acquire(identity)

        if not message or not message.strip():
            raise ValueError("message must not be empty")

        start_time = time.time()
        bundle = await self.engine.search(message, options)
        context = format_bundle(bundle)

        messages = build_chat_messages(context, message, history)
        answer = await self.chat_client.complete(to_chat_payload(messages))
        references = parse_references(answer)

        logger.info(
            "Chat answer generated",
            identity=identity,
            sources=bundle.total_sources,
            history_turns=len(history),
            references=len(references),
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return ChatAnswer(answer=answer, bundle=bundle, context=context, references=references)
