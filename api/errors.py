"""Exception hierarchy for the MouseLaw retrieval core."""

from __future__ import annotations


class MouseLawError(Exception):
    """Base class for all MouseLaw errors."""


class RetrievalError(MouseLawError):
    """A retrieval collaborator failed."""


class EmbeddingError(RetrievalError):
    """The embedding service was unavailable or returned an unusable vector."""


class DocumentStoreError(RetrievalError):
    """A document store read failed."""


class ChatCompletionError(MouseLawError):
    """The chat-completion service failed to produce an answer."""


class RateLimitExceeded(MouseLawError):
    """An identity exhausted its request budget."""

    def __init__(self, identity: str, retry_after_seconds: int):
        self.identity = identity
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Rate limit exceeded for {identity}; retry after {retry_after_seconds}s"
        )
