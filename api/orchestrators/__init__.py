"""Request orchestration for the chat endpoint."""

from api.orchestrators.chat_orchestrator import ChatAnswer, ChatOrchestrator

__all__ = ["ChatAnswer", "ChatOrchestrator"]
