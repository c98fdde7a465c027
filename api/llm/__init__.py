"""LLM clients for chat completion."""

from .mistral_chat import MistralChatClient

__all__ = ["MistralChatClient"]
