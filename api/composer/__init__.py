"""Prompt and context composition for the chat model."""
