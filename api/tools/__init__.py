"""Retrieval building blocks: extraction, scoring, stores and clients."""
