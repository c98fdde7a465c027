"""MouseLaw retrieval and chat core.

This package contains the components that ground answers on French civil law
sources.

Main components:
- retrieval.py: hybrid retrieval engine over articles, case law and methodology
- tools/: reference extraction, similarity scoring, document store, embeddings
- composer/: sources block, system prompt and citation linking
- orchestrators/: rate-limited chat flow
"""

# Intentionally do not re-export runtime objects here.
__all__ = []
