"""
Similarity Search Module.

Bound similarity-search cost for arbitrarily long notes.

This module implements:
- Evenly spaced embedding sampling (first and last chunk always kept)
- Relevant-note scoring by max cosine similarity per note

Usage:
    from retrieval import select_embeddings_for_similarity_search

    queries = select_embeddings_for_similarity_search(note_embeddings, max_queries=24)
"""

from .relevant_notes import calculate_similarity_scores
from .similarity_sampling import (
    DEFAULT_MAX_SIMILARITY_EMBEDDING_QUERIES,
    sample_embedding_indices,
    select_embeddings_for_similarity_search,
)

__all__ = [
    "DEFAULT_MAX_SIMILARITY_EMBEDDING_QUERIES",
    "sample_embedding_indices",
    "select_embeddings_for_similarity_search",
    "calculate_similarity_scores",
]
