"""
Bounded embedding sampling for similarity search.

Searching with every chunk embedding of a long note makes relevant-note
search cost grow with note length. Sampling a fixed number of evenly
spaced embeddings bounds the cost while keeping coverage from the start
of the note to its end.
"""

import logging
from typing import List, Sequence

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIMILARITY_EMBEDDING_QUERIES = 24


def sample_embedding_indices(count: int, max_queries: int) -> List[int]:
    """
    Plan which positions to sample.

    Indices are round-half-up(q * (count - 1) / (max_queries - 1)), computed
    in integers so 50 embeddings with 5 queries give [0, 12, 25, 37, 49].

    Args:
        count: Number of embeddings available
        max_queries: Maximum number of queries to run

    Returns:
        Ascending indices into the embedding sequence
    """
    if max_queries <= 0 or count <= 0:
        return []
    if count <= max_queries:
        return list(range(count))
    if max_queries == 1:
        return [count // 2]

    last = count - 1
    span = max_queries - 1
    return [(2 * q * last + span) // (2 * span) for q in range(max_queries)]


def select_embeddings_for_similarity_search(
    embeddings: Sequence,
    max_queries: int = DEFAULT_MAX_SIMILARITY_EMBEDDING_QUERIES,
):
    """
    Select a representative subset of chunk embeddings.

    Args:
        embeddings: Note embeddings in document order (list or 2-D array)
        max_queries: Maximum number of embedding queries

    Returns:
        Selected embeddings in document order; the input itself when no
        sampling is needed
    """
    if max_queries <= 0 or len(embeddings) == 0:
        return []
    if len(embeddings) <= max_queries:
        return embeddings

    indices = sample_embedding_indices(len(embeddings), max_queries)
    logger.debug(f"Sampling {len(indices)}/{len(embeddings)} embeddings for similarity search")

    if isinstance(embeddings, np.ndarray):
        return embeddings[indices]
    return [embeddings[i] for i in indices]
