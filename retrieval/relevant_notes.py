"""
Relevant-note scoring from sampled chunk embeddings.

Each sampled embedding of the active note is searched individually (no
averaging) and results are aggregated by the maximum score per note path.
"""

import logging
from typing import Dict, Mapping, Optional, Sequence

import numpy as np

from shared.config import get_settings

from .similarity_sampling import select_embeddings_for_similarity_search

logger = logging.getLogger(__name__)


def _normalize_rows(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    return vectors / (norms + 1e-10)  # Avoid division by zero


def calculate_similarity_scores(
    note_embeddings: Sequence,
    candidates: Mapping[str, Sequence],
    current_path: Optional[str] = None,
    max_queries: Optional[int] = None,
    max_k: Optional[int] = None,
) -> Dict[str, float]:
    """
    Score candidate notes against the active note.

    Args:
        note_embeddings: Active note's chunk embeddings in document order
        candidates: Note path to that note's chunk embeddings
        current_path: Active note path, excluded from results
        max_queries: Maximum number of sampled query embeddings (defaults to settings)
        max_k: Maximum number of notes returned (defaults to settings)

    Returns:
        Note path to highest cosine similarity, best first
    """
    settings = get_settings().relevant_notes
    if max_queries is None:
        max_queries = settings.max_similarity_queries
    if max_k is None:
        max_k = settings.max_k

    selected = select_embeddings_for_similarity_search(note_embeddings, max_queries)
    if len(selected) == 0 or not candidates:
        return {}

    queries = _normalize_rows(np.asarray(selected, dtype=float))
    scores: Dict[str, float] = {}

    for path, vectors in candidates.items():
        if path == current_path:
            continue

        matrix = np.asarray(vectors, dtype=float)
        if matrix.size == 0:
            continue
        if matrix.ndim == 1:
            matrix = matrix.reshape(1, -1)

        similarities = queries @ _normalize_rows(matrix).T
        scores[path] = float(similarities.max())

    if len(selected) < len(note_embeddings):
        logger.info(
            f"Relevant notes: sampled {len(selected)}/{len(note_embeddings)} embeddings"
            + (f" for {current_path}" if current_path else "")
        )

    ranked = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)[:max_k]
    return dict(ranked)
