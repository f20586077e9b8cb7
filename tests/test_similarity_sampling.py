"""Tests for embedding sampling and relevant-note scoring."""

import numpy as np
import pytest
from retrieval.relevant_notes import calculate_similarity_scores
from retrieval.similarity_sampling import (
    sample_embedding_indices,
    select_embeddings_for_similarity_search,
)


def build_embeddings(count):
    """Deterministic one-dimensional embeddings carrying their own index."""
    return [[float(i)] for i in range(count)]


class TestSelectEmbeddings:
    def test_returns_all_when_under_limit(self):
        embeddings = build_embeddings(4)
        assert select_embeddings_for_similarity_search(embeddings, 8) is embeddings

    def test_empty_when_max_queries_is_zero(self):
        assert select_embeddings_for_similarity_search(build_embeddings(6), 0) == []
        assert select_embeddings_for_similarity_search(build_embeddings(6), -3) == []

    def test_empty_input(self):
        assert select_embeddings_for_similarity_search([], 5) == []

    def test_evenly_distributed_when_over_limit(self):
        selected = select_embeddings_for_similarity_search(build_embeddings(50), 5)
        assert [e[0] for e in selected] == [0, 12, 25, 37, 49]

    def test_middle_embedding_for_single_query(self):
        assert select_embeddings_for_similarity_search(build_embeddings(9), 1) == [[4.0]]
        assert select_embeddings_for_similarity_search(build_embeddings(10), 1) == [[5.0]]

    @pytest.mark.parametrize("count,max_queries", [(3, 2), (25, 24), (100, 7), (1000, 24)])
    def test_endpoints_always_included(self, count, max_queries):
        selected = select_embeddings_for_similarity_search(build_embeddings(count), max_queries)
        assert len(selected) == max_queries
        assert selected[0] == [0.0]
        assert selected[-1] == [float(count - 1)]

    @pytest.mark.parametrize("count,max_queries", [(25, 24), (100, 7), (1000, 24)])
    def test_indices_unique_and_ascending(self, count, max_queries):
        indices = sample_embedding_indices(count, max_queries)
        assert indices == sorted(set(indices))

    def test_default_limit(self):
        selected = select_embeddings_for_similarity_search(build_embeddings(500))
        assert len(selected) == 24

    def test_numpy_input(self):
        embeddings = np.arange(50, dtype=float).reshape(50, 1)
        selected = select_embeddings_for_similarity_search(embeddings, 5)
        assert isinstance(selected, np.ndarray)
        assert selected[:, 0].tolist() == [0, 12, 25, 37, 49]


class TestSimilarityScores:
    def test_max_score_per_note(self):
        note = [[1.0, 0.0], [0.0, 1.0]]
        candidates = {
            "a.md": [[1.0, 0.0], [-1.0, 0.0]],
            "b.md": [[1.0, 1.0]],
        }
        scores = calculate_similarity_scores(note, candidates)

        assert list(scores) == ["a.md", "b.md"]
        assert scores["a.md"] == pytest.approx(1.0)
        assert scores["b.md"] == pytest.approx(np.sqrt(0.5))

    def test_excludes_current_note(self):
        note = [[1.0, 0.0]]
        candidates = {"self.md": [[1.0, 0.0]], "other.md": [[0.0, 1.0]]}
        scores = calculate_similarity_scores(note, candidates, current_path="self.md")
        assert list(scores) == ["other.md"]

    def test_caps_to_top_k(self):
        note = [[1.0, 0.0]]
        candidates = {f"n{i}.md": [[1.0, i / 10]] for i in range(10)}
        scores = calculate_similarity_scores(note, candidates, max_k=3)
        assert list(scores) == ["n0.md", "n1.md", "n2.md"]

    def test_top_k_defaults_to_settings(self, monkeypatch, fresh_settings):
        monkeypatch.setenv("RELEVANT_NOTES_MAX_K", "2")
        fresh_settings.cache_clear()
        candidates = {f"n{i}.md": [[1.0, i / 10]] for i in range(10)}
        scores = calculate_similarity_scores([[1.0, 0.0]], candidates)
        assert list(scores) == ["n0.md", "n1.md"]

    def test_query_count_defaults_to_settings(self, monkeypatch, fresh_settings):
        monkeypatch.setenv("MAX_SIMILARITY_EMBEDDING_QUERIES", "1")
        fresh_settings.cache_clear()
        # Only the middle embedding [2.0, 1.0] is queried
        note = [[1.0, 0.0], [2.0, 1.0], [0.0, 1.0]]
        candidates = {"x.md": [[1.0, 0.0]], "mid.md": [[2.0, 1.0]]}
        scores = calculate_similarity_scores(note, candidates)
        assert list(scores) == ["mid.md", "x.md"]
        assert scores["x.md"] < 0.99

    def test_empty_inputs(self):
        assert calculate_similarity_scores([], {"a.md": [[1.0]]}) == {}
        assert calculate_similarity_scores([[1.0]], {}) == {}

    def test_skips_notes_without_vectors(self):
        scores = calculate_similarity_scores([[1.0, 0.0]], {"empty.md": [], "a.md": [1.0, 0.0]})
        assert list(scores) == ["a.md"]
