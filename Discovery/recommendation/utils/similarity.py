"""Similarity computation and ranking utilities shared by the recommenders."""

from typing import Iterator, List, Optional, Sequence, Tuple
import numpy as np
from sklearn.metrics import pairwise_distances_chunked
from sklearn.metrics.pairwise import cosine_similarity
import logging

logger = logging.getLogger(__name__)

BOOLEAN_METRICS = ('jaccard', 'dice', 'rogerstanimoto', 'russellrao', 'sokalmichener')
SUPPORTED_METRICS = BOOLEAN_METRICS + ('cosine',)


def iter_similarity_chunks(
    features: np.ndarray,
    metric: str = 'jaccard',
    n_jobs: Optional[int] = None,
    working_memory: Optional[int] = None
) -> Iterator[Tuple[int, np.ndarray]]:
    """Yield row blocks of the pairwise similarity matrix of `features`.

    Similarity is 1 - distance under `metric`. Boolean metrics receive the
    features as a boolean array.

    Args:
        features: Matrix of shape (n_rows, n_features)
        metric: One of SUPPORTED_METRICS
        n_jobs: Parallel workers passed to scikit-learn
        working_memory: Memory budget in MiB for each block

    Yields:
        (start_row, block) with block of shape (rows_in_block, n_rows)

    Raises:
        ValueError: If unsupported metric or invalid features
    """
    if features.ndim != 2:
        raise ValueError("Features must be a 2D array")
    if metric not in SUPPORTED_METRICS:
        raise ValueError(f"Unsupported metric: {metric}. Choose from {list(SUPPORTED_METRICS)}")

    data = features.astype(bool) if metric in BOOLEAN_METRICS else features.astype(float)
    start = 0
    for block in pairwise_distances_chunked(data, metric=metric, n_jobs=n_jobs,
                                            working_memory=working_memory):
        yield start, 1.0 - block
        start += block.shape[0]


def chunked_cosine_similarity(features: np.ndarray, chunk_size: int = 500) -> np.ndarray:
    """Full cosine similarity matrix computed one independent row block at a time.

    Zero rows get similarity 0 against every row, themselves included.
    """
    if features.ndim != 2:
        raise ValueError("Features must be a 2D array")
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    n = features.shape[0]
    features = features.astype(float)
    sim_matrix = np.zeros((n, n), dtype=float)
    for start in range(0, n, chunk_size):
        stop = min(start + chunk_size, n)
        sim_matrix[start:stop] = cosine_similarity(features[start:stop], features)
    return sim_matrix


def rank_items(
    scores: np.ndarray,
    item_ids: Sequence,
    n: Optional[int] = None,
    exclude: Optional[np.ndarray] = None
) -> List:
    """Order item ids by descending score, equal scores by ascending id.

    Args:
        scores: One score per item
        item_ids: Item identifiers aligned with scores
        n: Number of items to return (all when None)
        exclude: Optional boolean mask of items to leave out

    Returns:
        List of item ids
    """
    scores = np.asarray(scores, dtype=float)
    ids = np.asarray(item_ids)
    if scores.shape[0] != ids.shape[0]:
        raise ValueError("scores and item_ids must have the same length")

    id_order = np.argsort(ids, kind='mergesort')
    id_rank = np.empty_like(id_order)
    id_rank[id_order] = np.arange(len(ids))
    order = np.lexsort((id_rank, -scores))
    if exclude is not None:
        order = order[~np.asarray(exclude, dtype=bool)[order]]
    if n is not None:
        order = order[:n]
    return ids[order].tolist()
