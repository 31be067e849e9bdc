import pandas as pd
import numpy as np
from scipy.sparse import csr_matrix
from typing import Dict, List, Optional
import logging

from Discovery.recommendation.base import RecommenderBase
from Discovery.recommendation.matrices import binarize
from Discovery.recommendation.utils.similarity import iter_similarity_chunks, rank_items
from tqdm import tqdm

logger = logging.getLogger(__name__)

DEFAULT_NEIGHBORHOOD_SIZE = 20
CANDIDATE_N = 20
EVALUATION_N = 10
SCORE_DECIMALS = 9


class CollaborativeFilteringRecommender(RecommenderBase):
    """User-based neighborhood recommender over binary implicit feedback."""

    def __init__(
        self,
        neighborhood_size: int = DEFAULT_NEIGHBORHOOD_SIZE,
        metric: str = 'jaccard',
        n_jobs: Optional[int] = None,
        working_memory: Optional[int] = None,
        batch_size: int = 512,
        name: str = "CollaborativeFiltering"
    ):
        super().__init__(name)
        if neighborhood_size <= 0:
            raise ValueError("neighborhood_size must be positive")
        self.neighborhood_size = neighborhood_size
        self.metric = metric
        self.n_jobs = n_jobs
        self.working_memory = working_memory
        self.batch_size = batch_size
        self.user_item_matrix = None
        self.user_id_to_index = None
        self.neighbor_indices = None
        self.neighbor_similarities = None

    def train(self, user_artist: pd.DataFrame) -> None:
        """Binarize the listening matrix and find every user's neighborhood.

        Args:
            user_artist: UserArtistMatrix (counts with <NA>, or already binary)
        """
        logger.info("Training %s recommender (metric=%s, neighborhood=%d)",
                    self.name, self.metric, self.neighborhood_size)
        super().train(user_artist)

        binary = binarize(user_artist).to_numpy()
        n_users = binary.shape[0]
        self.user_item_matrix = csr_matrix(binary)
        self.user_id_to_index = {uid: idx for idx, uid in enumerate(self.row_ids)}

        k = min(self.neighborhood_size, n_users - 1)
        self.neighbor_indices = np.zeros((n_users, k), dtype=np.int64)
        self.neighbor_similarities = np.zeros((n_users, k), dtype=float)

        if k > 0:
            chunks = iter_similarity_chunks(binary, metric=self.metric, n_jobs=self.n_jobs,
                                            working_memory=self.working_memory)
            for start, block in tqdm(chunks, desc="Computing user neighborhoods", leave=False):
                rows = np.arange(block.shape[0])
                block[rows, start + rows] = -np.inf
                # Stable sort keeps equally similar neighbors in ascending user order
                nearest = np.argsort(-block, axis=1, kind='stable')[:, :k]
                self.neighbor_indices[start:start + len(rows)] = nearest
                self.neighbor_similarities[start:start + len(rows)] = np.clip(
                    np.take_along_axis(block, nearest, axis=1), 0.0, None)
        else:
            logger.warning("Only one user in the matrix; neighborhoods are empty")

        logger.info("User-artist matrix shape: %s, computed neighborhoods for %d users.",
                    binary.shape, n_users)
        self.is_trained = True

    def _score_rows(self, rows: np.ndarray) -> np.ndarray:
        """Similarity-weighted neighbor votes for each artist, heard artists zeroed."""
        k = self.neighbor_indices.shape[1]
        n_users = self.user_item_matrix.shape[0]
        weights = csr_matrix(
            (self.neighbor_similarities[rows].ravel(),
             (np.repeat(np.arange(len(rows)), k), self.neighbor_indices[rows].ravel())),
            shape=(len(rows), n_users)
        )
        # Sums of 1 - distance differ in the last bits; rounding lets equal scores tie
        scores = np.round((weights @ self.user_item_matrix).toarray(), SCORE_DECIMALS)
        heard = self.user_item_matrix[rows].toarray() > 0
        scores[heard] = 0.0
        return scores

    def candidates(self, top_n: int = CANDIDATE_N) -> Dict[object, List]:
        """Ranked unheard-artist candidates for every trained user.

        Only artists with a positive score are candidates, so users with a
        weak neighborhood can get fewer than `top_n`.
        """
        self._check_trained()
        n_users = len(self.row_ids)
        result = {}
        for start in tqdm(range(0, n_users, self.batch_size), desc="Scoring candidates", leave=False):
            rows = np.arange(start, min(start + self.batch_size, n_users))
            scores = self._score_rows(rows)
            for offset, row in enumerate(rows):
                result[self.row_ids[row]] = rank_items(
                    scores[offset], self.item_ids, n=top_n, exclude=scores[offset] <= 0)
        short = sum(1 for ranked in result.values() if len(ranked) < top_n)
        if short:
            logger.info("%d of %d users have fewer than %d candidates", short, n_users, top_n)
        return result

    def recommend(self, user_id, n: int = EVALUATION_N) -> pd.DataFrame:
        """Top-n unheard artists for one user with their scores.

        Raises:
            KeyError: If user_id was not part of the training matrix
        """
        self._check_trained()
        user_idx = self.user_id_to_index.get(user_id)
        if user_idx is None:
            raise KeyError(f"User {user_id} not found in trained matrix")

        scores = self._score_rows(np.array([user_idx]))[0]
        ranked = rank_items(scores, self.item_ids, n=n, exclude=scores <= 0)
        artist_pos = {aid: i for i, aid in enumerate(self.item_ids)}
        return pd.DataFrame({
            'user_id': [user_id] * len(ranked),
            'artist_id': ranked,
            'score': [scores[artist_pos[a]] for a in ranked]
        }, columns=['user_id', 'artist_id', 'score'])

    def neighbors(self, user_id) -> pd.DataFrame:
        """Nearest users of `user_id` with their similarity."""
        self._check_trained()
        user_idx = self.user_id_to_index.get(user_id)
        if user_idx is None:
            raise KeyError(f"User {user_id} not found in trained matrix")
        return pd.DataFrame({
            'neighbor_id': [self.row_ids[i] for i in self.neighbor_indices[user_idx]],
            'similarity': self.neighbor_similarities[user_idx]
        })


def compute_candidates(
    user_artist: pd.DataFrame,
    neighborhood_size: int = DEFAULT_NEIGHBORHOOD_SIZE,
    top_n: int = CANDIDATE_N,
    metric: str = 'jaccard',
    n_jobs: Optional[int] = None
) -> Dict[object, List]:
    """Ranked candidate artists per user from a user-user neighborhood model."""
    recommender = CollaborativeFilteringRecommender(
        neighborhood_size=neighborhood_size, metric=metric, n_jobs=n_jobs)
    recommender.train(user_artist)
    return recommender.candidates(top_n)
