"""Hold-out evaluation of the collaborative filter (diagnostic only)."""

from typing import Dict, List, Optional, Set, Tuple
import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split
import logging

from Discovery.recommendation.collaborative_filtering import (
    CollaborativeFilteringRecommender, DEFAULT_NEIGHBORHOOD_SIZE, EVALUATION_N
)
from Discovery.recommendation.matrices import listening_history

logger = logging.getLogger(__name__)

METRIC_NAMES = ['Precision', 'Recall', 'TPR', 'FPR', 'Hit Rate']


def split_holdout(
    user_artist: pd.DataFrame,
    test_size: float = 0.2,
    seed: Optional[int] = 42,
    min_interactions: int = 2
) -> Tuple[pd.DataFrame, Dict[object, object]]:
    """Hold out one known-positive artist for a random subset of users.

    Args:
        user_artist: UserArtistMatrix with <NA> for unobserved cells
        test_size: Share of eligible users to hold out
        seed: Seed for the user split and for picking the withheld artist
        min_interactions: Users need at least this many artists to be eligible

    Returns:
        Tuple of (training matrix with the withheld cells set to <NA>,
        mapping held-out user -> withheld artist)
    """
    history = listening_history(user_artist)
    eligible = [uid for uid in user_artist.index if len(history[uid]) >= min_interactions]
    if len(eligible) < 2:
        raise ValueError(f"Need at least two users with >={min_interactions} interactions to split")

    _, test_users = train_test_split(eligible, test_size=test_size, random_state=seed)
    rng = np.random.default_rng(seed)

    train_matrix = user_artist.copy()
    withheld = {}
    for user_id in sorted(test_users):
        artist_id = rng.choice(sorted(history[user_id]))
        artist_id = artist_id.item() if hasattr(artist_id, 'item') else artist_id
        train_matrix.loc[user_id, artist_id] = pd.NA
        withheld[user_id] = artist_id

    logger.info("Held out one artist for %d of %d eligible users", len(withheld), len(eligible))
    return train_matrix, withheld


def evaluate_candidates(
    candidates: Dict[object, List],
    withheld: Dict[object, object],
    history: Dict[object, Set],
    n_artists: int,
    k: int = EVALUATION_N
) -> Dict[str, float]:
    """Average precision, recall, true/false positive rate and hit rate at k.

    Args:
        candidates: Ranked candidate lists per user (trained without the withheld artist)
        withheld: Held-out user -> withheld artist
        history: Training history per user
        n_artists: Size of the artist universe
        k: Cut-off applied to each candidate list
    """
    precisions, recalls, fprs = [], [], []
    for user_id, target in withheld.items():
        recs = candidates.get(user_id, [])[:k]
        hit = 1.0 if target in recs else 0.0
        precisions.append(hit / k if k > 0 else 0.0)
        recalls.append(hit)
        negatives = n_artists - len(history.get(user_id, ())) - 1
        fprs.append((len(recs) - hit) / negatives if negatives > 0 else 0.0)

    if not recalls:
        logger.warning("No held-out users to evaluate")
        return {name: 0.0 for name in METRIC_NAMES}

    recall = float(np.mean(recalls))
    return {
        'Precision': float(np.mean(precisions)),
        'Recall': recall,
        'TPR': recall,
        'FPR': float(np.mean(fprs)),
        'Hit Rate': float(np.mean(np.array(recalls) > 0)),
    }


class CFRecommendationEvaluator:
    """Runs split, candidate generation and scoring for several cut-offs."""

    def __init__(self, k_values: Optional[List[int]] = None, test_size: float = 0.2, seed: Optional[int] = 42):
        self.k_values = k_values or [EVALUATION_N]
        if any(k <= 0 for k in self.k_values):
            raise ValueError("k_values must be positive")
        self.test_size = test_size
        self.seed = seed

    def evaluate(
        self,
        user_artist: pd.DataFrame,
        neighborhood_size: int = DEFAULT_NEIGHBORHOOD_SIZE,
        metric: str = 'jaccard',
        n_jobs: Optional[int] = None
    ) -> Dict[str, Dict[int, float]]:
        """Return metrics keyed by name, then by k."""
        train_matrix, withheld = split_holdout(user_artist, test_size=self.test_size, seed=self.seed)
        recommender = CollaborativeFilteringRecommender(
            neighborhood_size=neighborhood_size, metric=metric, n_jobs=n_jobs)
        recommender.train(train_matrix)
        candidates = recommender.candidates(top_n=max(self.k_values))
        history = listening_history(train_matrix)

        metrics = {name: {} for name in METRIC_NAMES}
        for k in self.k_values:
            scores = evaluate_candidates(candidates, withheld, history, train_matrix.shape[1], k)
            for name, value in scores.items():
                metrics[name][k] = value
        logger.info("Evaluation (neighborhood=%d, metric=%s): %s", neighborhood_size, metric,
                    {name: {k: round(v, 4) for k, v in by_k.items()} for name, by_k in metrics.items()})
        return metrics
