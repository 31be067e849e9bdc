from typing import Dict, List, Optional
import pandas as pd
import numpy as np
import logging

from Discovery.recommendation.artifacts import save_artifacts
from Discovery.recommendation.cf_evaluation import CFRecommendationEvaluator
from Discovery.recommendation.collaborative_filtering import CollaborativeFilteringRecommender
from Discovery.recommendation.config_loader import load_config
from Discovery.recommendation.content_based import ContentBasedRecommender, top_similar
from Discovery.recommendation.dataloading import LastfmDataLoader
from Discovery.recommendation.genre_ranking import top_artists_for_genre
from Discovery.recommendation.matrices import build_matrices, listening_history
from Discovery.recommendation.reduction import build_universe, ReducedDataset
from Discovery.recommendation.selection import RecommendationSelector
from Discovery.recommendation.utils.exposure import analyze_exposure_distribution
from Discovery.recommendation.utils.statistics import dataset_report

logger = logging.getLogger(__name__)


class RecommendationSystem:
    """Main class orchestrating one batch run of the recommendation pipeline.

    Stages run in order: reduction, matrix construction, collaborative and
    content models, then per-user selection. Any error before selection
    aborts the run and nothing is published.
    """

    def __init__(self, config: Optional[Dict] = None):
        """Initialize the recommendation system.

        Args:
            config: Configuration dictionary; defaults from config_loader when None
        """
        self.config = config if config is not None else load_config()
        self.dataset: Optional[ReducedDataset] = None
        self.user_artist: Optional[pd.DataFrame] = None
        self.artist_genre: Optional[pd.DataFrame] = None
        self.history: Dict = {}
        self.cf_recommender = CollaborativeFilteringRecommender(
            neighborhood_size=self.config['neighborhood_size'],
            metric=self.config['metric'],
            n_jobs=self.config.get('n_jobs')
        )
        self.content_recommender = ContentBasedRecommender(chunk_size=self.config['similarity_chunk_size'])
        self.selector: Optional[RecommendationSelector] = None
        self.candidates: Dict = {}
        self.recommendations: Optional[pd.DataFrame] = None

    @classmethod
    def from_config(cls, path: Optional[str] = None) -> "RecommendationSystem":
        return cls(load_config(path))

    def build(
        self,
        interactions: pd.DataFrame,
        taggings: pd.DataFrame,
        artist_meta: pd.DataFrame,
        tag_meta: pd.DataFrame
    ) -> None:
        """Reduce the raw records and construct the matrices.

        Raises:
            InsufficientDataError: If a universe collapses during reduction
            DimensionMismatchError: If the reduced records are inconsistent
        """
        seed = self.config.get('seed')
        self.dataset = build_universe(
            interactions, taggings, artist_meta, tag_meta,
            n_artists=self.config['n_artists'],
            n_tags=self.config['n_tags'],
            rng=np.random.default_rng(seed) if seed is not None else None
        )
        self.user_artist, self.artist_genre = build_matrices(
            self.dataset.interactions, self.dataset.taggings,
            self.dataset.users, self.dataset.artists, self.dataset.tags
        )
        self.history = listening_history(self.user_artist)

    def load_data(self, data_dir: Optional[str] = None, loader: Optional[LastfmDataLoader] = None) -> None:
        """Load the raw files from disk and build the matrices."""
        loader = loader or LastfmDataLoader(data_dir or self.config["data_dir"])
        frames = loader.load_all()
        self.build(frames['interactions'], frames['taggings'], frames['artists'], frames['tags'])

    def _check_built(self) -> None:
        if self.user_artist is None or self.artist_genre is None:
            raise ValueError("Matrices are not built. Call build or load_data first.")

    def train(self) -> None:
        """Fit the collaborative and content models on the built matrices."""
        self._check_built()
        self.cf_recommender.train(self.user_artist)
        self.content_recommender.train(self.artist_genre)
        self.candidates = self.cf_recommender.candidates(top_n=self.config['candidate_n'])

    def generate_recommendations(self) -> pd.DataFrame:
        """Select the final recommendation set for every user."""
        if not self.cf_recommender.is_trained:
            raise ValueError("Recommenders are not trained. Call train first.")
        self.selector = RecommendationSelector(
            artists=self.dataset.artists,
            history=self.history,
            seed=self.config.get('seed'),
            n_jobs=self.config.get('n_jobs') or 1
        )
        self.recommendations = self.selector.recommend_all(self.candidates, users=self.dataset.users)
        return self.recommendations

    def run(self, output_dir: Optional[str] = None) -> pd.DataFrame:
        """Full batch: train, select, and publish artifacts when output_dir is set."""
        self.train()
        recommendations = self.generate_recommendations()
        if output_dir:
            self.save(output_dir)
        logger.info("Batch run complete: %d users, %d artists, %d tags",
                    len(self.dataset.users), len(self.dataset.artists), len(self.dataset.tags))
        return recommendations

    def save(self, output_dir: str) -> None:
        if self.recommendations is None:
            raise ValueError("Nothing to save; run the pipeline first")
        save_artifacts(output_dir, {
            'user_artist': self.user_artist,
            'artist_genre': self.artist_genre,
            'artist_similarity': self.content_recommender.similarity_matrix,
        }, self.recommendations)

    def similar_artists(self, artist_id, n: int = 10) -> List:
        """Artists closest in genre composition to artist_id."""
        self.content_recommender._check_trained()
        return top_similar(self.content_recommender.similarity_matrix, artist_id, n)

    def artists_for_genre(self, tag_id, n: int = 10) -> List:
        """Most tagged artists for tag_id."""
        self._check_built()
        return top_artists_for_genre(self.artist_genre, tag_id, n)

    def recommendations_for(self, user_id) -> List:
        """Final recommendation set of one user (empty if the user got none)."""
        if self.recommendations is None:
            raise ValueError("Recommendations are not generated yet")
        rows = self.recommendations[self.recommendations['user_id'] == user_id]
        return rows['artist_id'].tolist()

    def evaluate(self, k_values: Optional[List[int]] = None) -> Dict[str, Dict[int, float]]:
        """Hold-out accuracy of the collaborative filter at the configured settings."""
        self._check_built()
        evaluator = CFRecommendationEvaluator(
            k_values=k_values or [self.config['eval_n']],
            test_size=self.config['test_size'],
            seed=self.config.get('seed')
        )
        return evaluator.evaluate(
            self.user_artist,
            neighborhood_size=self.config['neighborhood_size'],
            metric=self.config['metric'],
            n_jobs=self.config.get('n_jobs')
        )

    def report(self) -> Dict:
        """Matrix density report plus exposure statistics of the last run."""
        self._check_built()
        result = {'dataset': dataset_report(self.user_artist, self.artist_genre)}
        if self.recommendations is not None:
            result['exposure'] = analyze_exposure_distribution(self.recommendations, len(self.dataset.artists))
        return result
