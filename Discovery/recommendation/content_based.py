from typing import List, Optional
import pandas as pd
import numpy as np
import logging

from Discovery.recommendation.base import RecommenderBase
from Discovery.recommendation.errors import UnknownArtistError
from Discovery.recommendation.matrices import binarize
from Discovery.recommendation.utils.similarity import chunked_cosine_similarity, rank_items

logger = logging.getLogger(__name__)

SIMILARITY_DECIMALS = 3


def compute_similarity(artist_genre: pd.DataFrame, chunk_size: int = 500) -> pd.DataFrame:
    """Artist x artist cosine similarity of binarized genre vectors.

    Each row block is computed independently. A zero vector scores 0 against
    every other artist; the diagonal is always 1. Values are clipped to [0, 1],
    rounded to three decimals and mirrored from the upper triangle, so the
    result is exactly symmetric.

    Args:
        artist_genre: ArtistGenreMatrix indexed by artist_id with one column per tag
        chunk_size: Number of artists per independent row block

    Returns:
        Square DataFrame indexed by artist_id on both axes
    """
    features = binarize(artist_genre).to_numpy()
    logger.info("Computing cosine similarity for %d artists over %d tags", *features.shape)

    sim_matrix = chunked_cosine_similarity(features, chunk_size=chunk_size)
    sim_matrix = np.round(np.clip(sim_matrix, 0.0, 1.0), SIMILARITY_DECIMALS)
    sim_matrix = np.triu(sim_matrix, 1)
    sim_matrix = sim_matrix + sim_matrix.T
    np.fill_diagonal(sim_matrix, 1.0)

    zero_rows = int((features.sum(axis=1) == 0).sum())
    if zero_rows:
        logger.warning("%d artists have an empty genre vector; their similarities are 0", zero_rows)

    artist_ids = artist_genre.index.copy()
    return pd.DataFrame(sim_matrix, index=artist_ids.rename('artist_id'),
                        columns=artist_ids.rename('similar_artist_id'))


def top_similar(similarity: pd.DataFrame, artist_id, n: int = 10) -> List:
    """The n artists most similar to `artist_id`, itself excluded.

    Raises:
        UnknownArtistError: If artist_id is not in the similarity matrix
    """
    if artist_id not in similarity.index:
        raise UnknownArtistError(artist_id)
    row = similarity.loc[artist_id]
    return rank_items(row.to_numpy(), row.index.tolist(), n=n,
                      exclude=(row.index == artist_id))


class ContentBasedRecommender(RecommenderBase):
    """Genre-composition recommender answering "artists like this one"."""

    def __init__(self, chunk_size: int = 500, name: str = "ContentBased"):
        super().__init__(name=name)
        self.chunk_size = chunk_size
        self.similarity_matrix: Optional[pd.DataFrame] = None

    def train(self, artist_genre: pd.DataFrame) -> None:
        """Compute the artist similarity matrix from the ArtistGenreMatrix."""
        logger.info("Training %s recommender", self.name)
        super().train(artist_genre)
        self.similarity_matrix = compute_similarity(artist_genre, chunk_size=self.chunk_size)
        self.is_trained = True

    def recommend_similar_items(self, seed_artist_id, n: int = 10) -> pd.DataFrame:
        """Top-n similar artists with their similarity score."""
        self._check_trained()
        similar = top_similar(self.similarity_matrix, seed_artist_id, n)
        scores = self.similarity_matrix.loc[seed_artist_id, similar].to_numpy() if similar else []
        return pd.DataFrame({
            'seed_artist_id': [seed_artist_id] * len(similar),
            'artist_id': similar,
            'score': scores
        }, columns=['seed_artist_id', 'artist_id', 'score'])
