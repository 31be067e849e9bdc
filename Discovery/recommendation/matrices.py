"""Pivoting of reduced records into user-artist and artist-genre matrices."""

from typing import Dict, Iterable, Set, Tuple
import logging

import numpy as np
import pandas as pd

from Discovery.recommendation.errors import DimensionMismatchError

logger = logging.getLogger(__name__)


def _check_universe(values: pd.Series, universe: Iterable, label: str) -> None:
    unknown = set(values.unique().tolist()) - set(universe)
    if unknown:
        sample = sorted(unknown, key=str)[:5]
        raise DimensionMismatchError(
            f"{len(unknown)} {label} identifiers fall outside the matrix universe, e.g. {sample}"
        )


def _pivot(records: pd.DataFrame, index: str, columns: str, values: str,
           rows: list, cols: list) -> pd.DataFrame:
    """Pivot records into a nullable integer matrix over exactly rows x cols."""
    if records.empty:
        matrix = pd.DataFrame(np.nan, index=pd.Index(rows, name=index),
                              columns=pd.Index(cols, name=columns), dtype=float)
    else:
        matrix = records.pivot_table(index=index, columns=columns, values=values, aggfunc='sum')
    matrix = matrix.reindex(index=rows, columns=cols)
    matrix.index.name = index
    matrix.columns.name = columns
    # Int64 keeps unobserved cells as <NA> instead of folding them into 0
    return matrix.astype('Int64')


def build_matrices(
    interactions: pd.DataFrame,
    taggings: pd.DataFrame,
    users: list,
    artists: list,
    tags: list
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Build the user x artist and artist x genre count matrices.

    Args:
        interactions: Filtered records with columns user_id, artist_id, weight
        taggings: Aggregated records with columns artist_id, tag_id, count
        users: User universe (row labels of the user-artist matrix)
        artists: Artist universe
        tags: Tag universe (column labels of the artist-genre matrix)

    Returns:
        Tuple of (user_artist, artist_genre) DataFrames with Int64 cells,
        <NA> marking cells that were never observed

    Raises:
        DimensionMismatchError: If a record references an unknown identifier
    """
    _check_universe(interactions['user_id'], users, 'user')
    _check_universe(interactions['artist_id'], artists, 'artist')
    _check_universe(taggings['artist_id'], artists, 'artist')
    _check_universe(taggings['tag_id'], tags, 'tag')

    users, artists, tags = sorted(users), sorted(artists), sorted(tags)
    user_artist = _pivot(interactions, 'user_id', 'artist_id', 'weight', users, artists)
    artist_genre = _pivot(taggings, 'artist_id', 'tag_id', 'count', artists, tags)

    logger.info("User-artist matrix %s (density %.4f), artist-genre matrix %s (density %.4f)",
                user_artist.shape, matrix_density(user_artist),
                artist_genre.shape, matrix_density(artist_genre))
    return user_artist, artist_genre


def binarize(matrix: pd.DataFrame) -> pd.DataFrame:
    """Map missing cells to 0 and positive counts to 1."""
    observed = matrix.notna().to_numpy()
    values = matrix.fillna(0).to_numpy(dtype=float)
    binary = (observed & (values > 0)).astype(np.int8)
    return pd.DataFrame(binary, index=matrix.index.copy(), columns=matrix.columns.copy())


def matrix_density(matrix: pd.DataFrame) -> float:
    """Share of observed (non-missing) cells."""
    if matrix.size == 0:
        return 0.0
    return float(matrix.notna().to_numpy().sum()) / matrix.size


def matrix_sparsity(matrix: pd.DataFrame) -> float:
    return 1.0 - matrix_density(matrix)


def listening_history(user_artist: pd.DataFrame) -> Dict[object, Set]:
    """Set of listened artists per user."""
    binary = binarize(user_artist)
    artists = np.asarray(binary.columns)
    return {user_id: set(artists[row > 0].tolist())
            for user_id, row in zip(binary.index, binary.to_numpy())}
