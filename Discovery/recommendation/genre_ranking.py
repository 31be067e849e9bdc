"""Ranking of artists within a genre tag by raw tagging count."""

from typing import List
import logging

import pandas as pd

from Discovery.recommendation.errors import UnknownTagError
from Discovery.recommendation.utils.similarity import rank_items

logger = logging.getLogger(__name__)


def top_artists_for_genre(artist_genre: pd.DataFrame, tag_id, n: int = 10) -> List:
    """The n artists tagged most often with `tag_id`.

    Missing cells count as 0; equal counts are ordered by ascending artist_id.

    Raises:
        UnknownTagError: If tag_id is not a column of the ArtistGenreMatrix
    """
    if tag_id not in artist_genre.columns:
        raise UnknownTagError(tag_id)
    counts = artist_genre[tag_id].fillna(0).to_numpy(dtype=float)
    ranked = rank_items(counts, artist_genre.index.tolist(), n=n)
    logger.debug("Ranked %d artists for tag %s", len(ranked), tag_id)
    return ranked


def genre_leaderboard(artist_genre: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    """Top-n artists for every tag as a long table (tag_id, rank, artist_id, count)."""
    rows = []
    for tag_id in artist_genre.columns:
        column = artist_genre[tag_id].fillna(0)
        for rank, artist_id in enumerate(top_artists_for_genre(artist_genre, tag_id, n), start=1):
            rows.append({'tag_id': tag_id, 'rank': rank, 'artist_id': artist_id,
                         'count': int(column.loc[artist_id])})
    return pd.DataFrame(rows, columns=['tag_id', 'rank', 'artist_id', 'count'])
