"""Reduction of raw listening and tagging records to a consistent, bounded universe."""

from typing import List, NamedTuple, Optional
import logging

import numpy as np
import pandas as pd

from Discovery.recommendation.errors import InsufficientDataError

logger = logging.getLogger(__name__)

DEFAULT_N_ARTISTS = 1000
DEFAULT_N_TAGS = 200


class ReducedDataset(NamedTuple):
    """Closed universes plus the records restricted to them."""
    users: List
    artists: List
    tags: List
    interactions: pd.DataFrame
    taggings: pd.DataFrame


def _rank_by_distinct(
    records: pd.DataFrame,
    key: str,
    counted: str,
    rng: Optional[np.random.Generator] = None
) -> pd.Series:
    """Count distinct `counted` values per `key`, sorted descending.

    Equal counts are ordered by ascending key, or by a random permutation
    drawn from `rng` when one is given.
    """
    counts = records.groupby(key)[counted].nunique()
    ranked = counts.to_frame('n')
    if rng is not None:
        ranked['tiebreak'] = rng.permutation(len(ranked))
    else:
        ranked['tiebreak'] = np.arange(len(ranked))
    ranked = ranked.sort_values(['n', 'tiebreak'], ascending=[False, True], kind='mergesort')
    return ranked['n']


def _clean_interactions(interactions: pd.DataFrame) -> pd.DataFrame:
    missing = {'user_id', 'artist_id', 'weight'} - set(interactions.columns)
    if missing:
        raise ValueError(f"Interactions are missing columns: {sorted(missing)}")
    interactions = interactions[['user_id', 'artist_id', 'weight']]
    invalid = interactions['weight'].isna() | (interactions['weight'] <= 0)
    if invalid.any():
        logger.warning("Dropping %d interactions with a non-positive listen count", int(invalid.sum()))
        interactions = interactions[~invalid]
    # Repeated (user, artist) rows collapse into one listen count
    return (interactions.groupby(['user_id', 'artist_id'], as_index=False)['weight'].sum()
            .astype({'weight': 'int64'}))


def build_universe(
    interactions: pd.DataFrame,
    taggings: pd.DataFrame,
    artist_meta: pd.DataFrame,
    tag_meta: pd.DataFrame,
    n_artists: int = DEFAULT_N_ARTISTS,
    n_tags: int = DEFAULT_N_TAGS,
    rng: Optional[np.random.Generator] = None
) -> ReducedDataset:
    """Reduce raw records to jointly consistent user, artist and tag universes.

    Args:
        interactions: Listening records with columns user_id, artist_id, weight
        taggings: Tagging events with columns user_id, artist_id, tag_id
        artist_meta: Artist metadata with at least an artist_id column
        tag_meta: Tag metadata with at least a tag_id column
        n_artists: Number of most-listened artists kept as candidates
        n_tags: Number of most-used tags kept
        rng: Optional random source used to order equally ranked artists/tags

    Returns:
        ReducedDataset with sorted identifier lists, the filtered interactions
        and the aggregated (artist_id, tag_id, count) taggings

    Raises:
        InsufficientDataError: If any universe is empty after filtering
    """
    if n_artists <= 0 or n_tags <= 0:
        raise ValueError("n_artists and n_tags must be positive")

    interactions = _clean_interactions(interactions)
    logger.info("Reducing %d interactions from %d users over %d artists",
                len(interactions), interactions['user_id'].nunique(), interactions['artist_id'].nunique())

    # Artists: most distinct listeners, then only those with a display name
    listeners = _rank_by_distinct(interactions, 'artist_id', 'user_id', rng)
    candidate_artists = listeners.index[:n_artists]
    known_artists = set(artist_meta['artist_id'])
    artists = [a for a in candidate_artists.tolist() if a in known_artists]
    dropped = len(candidate_artists) - len(artists)
    if dropped:
        logger.warning("Dropped %d top artists without metadata", dropped)
    if not artists:
        raise InsufficientDataError("No artists left after ranking by listeners")

    # Tags: most distinct taggers among tags with metadata
    known_tags = set(tag_meta['tag_id'])
    taggings = taggings[taggings['tag_id'].isin(known_tags)]
    taggers = _rank_by_distinct(taggings, 'tag_id', 'user_id', rng)
    tags = sorted(taggers.index[:n_tags].tolist())
    if not tags:
        raise InsufficientDataError("No genre tags left after ranking by taggers")

    tag_set = set(tags)
    artist_set = set(artists)
    taggings = taggings[taggings['tag_id'].isin(tag_set)]
    taggings = taggings[taggings['artist_id'].isin(artist_set)]
    tag_counts = (taggings.groupby(['artist_id', 'tag_id']).size()
                  .rename('count').reset_index())

    tagged = set(tag_counts['artist_id'].unique().tolist())
    untagged = artist_set - tagged
    if untagged:
        logger.info("Removing %d artists with no tagging in the retained tag set", len(untagged))
    artists = sorted(tagged)
    if not artists:
        raise InsufficientDataError("No artists carry any of the retained tags")

    interactions = interactions[interactions['artist_id'].isin(tagged)]
    users = sorted(interactions['user_id'].unique().tolist())
    if not users:
        raise InsufficientDataError("No users left after artist filtering")

    interactions = interactions.sort_values(['user_id', 'artist_id']).reset_index(drop=True)
    tag_counts = tag_counts.sort_values(['artist_id', 'tag_id']).reset_index(drop=True)

    logger.info("Reduced universe: %d users, %d artists, %d tags, %d interactions, %d taggings",
                len(users), len(artists), len(tags), len(interactions), len(tag_counts))
    return ReducedDataset(users, artists, tags, interactions, tag_counts)
