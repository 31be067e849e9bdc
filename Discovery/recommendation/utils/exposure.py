from typing import Dict, Optional
import pandas as pd
import numpy as np
import logging

logger = logging.getLogger(__name__)


def track_exposure(
    recommendations: pd.DataFrame,
    artist_names: Optional[Dict] = None
) -> pd.DataFrame:
    """Count how often each artist appears in a recommendation table.

    Args:
        recommendations: Table with at least an artist_id column
        artist_names: Optional mapping from artist_id to display name

    Returns:
        DataFrame with artist_id, exposure_count (and artist_name when names are given),
        most exposed first
    """
    if recommendations.empty:
        return pd.DataFrame(columns=['artist_id', 'exposure_count'])

    exposure_df = (recommendations['artist_id'].value_counts()
                   .rename_axis('artist_id').reset_index(name='exposure_count')
                   .sort_values(['exposure_count', 'artist_id'], ascending=[False, True])
                   .reset_index(drop=True))
    if artist_names:
        exposure_df['artist_name'] = exposure_df['artist_id'].map(artist_names).fillna('Unknown Artist')
    return exposure_df


def analyze_exposure_distribution(recommendations: pd.DataFrame, n_artists: int) -> Dict:
    """Summarize how recommendations spread over the artist universe.

    Args:
        recommendations: Table with user_id, artist_id and fallback columns
        n_artists: Size of the artist universe

    Returns:
        Dict with exposure_df, gini_coefficient, coverage (share of the
        universe recommended at least once) and fallback_rate (share of users
        served by the random fallback)
    """
    if recommendations.empty:
        logger.warning("No exposure data available")
        return {'exposure_df': track_exposure(recommendations), 'gini_coefficient': 0.0,
                'coverage': 0.0, 'fallback_rate': 0.0}

    exposure_df = track_exposure(recommendations)
    # Artists never recommended still count towards inequality
    counts = np.zeros(max(n_artists, len(exposure_df)))
    counts[:len(exposure_df)] = exposure_df['exposure_count'].to_numpy()
    gini = calculate_gini_coefficient(counts)

    per_user = recommendations.groupby('user_id')['fallback'].any() if 'fallback' in recommendations.columns else pd.Series(dtype=bool)
    fallback_rate = float(per_user.mean()) if len(per_user) else 0.0
    coverage = len(exposure_df) / n_artists if n_artists > 0 else 0.0

    logger.info("Exposure: %d artists recommended (coverage %.1f%%), Gini %.4f, fallback rate %.1f%%",
                len(exposure_df), coverage * 100, gini, fallback_rate * 100)
    return {
        'exposure_df': exposure_df,
        'gini_coefficient': gini,
        'coverage': coverage,
        'fallback_rate': fallback_rate
    }


def calculate_gini_coefficient(values: np.ndarray) -> float:
    """Calculate the Gini coefficient for a set of values.

    Args:
        values: Array of values

    Returns:
        Gini coefficient (0=perfect equality, 1=perfect inequality)
    """
    sorted_values = np.sort(np.asarray(values, dtype=float))
    n = len(sorted_values)

    if n == 0 or np.sum(sorted_values) == 0:
        return 0.0

    index = np.arange(1, n + 1)
    return float(np.sum((2 * index - n - 1) * sorted_values) / (n * np.sum(sorted_values)))
