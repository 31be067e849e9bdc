"""Size and density reporting for the constructed matrices."""

from typing import Dict
import pandas as pd

from Discovery.recommendation.matrices import matrix_density


def describe_matrix(matrix: pd.DataFrame) -> Dict:
    """Shape, observed cells, density and sparsity of one matrix."""
    density = matrix_density(matrix)
    return {
        'rows': matrix.shape[0],
        'columns': matrix.shape[1],
        'observed_cells': int(matrix.notna().to_numpy().sum()),
        'density': density,
        'sparsity': 1.0 - density,
    }


def dataset_report(user_artist: pd.DataFrame, artist_genre: pd.DataFrame) -> pd.DataFrame:
    """One row per matrix with the statistics of describe_matrix.

    Per-row averages count only observed cells, so the report is the same
    whether missing cells are stored densely or not at all.
    """
    report = pd.DataFrame(
        [describe_matrix(user_artist), describe_matrix(artist_genre)],
        index=pd.Index(['user_artist', 'artist_genre'], name='matrix')
    )
    report['mean_observed_per_row'] = [
        user_artist.notna().sum(axis=1).mean(),
        artist_genre.notna().sum(axis=1).mean(),
    ]
    return report
