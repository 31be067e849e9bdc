"""Persistence of the derived matrices and the recommendation table."""

import os
from typing import Dict
import pandas as pd
import logging

logger = logging.getLogger(__name__)

MATRIX_FILES = {
    'user_artist': 'user_artist_matrix.pkl',
    'artist_genre': 'artist_genre_matrix.pkl',
    'artist_similarity': 'artist_similarity_matrix.pkl',
}
RECOMMENDATIONS_FILE = 'recommendations.csv'


def save_artifacts(output_dir: str, matrices: Dict[str, pd.DataFrame], recommendations: pd.DataFrame) -> None:
    """Write the three matrices (pickled, labels and <NA> cells kept) and the recommendation table.

    Args:
        output_dir: Target directory, created if needed
        matrices: Mapping with the keys of MATRIX_FILES
        recommendations: Table with user_id, artist_id, fallback
    """
    missing = set(MATRIX_FILES) - set(matrices)
    if missing:
        raise ValueError(f"Missing matrices: {sorted(missing)}")

    os.makedirs(output_dir, exist_ok=True)
    for key, filename in MATRIX_FILES.items():
        matrices[key].to_pickle(os.path.join(output_dir, filename))
    recommendations.to_csv(os.path.join(output_dir, RECOMMENDATIONS_FILE), index=False)
    logger.info("Saved %d matrices and %d recommendation rows to %s",
                len(MATRIX_FILES), len(recommendations), output_dir)


def load_artifacts(output_dir: str) -> Dict[str, pd.DataFrame]:
    """Read back what save_artifacts wrote; keys are MATRIX_FILES keys plus 'recommendations'."""
    if not os.path.exists(output_dir):
        raise FileNotFoundError(f"Artifact directory {output_dir} does not exist")

    artifacts = {key: pd.read_pickle(os.path.join(output_dir, filename))
                 for key, filename in MATRIX_FILES.items()}
    artifacts['recommendations'] = pd.read_csv(os.path.join(output_dir, RECOMMENDATIONS_FILE))
    logger.info("Loaded artifacts from %s", output_dir)
    return artifacts
