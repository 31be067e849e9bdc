"""Initialization file for the recommendation system utilities package."""

from .exposure import track_exposure, analyze_exposure_distribution, calculate_gini_coefficient
from .similarity import iter_similarity_chunks, chunked_cosine_similarity, rank_items
from .statistics import describe_matrix, dataset_report

__all__ = [
    'track_exposure',
    'analyze_exposure_distribution',
    'calculate_gini_coefficient',
    'iter_similarity_chunks',
    'chunked_cosine_similarity',
    'rank_items',
    'describe_matrix',
    'dataset_report'
]
