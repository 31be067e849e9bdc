from .recommendation_system import RecommendationSystem
from .collaborative_filtering import CollaborativeFilteringRecommender, compute_candidates
from .content_based import ContentBasedRecommender, compute_similarity, top_similar
from .genre_ranking import top_artists_for_genre
from .matrices import build_matrices
from .reduction import build_universe
from .selection import RecommendationSelector, recommend
from .base import RecommenderBase
from .dataloading import LastfmDataLoader
from .cf_evaluation import CFRecommendationEvaluator
