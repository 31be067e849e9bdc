import logging
from typing import Dict, List, Optional
import optuna
from optuna.samplers import TPESampler
import pandas as pd
from tqdm.auto import tqdm

from Discovery.recommendation.cf_evaluation import CFRecommendationEvaluator
from Discovery.recommendation.collaborative_filtering import EVALUATION_N

logger = logging.getLogger(__name__)


def optimize_neighborhood(
    user_artist: pd.DataFrame,
    n_trials: int = 20,
    neighborhood_min: int = 5,
    neighborhood_max: int = 100,
    metrics: Optional[List[str]] = None,
    k: int = EVALUATION_N,
    test_size: float = 0.2,
    seed: int = 42,
    n_jobs: Optional[int] = None,
    storage: Optional[str] = None
) -> Dict:
    """
    Search the neighborhood size and similarity metric that maximize hold-out recall@k.

    Every trial scores the same user split, so trials are directly comparable.
    Returns a dict with neighborhood_size, metric and the best trial's metrics.
    """
    metrics = metrics or ['jaccard']
    if neighborhood_min <= 0 or neighborhood_max < neighborhood_min:
        raise ValueError("Invalid neighborhood search range")

    evaluator = CFRecommendationEvaluator(k_values=[k], test_size=test_size, seed=seed)

    def objective(trial: optuna.Trial):
        neighborhood_size = trial.suggest_int('neighborhood_size', neighborhood_min, neighborhood_max)
        metric = trial.suggest_categorical('metric', metrics)
        scores = evaluator.evaluate(user_artist, neighborhood_size=neighborhood_size,
                                    metric=metric, n_jobs=n_jobs)
        trial.set_user_attr('metrics_for_trial', {name: by_k[k] for name, by_k in scores.items()})
        logger.debug(f"Trial {trial.number}: neighborhood={neighborhood_size}, metric={metric}, "
                     f"recall@{k}={scores['Recall'][k]:.4f}")
        return scores['Recall'][k]

    study = optuna.create_study(
        direction='maximize',
        sampler=TPESampler(seed=seed),
        storage=storage,
        study_name=f"cf_neighborhood_k{k}",
        load_if_exists=storage is not None
    )

    logger.info(f"Starting Optuna search over neighborhood size with {n_trials} trials.")
    with tqdm(total=n_trials, desc=f"Optimizing neighborhood (k={k})") as pbar:
        for i in range(n_trials):
            study.optimize(objective, n_trials=1, show_progress_bar=False)
            pbar.set_description(f"Optimizing neighborhood (k={k}) | Trial {i+1}/{n_trials} | "
                                 f"Best recall: {study.best_value:.4f}")
            pbar.update(1)

    best_trial = study.best_trial
    logger.info(f"Best neighborhood search result: {best_trial.params} with recall@{k}={best_trial.value:.4f}")
    return {
        'neighborhood_size': best_trial.params['neighborhood_size'],
        'metric': best_trial.params['metric'],
        'recall': best_trial.value,
        'metrics': best_trial.user_attrs.get('metrics_for_trial', {}),
    }
