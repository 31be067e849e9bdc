"""Post-processing of collaborative candidates into final recommendation sets."""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence, Set
import logging

import numpy as np
import pandas as pd
from tqdm import tqdm

from Discovery.recommendation.errors import FallbackInvoked, InsufficientDataError

logger = logging.getLogger(__name__)

RECOMMENDATION_SIZE = 10
HEAD_SIZE = 10
HEAD_DRAW = 7
TAIL_DRAW = 3
DIVERSIFY_MIN_CANDIDATES = 13


def _sample(pool: Sequence, size: int, rng: np.random.Generator) -> List:
    """Uniform draw without replacement that keeps the original id objects."""
    picks = rng.choice(len(pool), size=size, replace=False)
    return [pool[i] for i in picks]


def _fallback(history: Set, artists: Sequence, rng: np.random.Generator) -> List:
    unheard = [a for a in artists if a not in history]
    if len(unheard) >= RECOMMENDATION_SIZE:
        return _sample(unheard, RECOMMENDATION_SIZE, rng)
    if len(artists) < RECOMMENDATION_SIZE:
        raise InsufficientDataError(
            f"Artist universe has {len(artists)} artists, fewer than {RECOMMENDATION_SIZE}")
    # Unheard artists run out only for users who heard nearly everything;
    # the set is topped up from their own history.
    heard = [a for a in artists if a in history]
    return unheard + _sample(heard, RECOMMENDATION_SIZE - len(unheard), rng)


def recommend(
    candidates: Dict[object, List],
    history: Dict[object, Set],
    user_id,
    artists: Sequence,
    rng: Optional[np.random.Generator] = None,
    fallback_log: Optional[List[FallbackInvoked]] = None
) -> List:
    """Select 10 distinct artists for `user_id` from its ranked candidates.

    Candidates already in the user's history are removed first. With fewer
    than 10 left, 10 artists are drawn at random from the unheard part of the
    universe and a FallbackInvoked event is recorded. With 10 to 12, the first
    10 are kept. With 13 or more, 7 are drawn from the first 10 and 3 from the
    rest. The result is shuffled so its order carries no rank.

    Args:
        candidates: Ranked candidate artists per user
        history: Listened artists per user
        user_id: Target user
        artists: Artist universe
        rng: Random source; a fresh unseeded generator when None
        fallback_log: Optional list receiving FallbackInvoked events

    Returns:
        List of 10 distinct artist ids

    Raises:
        InsufficientDataError: If the user has no recorded interactions
    """
    rng = rng if rng is not None else np.random.default_rng()
    heard = history.get(user_id)
    if not heard:
        raise InsufficientDataError(f"User {user_id} has no recorded interactions")

    filtered = list(dict.fromkeys(a for a in candidates.get(user_id, []) if a not in heard))

    if len(filtered) < RECOMMENDATION_SIZE:
        event = FallbackInvoked(user_id, len(filtered))
        logger.warning("Fallback for user %s: only %d unheard candidates", user_id, len(filtered))
        if fallback_log is not None:
            fallback_log.append(event)
        selection = _fallback(heard, sorted(artists), rng)
    elif len(filtered) < DIVERSIFY_MIN_CANDIDATES:
        selection = filtered[:RECOMMENDATION_SIZE]
    else:
        selection = (_sample(filtered[:HEAD_SIZE], HEAD_DRAW, rng)
                     + _sample(filtered[HEAD_SIZE:], TAIL_DRAW, rng))

    return _sample(selection, len(selection), rng)


class RecommendationSelector:
    """Batch selection over all users with reproducible per-user randomness.

    Each user gets an independent generator spawned from one seed, so the
    output for a fixed seed does not depend on processing order or workers.

    Attributes:
        fallbacks (List[FallbackInvoked]): Users served by the random fallback.
        failures (Dict): User id -> error message for users left without a set.
    """

    def __init__(
        self,
        artists: Iterable,
        history: Dict[object, Set],
        seed: Optional[int] = None,
        n_jobs: int = 1
    ):
        self.artists = sorted(artists)
        self.history = history
        self.seed = seed
        self.n_jobs = n_jobs
        self.fallbacks: List[FallbackInvoked] = []
        self.failures: Dict[object, str] = {}

    def _select_one(self, candidates, user_id, seed_seq):
        events: List[FallbackInvoked] = []
        rng = np.random.default_rng(seed_seq)
        try:
            recs = recommend(candidates, self.history, user_id, self.artists, rng=rng, fallback_log=events)
        except InsufficientDataError as e:
            return user_id, None, events, str(e)
        return user_id, recs, events, None

    def recommend_all(self, candidates: Dict[object, List], users: Optional[Iterable] = None) -> pd.DataFrame:
        """Recommendation table with columns user_id, artist_id, fallback.

        Users whose selection fails are logged and recorded in `failures`;
        they contribute no rows and do not stop the batch.
        """
        users = sorted(users if users is not None else self.history.keys())
        seeds = np.random.SeedSequence(self.seed).spawn(len(users))
        self.fallbacks = []
        self.failures = {}

        jobs = zip(users, seeds)
        if self.n_jobs and self.n_jobs > 1:
            with ThreadPoolExecutor(max_workers=self.n_jobs) as executor:
                results = list(executor.map(lambda job: self._select_one(candidates, *job), jobs))
        else:
            results = [self._select_one(candidates, user_id, seq)
                       for user_id, seq in tqdm(jobs, total=len(users), desc="Selecting recommendations", leave=False)]

        rows = []
        for user_id, recs, events, error in results:
            if error is not None:
                logger.error("No recommendations for user %s: %s", user_id, error)
                self.failures[user_id] = error
                continue
            self.fallbacks.extend(events)
            rows.extend({'user_id': user_id, 'artist_id': a, 'fallback': bool(events)} for a in recs)

        logger.info("Selected recommendations for %d users (%d fallbacks, %d failures)",
                    len(users) - len(self.failures), len(self.fallbacks), len(self.failures))
        return pd.DataFrame(rows, columns=['user_id', 'artist_id', 'fallback'])

    def fallback_users(self) -> List:
        return [event.user_id for event in self.fallbacks]
