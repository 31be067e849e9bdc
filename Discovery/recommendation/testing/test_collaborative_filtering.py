import unittest
import numpy as np
import pandas as pd

from Discovery.recommendation.collaborative_filtering import (
    CollaborativeFilteringRecommender, compute_candidates
)
from Discovery.recommendation.utils.similarity import rank_items


def matrix_from_history(history, artists):
    """UserArtistMatrix with a listen count of 1 for every heard artist and <NA> elsewhere."""
    users = sorted(history)
    matrix = pd.DataFrame(np.nan, index=pd.Index(users, name='user_id'),
                          columns=pd.Index(artists, name='artist_id'))
    for user_id, heard in history.items():
        for artist_id in heard:
            matrix.loc[user_id, artist_id] = 1
    return matrix.astype('Int64')


class TestNeighborhoods(unittest.TestCase):
    def test_identical_users_are_nearest(self):
        matrix = matrix_from_history({1: {1, 2}, 2: {1, 2}, 3: {3}}, [1, 2, 3, 4])
        recommender = CollaborativeFilteringRecommender(neighborhood_size=1)

        recommender.train(matrix)

        neighbors = recommender.neighbors(1)
        self.assertEqual(neighbors['neighbor_id'].tolist(), [2])
        self.assertAlmostEqual(neighbors['similarity'].iloc[0], 1.0)
        # Nothing left to recommend once the neighbor's artists are all heard
        self.assertEqual(recommender.candidates(top_n=20)[1], [])

    def test_neighborhood_excludes_self(self):
        matrix = matrix_from_history({1: {1}, 2: {1, 2}, 3: {3}}, [1, 2, 3])
        recommender = CollaborativeFilteringRecommender(neighborhood_size=5)

        recommender.train(matrix)

        for user_id in [1, 2, 3]:
            neighbors = recommender.neighbors(user_id)['neighbor_id'].tolist()
            self.assertNotIn(user_id, neighbors)
            self.assertEqual(len(neighbors), 2)

    def test_untrained_recommender_raises(self):
        with self.assertRaises(ValueError):
            CollaborativeFilteringRecommender().candidates()

    def test_invalid_neighborhood_size(self):
        with self.assertRaises(ValueError):
            CollaborativeFilteringRecommender(neighborhood_size=0)

    def test_unsupported_metric(self):
        matrix = matrix_from_history({1: {1}, 2: {1, 2}}, [1, 2])
        with self.assertRaises(ValueError):
            CollaborativeFilteringRecommender(metric='manhattan-ish').train(matrix)


class TestCandidates(unittest.TestCase):
    def test_jaccard_neighbor_contributes_unheard_artist(self):
        history = {1: {1}, 2: {1, 2}, 3: {3}, 4: {3, 4}}
        candidates = compute_candidates(matrix_from_history(history, [1, 2, 3, 4]), neighborhood_size=1)

        self.assertEqual(candidates[1], [2])
        self.assertEqual(candidates[3], [4])
        self.assertEqual(candidates[2], [])

    def test_candidates_never_contain_heard_artists(self):
        rng = np.random.default_rng(3)
        history = {u: set(rng.choice(np.arange(1, 21), size=5, replace=False).tolist()) for u in range(1, 16)}
        candidates = compute_candidates(matrix_from_history(history, list(range(1, 21))), neighborhood_size=4)

        for user_id, ranked in candidates.items():
            self.assertFalse(set(ranked) & history[user_id])
            self.assertEqual(len(ranked), len(set(ranked)))
            self.assertLessEqual(len(ranked), 20)

    def test_scores_sum_over_neighbors(self):
        history = {1: {1, 2}, 2: {1, 2, 3}, 3: {1, 2, 4}, 4: {1, 2, 3}}
        recommender = CollaborativeFilteringRecommender(neighborhood_size=3)
        recommender.train(matrix_from_history(history, [1, 2, 3, 4]))

        recs = recommender.recommend(1, n=10)

        # Artist 3 is shared by two neighbors, artist 4 by one
        self.assertEqual(recs['artist_id'].tolist(), [3, 4])
        np.testing.assert_allclose(recs['score'].to_numpy(), [4 / 3, 2 / 3])

    def test_equal_scores_rank_by_ascending_artist(self):
        history = {1: {1}, 2: {1, 3}, 3: {1, 2}}
        candidates = compute_candidates(matrix_from_history(history, [1, 2, 3]), neighborhood_size=2)

        self.assertEqual(candidates[1], [2, 3])

    def test_equal_summed_scores_rank_by_ascending_artist(self):
        # Artist 50 gets 0.2 + 0.1 from two neighbors, 100..106 get 0.3 from one
        history = {
            1: {1, 2, 3},
            2: {1, 2, 3} | set(range(100, 107)),
            3: {1, 50, 51},
            4: {1, 50} | set(range(60, 66)),
        }
        artists = sorted(set().union(*history.values()))
        recommender = CollaborativeFilteringRecommender(neighborhood_size=3)
        recommender.train(matrix_from_history(history, artists))

        ranked = recommender.candidates(top_n=20)[1]

        self.assertEqual(ranked[:8], [50] + list(range(100, 107)))
        self.assertEqual(ranked[8], 51)
        recs = recommender.recommend(1, n=8)
        self.assertEqual(recs['score'].nunique(), 1)

    def test_top_n_truncates(self):
        history = {1: {1}, 2: {1, 2, 3, 4, 5}}
        candidates = compute_candidates(matrix_from_history(history, [1, 2, 3, 4, 5]),
                                        neighborhood_size=1, top_n=2)

        self.assertEqual(candidates[1], [2, 3])

    def test_cosine_metric(self):
        history = {1: {1}, 2: {1, 2}, 3: {3}, 4: {3, 4}}
        candidates = compute_candidates(matrix_from_history(history, [1, 2, 3, 4]),
                                        neighborhood_size=1, metric='cosine')

        self.assertEqual(candidates[1], [2])

    def test_recommend_unknown_user(self):
        recommender = CollaborativeFilteringRecommender(neighborhood_size=1)
        recommender.train(matrix_from_history({1: {1}, 2: {1, 2}}, [1, 2]))

        with self.assertRaises(KeyError):
            recommender.recommend(99)

    def test_batches_match_single_pass(self):
        rng = np.random.default_rng(11)
        history = {u: set(rng.choice(np.arange(1, 31), size=6, replace=False).tolist()) for u in range(1, 26)}
        matrix = matrix_from_history(history, list(range(1, 31)))

        whole = CollaborativeFilteringRecommender(neighborhood_size=5)
        whole.train(matrix)
        batched = CollaborativeFilteringRecommender(neighborhood_size=5, batch_size=4, working_memory=1)
        batched.train(matrix)

        self.assertEqual(whole.candidates(), batched.candidates())


class TestRankItems(unittest.TestCase):
    def test_order_and_exclusion(self):
        ranked = rank_items(np.array([0.5, 0.9, 0.5, 0.1]), ['d', 'a', 'b', 'c'],
                            exclude=np.array([False, False, False, True]))

        self.assertEqual(ranked, ['a', 'b', 'd'])

    def test_length_mismatch(self):
        with self.assertRaises(ValueError):
            rank_items(np.array([1.0]), [1, 2])


if __name__ == '__main__':
    unittest.main()
