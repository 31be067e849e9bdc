import numpy as np
import pandas as pd
import pytest


def make_raw_records(n_users=40, n_artists=30, n_tags=8, seed=0):
    """Synthetic listening, tagging and metadata records.

    Every artist carries tag 1 so that it survives tag filtering as long as it
    is among the most listened artists.
    """
    rng = np.random.default_rng(seed)
    artist_ids = np.arange(1, n_artists + 1)
    user_ids = np.arange(1, n_users + 1)

    listen_rows = []
    for user in user_ids:
        for artist in rng.choice(artist_ids, size=int(rng.integers(3, 8)), replace=False):
            listen_rows.append((int(user), int(artist), int(rng.integers(1, 500))))

    tag_rows = []
    for artist in artist_ids:
        tags = set(rng.choice(np.arange(2, n_tags + 1), size=int(rng.integers(1, 4)), replace=False).tolist())
        tags.add(1)
        for tag in sorted(tags):
            for tagger in rng.choice(user_ids, size=int(rng.integers(1, 3)), replace=False):
                tag_rows.append((int(tagger), int(artist), int(tag)))

    return {
        'interactions': pd.DataFrame(listen_rows, columns=['user_id', 'artist_id', 'weight']),
        'taggings': pd.DataFrame(tag_rows, columns=['user_id', 'artist_id', 'tag_id']),
        'artists': pd.DataFrame({'artist_id': artist_ids, 'name': [f"Artist {i}" for i in artist_ids]}),
        'tags': pd.DataFrame({'tag_id': np.arange(1, n_tags + 1),
                              'tag_value': [f"tag{i}" for i in range(1, n_tags + 1)]}),
    }


@pytest.fixture
def raw_records():
    return make_raw_records()


@pytest.fixture
def small_config():
    from Discovery.recommendation.config_loader import load_config
    cfg = load_config()
    cfg.update({'n_artists': 25, 'n_tags': 6, 'neighborhood_size': 5, 'seed': 7,
                'similarity_chunk_size': 8, 'test_size': 0.25})
    return cfg
