import json
import os

import pandas as pd
import pytest

from Discovery.recommendation.MainSystem import main
from Discovery.recommendation.artifacts import load_artifacts
from Discovery.recommendation.config_loader import DEFAULT_CONFIG, load_config
from Discovery.recommendation.errors import UnknownArtistError, UnknownTagError
from Discovery.recommendation.optimisation import optimize_neighborhood
from Discovery.recommendation.recommendation_system import RecommendationSystem


def build_system(config, records):
    system = RecommendationSystem(config)
    system.build(records['interactions'], records['taggings'], records['artists'], records['tags'])
    return system


@pytest.fixture
def trained_system(small_config, raw_records):
    system = build_system(small_config, raw_records)
    system.run()
    return system


def test_universes_are_consistent(trained_system):
    system = trained_system
    similarity = system.content_recommender.similarity_matrix

    assert system.user_artist.index.tolist() == system.dataset.users
    assert system.user_artist.columns.tolist() == system.dataset.artists
    assert system.artist_genre.index.tolist() == system.dataset.artists
    assert system.artist_genre.columns.tolist() == system.dataset.tags
    assert similarity.index.tolist() == system.dataset.artists
    assert similarity.columns.tolist() == system.dataset.artists
    assert len(system.dataset.artists) <= 25
    assert len(system.dataset.tags) <= 6


def test_every_artist_and_user_is_observed(trained_system):
    system = trained_system
    assert system.artist_genre.notna().any(axis=1).all()
    assert system.user_artist.notna().any(axis=1).all()


def test_every_user_gets_ten_unheard_artists(trained_system):
    system = trained_system
    table = system.recommendations

    assert sorted(table['user_id'].unique().tolist()) == system.dataset.users
    for user_id, group in table.groupby('user_id'):
        recs = group['artist_id'].tolist()
        assert len(set(recs)) == 10
        assert set(recs) <= set(system.dataset.artists)
        assert not set(recs) & system.history[user_id]


def test_runs_are_reproducible(small_config, raw_records):
    first = build_system(small_config, raw_records).run()
    second = build_system(small_config, raw_records).run()
    pd.testing.assert_frame_equal(first, second)


def test_queries(trained_system):
    system = trained_system
    artist_id = system.dataset.artists[0]
    tag_id = system.dataset.tags[0]

    similar = system.similar_artists(artist_id, n=5)
    assert len(similar) == 5 and artist_id not in similar
    assert len(system.artists_for_genre(tag_id, n=5)) == 5
    assert len(system.recommendations_for(system.dataset.users[0])) == 10

    with pytest.raises(UnknownArtistError):
        system.similar_artists(-1)
    with pytest.raises(UnknownTagError):
        system.artists_for_genre(-1)


def test_report(trained_system):
    report = trained_system.report()

    density = report['dataset'].loc['user_artist', 'density']
    assert 0.0 < density <= 1.0
    assert 0.0 < report['exposure']['coverage'] <= 1.0


def test_generate_requires_training(small_config, raw_records):
    system = build_system(small_config, raw_records)
    with pytest.raises(ValueError):
        system.generate_recommendations()


def test_artifacts_round_trip(trained_system, tmp_path):
    trained_system.save(str(tmp_path))

    artifacts = load_artifacts(str(tmp_path))

    pd.testing.assert_frame_equal(artifacts['user_artist'], trained_system.user_artist)
    pd.testing.assert_frame_equal(artifacts['artist_genre'], trained_system.artist_genre)
    pd.testing.assert_frame_equal(artifacts['artist_similarity'],
                                  trained_system.content_recommender.similarity_matrix)
    pd.testing.assert_frame_equal(artifacts['recommendations'], trained_system.recommendations)


def test_evaluate(small_config, raw_records):
    system = build_system(small_config, raw_records)
    metrics = system.evaluate(k_values=[10])
    assert 0.0 <= metrics['Recall'][10] <= 1.0


def test_optimize_neighborhood(small_config, raw_records):
    system = build_system(small_config, raw_records)

    best = optimize_neighborhood(system.user_artist, n_trials=2, neighborhood_min=2,
                                 neighborhood_max=6, metrics=['jaccard'], seed=1)

    assert 2 <= best['neighborhood_size'] <= 6
    assert best['metric'] == 'jaccard'
    assert 0.0 <= best['recall'] <= 1.0


class TestConfig:
    def test_defaults(self):
        cfg = load_config()
        assert cfg == DEFAULT_CONFIG
        assert cfg is not DEFAULT_CONFIG

    def test_yaml_overrides_merge(self, tmp_path):
        path = tmp_path / "cfg.yml"
        path.write_text("n_artists: 50\noptimization:\n  n_trials: 3\n", encoding="utf-8")

        cfg = load_config(path)

        assert cfg['n_artists'] == 50
        assert cfg['n_tags'] == DEFAULT_CONFIG['n_tags']
        assert cfg['optimization']['n_trials'] == 3
        assert cfg['optimization']['metrics'] == DEFAULT_CONFIG['optimization']['metrics']

    def test_json_and_toml(self, tmp_path):
        json_path = tmp_path / "cfg.json"
        json_path.write_text(json.dumps({'seed': 7}), encoding="utf-8")
        toml_path = tmp_path / "cfg.toml"
        toml_path.write_text('metric = "cosine"\n', encoding="utf-8")

        assert load_config(json_path)['seed'] == 7
        assert load_config(toml_path)['metric'] == 'cosine'

    def test_bad_files(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yml")
        bad = tmp_path / "cfg.ini"
        bad.write_text("x=1", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(bad)

    def test_shipped_config_matches_defaults(self):
        path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                            'configs', 'base_local.yml')
        assert load_config(path) == DEFAULT_CONFIG


def write_dat_files(records, data_dir):
    records['interactions'].rename(columns={'user_id': 'userID', 'artist_id': 'artistID'}).to_csv(
        data_dir / 'user_artists.dat', sep='\t', index=False)
    taggings = records['taggings'].rename(columns={'user_id': 'userID', 'artist_id': 'artistID', 'tag_id': 'tagID'})
    taggings.assign(day=1, month=1, year=2010).to_csv(data_dir / 'user_taggedartists.dat', sep='\t', index=False)
    records['artists'].rename(columns={'artist_id': 'id'}).assign(url='', pictureURL='').to_csv(
        data_dir / 'artists.dat', sep='\t', index=False)
    records['tags'].rename(columns={'tag_id': 'tagID', 'tag_value': 'tagValue'}).to_csv(
        data_dir / 'tags.dat', sep='\t', index=False)


def test_cli_end_to_end(raw_records, tmp_path, capsys):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    write_dat_files(raw_records, data_dir)
    out_dir = tmp_path / "out"
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(json.dumps({'n_artists': 25, 'n_tags': 6, 'neighborhood_size': 5}), encoding="utf-8")

    code = main(["--config", str(cfg_path), "--data-dir", str(data_dir), "--output-dir", str(out_dir),
                 "--seed", "3", "--genre", "tag1", "--similar", "Artist 1", "--user", "1", "--evaluate"])

    assert code == 0
    assert (out_dir / "recommendations.csv").exists()
    assert (out_dir / "artist_similarity_matrix.pkl").exists()
    printed = capsys.readouterr().out
    assert "Top tag1 artists:" in printed
    assert "Recommendations for user 1:" in printed


def test_cli_reports_aborted_batch(raw_records, tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    # No tagging refers to a tag with metadata, so the tag universe collapses
    records = dict(raw_records, tags=pd.DataFrame({'tag_id': [900], 'tag_value': ['unused']}))
    write_dat_files(records, data_dir)

    code = main(["--data-dir", str(data_dir), "--output-dir", str(tmp_path / "out")])

    assert code == 1
    assert not (tmp_path / "out").exists()
