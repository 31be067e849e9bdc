#!/usr/bin/env python3
"""
Entry point for the artist recommendation batch job.

    python -m Discovery.recommendation.MainSystem \
        --config Discovery/recommendation/configs/base_local.yml \
        --similar "Radiohead" --genre "rock" --user 2 --evaluate
"""

from __future__ import annotations

import argparse
import logging
import sys

from Discovery.recommendation.config_loader import load_config
from Discovery.recommendation.dataloading import LastfmDataLoader
from Discovery.recommendation.errors import RecommendationError, UnknownArtistError, UnknownTagError
from Discovery.recommendation.optimisation import optimize_neighborhood
from Discovery.recommendation.recommendation_system import RecommendationSystem

logger = logging.getLogger("DiscoveryRunner")


def cli(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Batch runner for the artist recommendation pipeline",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--config", default=None, help="YAML/JSON/TOML file overriding the defaults")
    p.add_argument("--data-dir", default=None, help="Directory with the .dat files")
    p.add_argument("--output-dir", default=None, help="Where matrices and recommendations are written")
    p.add_argument("--seed", type=int, default=None, help="Seed for every random step")
    p.add_argument("--evaluate", action="store_true", help="Report hold-out accuracy of the collaborative filter")
    p.add_argument("--optimize", action="store_true", help="Run the Optuna neighborhood search before training")
    p.add_argument("--similar", metavar="ARTIST", help="Print artists similar to this artist name")
    p.add_argument("--genre", metavar="TAG", help="Print the top artists for this tag")
    p.add_argument("--user", type=int, help="Print the recommendations of this user id")
    p.add_argument("--log-level", default=None, help="Logging level, e.g. DEBUG or INFO")
    return p.parse_args(argv)


def enrich_config(base_conf: dict, args: argparse.Namespace) -> dict:
    base_conf = base_conf.copy()
    if args.data_dir:
        base_conf["data_dir"] = args.data_dir
    if args.output_dir:
        base_conf["output_dir"] = args.output_dir
    if args.seed is not None:
        base_conf["seed"] = args.seed
    if args.log_level:
        base_conf["log_level"] = args.log_level
    if args.optimize:
        base_conf["optimization"] = dict(base_conf["optimization"], enabled=True)
    return base_conf


def run(argv=None) -> int:
    args = cli(argv)
    cfg = enrich_config(load_config(args.config), args)
    logging.basicConfig(level=cfg["log_level"].upper(), format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")

    loader = LastfmDataLoader(cfg["data_dir"])
    system = RecommendationSystem(cfg)
    system.load_data(loader=loader)

    if cfg["optimization"]["enabled"]:
        opt = cfg["optimization"]
        best = optimize_neighborhood(
            system.user_artist,
            n_trials=opt["n_trials"],
            neighborhood_min=opt["neighborhood_min"],
            neighborhood_max=opt["neighborhood_max"],
            metrics=opt["metrics"],
            k=cfg["eval_n"],
            test_size=cfg["test_size"],
            seed=cfg["seed"],
            n_jobs=cfg.get("n_jobs"),
        )
        cfg["neighborhood_size"], cfg["metric"] = best["neighborhood_size"], best["metric"]
        system.cf_recommender.neighborhood_size = best["neighborhood_size"]
        system.cf_recommender.metric = best["metric"]
        logger.info("Applied neighborhood_size=%d, metric=%s", best["neighborhood_size"], best["metric"])

    if args.evaluate:
        for name, by_k in system.evaluate().items():
            logger.info("%-10s %s", name, ", ".join(f"k={k}: {v:.4f}" for k, v in by_k.items()))

    system.run(output_dir=cfg["output_dir"])
    report = system.report()
    logger.info("Dataset statistics:\n%s", report["dataset"].to_string())

    names = loader.artist_names()
    if args.similar:
        artist_id = loader.lookup_artist(args.similar)
        if artist_id is None:
            logger.error("Unknown artist name: %s", args.similar)
        else:
            try:
                similar = system.similar_artists(artist_id)
                print(f"Artists similar to {args.similar}: " + ", ".join(names.get(a, str(a)) for a in similar))
            except UnknownArtistError as e:
                logger.error("%s", e)
    if args.genre:
        tag_id = loader.lookup_tag(args.genre)
        if tag_id is None:
            logger.error("Unknown tag: %s", args.genre)
        else:
            try:
                top = system.artists_for_genre(tag_id)
                print(f"Top {args.genre} artists: " + ", ".join(names.get(a, str(a)) for a in top))
            except UnknownTagError as e:
                logger.error("%s", e)
    if args.user is not None:
        recs = system.recommendations_for(args.user)
        print(f"Recommendations for user {args.user}: " + ", ".join(names.get(a, str(a)) for a in recs))

    logger.info("Run finished successfully.")
    return 0


def main(argv=None) -> int:
    try:
        return run(argv)
    except RecommendationError as e:
        logger.error(f"Batch aborted: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Run interrupted by user.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
