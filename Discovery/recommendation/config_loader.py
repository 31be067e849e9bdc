"""
Configuration loading for the artist recommendation batch job.

Usage:
    cfg = load_config('configs/base_local.yml')
"""
from pathlib import Path
from typing import Dict, Optional, Union
import copy
import json
import tomli as tomllib  # type: ignore
import yaml

DEFAULT_CONFIG: Dict = {
    'data_dir': 'data/hetrec2011-lastfm-2k',
    'output_dir': 'artifacts',
    'n_artists': 1000,
    'n_tags': 200,
    'neighborhood_size': 20,
    'candidate_n': 20,
    'eval_n': 10,
    'metric': 'jaccard',
    'similarity_chunk_size': 500,
    'seed': 42,
    'n_jobs': None,
    'test_size': 0.2,
    'log_level': 'INFO',
    'optimization': {
        'enabled': False,
        'n_trials': 20,
        'neighborhood_min': 5,
        'neighborhood_max': 100,
        'metrics': ['jaccard', 'cosine'],
    },
}


def _suffix(path: Union[str, Path]) -> str:
    return Path(path).suffix.lower()


def _merge(base: Dict, override: Dict) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def read_config_file(path: Union[str, Path]) -> Dict:
    """Return the configuration dictionary stored in *path*."""
    path = Path(path).expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(path)

    ext = _suffix(path)
    if ext in {".yml", ".yaml"}:
        with path.open("r", encoding="utf-8") as fh:
            return yaml.safe_load(fh) or {}
    if ext == ".json":
        return json.loads(path.read_text(encoding="utf-8"))
    if ext in {".toml", ".tml"}:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    raise ValueError(f"Unsupported config format: {ext}")


def load_config(path: Optional[Union[str, Path]] = None) -> Dict:
    """Defaults overlaid with the file at *path* (nested sections merge key by key)."""
    if path is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    return _merge(DEFAULT_CONFIG, read_config_file(path))
