"""Data loading for the artist recommendation system."""

import os
from typing import Dict, Optional
import pandas as pd
import logging

logger = logging.getLogger(__name__)

FILES = {
    'interactions': 'user_artists.dat',
    'taggings': 'user_taggedartists.dat',
    'artists': 'artists.dat',
    'tags': 'tags.dat',
}

COLUMN_MAPPING = {
    'userID': 'user_id',
    'user': 'user_id',
    'artistID': 'artist_id',
    'id': 'artist_id',
    'artist': 'artist_id',
    'tagID': 'tag_id',
    'tagValue': 'tag_value',
    'count': 'weight',
    'playcount': 'weight',
}

REQUIRED_COLUMNS = {
    'interactions': ['user_id', 'artist_id', 'weight'],
    'taggings': ['user_id', 'artist_id', 'tag_id'],
    'artists': ['artist_id', 'name'],
    'tags': ['tag_id', 'tag_value'],
}


class LastfmDataLoader:
    """Loader for the tab-separated listening, tagging and metadata files."""

    def __init__(self, data_dir: str):
        """Initialize the loader.

        Args:
            data_dir: Directory containing the .dat files

        Raises:
            FileNotFoundError: If data_dir does not exist
        """
        if not os.path.exists(data_dir):
            raise FileNotFoundError(f"Data directory {data_dir} does not exist")
        self.data_dir = data_dir
        self._frames: Dict[str, pd.DataFrame] = {}

    def _standardize_columns(self, df: pd.DataFrame, kind: str) -> pd.DataFrame:
        """Rename source columns and keep only the ones the pipeline uses."""
        df = df.rename(columns={k: v for k, v in COLUMN_MAPPING.items() if k in df.columns})
        missing = [col for col in REQUIRED_COLUMNS[kind] if col not in df.columns]
        if missing:
            raise ValueError(f"{FILES[kind]} is missing columns {missing}; found {df.columns.tolist()}")
        logger.debug("Standardized %s columns: %s", kind, df.columns.tolist())
        return df[REQUIRED_COLUMNS[kind]]

    def load(self, kind: str) -> pd.DataFrame:
        """Load one of 'interactions', 'taggings', 'artists', 'tags' (cached)."""
        if kind in self._frames:
            return self._frames[kind]
        if kind not in FILES:
            raise KeyError(f"Unknown data file kind: {kind}")

        path = os.path.join(self.data_dir, FILES[kind])
        if not os.path.exists(path):
            raise FileNotFoundError(f"No {kind} found at {path}")

        logger.info("Loading %s from %s", kind, path)
        # Display strings are not normalized here; undecodable bytes are replaced
        df = pd.read_csv(path, sep='\t', encoding='utf-8', encoding_errors='replace',
                         quoting=3, dtype={'tagValue': str, 'name': str})
        df = self._standardize_columns(df, kind)
        self._frames[kind] = df
        logger.info("Loaded %d %s records", len(df), kind)
        return df

    def load_all(self) -> Dict[str, pd.DataFrame]:
        """Load every file, keyed like FILES."""
        return {kind: self.load(kind) for kind in FILES}

    def artist_names(self) -> Dict:
        artists = self.load('artists')
        return dict(zip(artists['artist_id'], artists['name']))

    def tag_names(self) -> Dict:
        tags = self.load('tags')
        return dict(zip(tags['tag_id'], tags['tag_value']))

    def lookup_artist(self, name: str) -> Optional[object]:
        """Artist id for a display name (case-insensitive), None when absent."""
        artists = self.load('artists')
        match = artists[artists['name'].str.lower() == name.lower()]
        return None if match.empty else match['artist_id'].iloc[0].item()

    def lookup_tag(self, value: str) -> Optional[object]:
        """Tag id for a tag value (case-insensitive), None when absent."""
        tags = self.load('tags')
        match = tags[tags['tag_value'].str.lower() == value.lower()]
        return None if match.empty else match['tag_id'].iloc[0].item()
