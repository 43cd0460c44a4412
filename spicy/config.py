"""Scoring configuration management."""

from functools import lru_cache
from pathlib import Path

from .schemas import ScoringConfig
from .utils import load_json

CONFIG_PATH = Path(__file__).parent.parent / 'data' / 'scoring_config.json'


@lru_cache(maxsize=1)
def get_config() -> ScoringConfig:
    """
    Load scoring defaults from data/scoring_config.json.

    Configuration is cached after first load.

    Raises:
        FileNotFoundError: If scoring_config.json doesn't exist
        ValueError: If the file has an invalid structure

    Example:
        from spicy.config import get_config
        from spicy.pipeline import score
        scoreboard = score(game, get_config())
    """
    return load_json(CONFIG_PATH, schema=ScoringConfig)


def clear_config_cache() -> None:
    """
    Clear the configuration cache.

    Use this if the config file is modified during runtime.
    """
    get_config.cache_clear()
