"""
Settings for the scorekeeper: data directory and rating tunables.
"""
import copy
import logging
import os

import yaml

from .rating import RatingOptions

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

DATA_DIR_ENV = 'SCOREKEEPER_DATA_DIR'
SETTINGS_ENV = 'SCOREKEEPER_SETTINGS'


def get_data_dir() -> str:
    return os.environ.get(DATA_DIR_ENV, os.path.join(BASE_DIR, 'data'))


def get_default_settings():
    """Return default settings."""
    return {
        'data_dir': get_data_dir(),
        'rating': {
            'initial_rating': 1200.0,
            'k_newbie': 32.0,
            'k_intermediate': 16.0,
            'k_veteran': 8.0,
            'newbie_threshold': 30,
            'veteran_threshold': 90,
            'max_daily_delta': 100.0,
            'scale': 400.0,
        },
    }


def _merge(defaults: dict, data: dict) -> dict:
    merged = copy.deepcopy(defaults)
    for key, value in data.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(path: str = None) -> dict:
    """Load settings from YAML file, merging with defaults."""
    defaults = get_default_settings()
    if path is None:
        path = os.environ.get(SETTINGS_ENV) or os.path.join(defaults['data_dir'], 'settings.yaml')
    if not os.path.exists(path):
        return defaults
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.warning(f'Failed to parse {path}: {e}')
        return defaults
    if not data:
        return defaults
    if not isinstance(data, dict):
        logger.warning(f'Ignoring {path}: expected a mapping, got {type(data).__name__}')
        return defaults
    return _merge(defaults, data)


def rating_options_from_settings(settings: dict) -> RatingOptions:
    rating = settings.get('rating') or {}
    return RatingOptions(
        initial_rating=float(rating.get('initial_rating', 1200.0)),
        k_newbie=float(rating.get('k_newbie', 32.0)),
        k_intermediate=float(rating.get('k_intermediate', 16.0)),
        k_veteran=float(rating.get('k_veteran', 8.0)),
        newbie_threshold=int(rating.get('newbie_threshold', 30)),
        veteran_threshold=int(rating.get('veteran_threshold', 90)),
        max_daily_delta=float(rating.get('max_daily_delta', 100.0)),
        scale=float(rating.get('scale', 400.0)),
    )
