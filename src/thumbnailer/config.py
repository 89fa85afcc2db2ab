import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import yaml

DEFAULT_CONFIG_PATH = "config.yaml"

# Environment variable -> Settings field. Environment wins over config.yaml.
ENV_OVERRIDES = {
    'BUCKET_NAME': 'bucket_name',
    'SECRET_KEY': 'secret_key',
    'AWS_REGION': 'region',
    'ORIGIN_HEADER': 'origin_header',
    'CACHE_CONTROL': 'cache_control',
    'LOG_LEVEL': 'log_level',
}


@dataclass(frozen=True)
class Settings:
    """Process-wide, read-only settings for the thumbnail function."""
    bucket_name: str = ''
    secret_key: str = ''
    region: Optional[str] = None
    origin_header: str = 'x-origin-verify'
    cache_control: str = 'public, max-age=86400'
    log_level: str = 'INFO'


def _read_yaml(config_path):
    with open(config_path, 'r') as f:
        return yaml.safe_load(f) or {}


def _from_yaml(cfg):
    aws = cfg.get('aws') or {}
    thumb = cfg.get('thumbnail') or {}
    values = {
        'bucket_name': aws.get('thumbnail_source_bucket'),
        'region': aws.get('region'),
        'origin_header': thumb.get('origin_header'),
        'cache_control': thumb.get('cache_control'),
        'log_level': thumb.get('log_level'),
    }
    # The shared secret never comes from a file on disk
    return {k: str(v) for k, v in values.items() if v is not None}


def load_settings(config_path=None, environ=None):
    """Build Settings from an optional config.yaml overlaid by the environment.

    ``config_path`` defaults to ``$CONFIG_PATH``, then ``config.yaml`` in the
    working directory if it exists. An explicitly named file must exist.
    """
    env = os.environ if environ is None else environ
    values = {}

    path = config_path or env.get('CONFIG_PATH')
    if path:
        values.update(_from_yaml(_read_yaml(path)))
    elif os.path.exists(DEFAULT_CONFIG_PATH):
        values.update(_from_yaml(_read_yaml(DEFAULT_CONFIG_PATH)))

    for var, field in ENV_OVERRIDES.items():
        if env.get(var):
            values[field] = env[var]

    values['log_level'] = values.get('log_level', 'INFO').upper()
    return Settings(**values)


@lru_cache()
def get_settings():
    """Settings for this process, parsed once per cold start."""
    return load_settings()
