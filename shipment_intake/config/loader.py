"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  — static defaults checked into the repo
  2. .env file           — local developer overrides (not committed)
  3. Environment vars    — set at deploy time

The YAML file carries the knobs that are not secrets (extraction
decoding parameters, listing limits); ``Settings`` supplies everything
environment-specific and wins where keys overlap.
"""

from pathlib import Path

import yaml

from shipment_intake.config.settings import Settings

# Settings field -> key under the YAML "extraction" section.
_EXTRACTION_SETTINGS = {
    "extraction_temperature": "temperature",
    "extraction_max_tokens": "max_tokens",
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings instance to merge; a fresh one is built if omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "llm": {
            "available_providers": settings.get_available_llm_providers(),
        },
        "extraction": _explicit_extraction_overrides(settings),
        "storage": {
            "record_store_db_path": settings.record_store_db_path,
            "file_store_dir": settings.file_store_dir,
            "max_upload_bytes": settings.max_upload_bytes,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _explicit_extraction_overrides(settings: Settings) -> dict:
    """Extraction knobs set through env, .env or constructor arguments.

    Settings defaults are left out so the YAML values apply unless a
    deployment overrides them.
    """
    return {
        key: getattr(settings, field)
        for field, key in _EXTRACTION_SETTINGS.items()
        if field in settings.model_fields_set
    }


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
