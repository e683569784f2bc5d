"""Configuration loading from form-engine.toml."""

import logging
import os
import tomllib
from pathlib import Path

from form_engine.config.models import EngineConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "form-engine.toml"
CONFIG_ENV_VAR = "FORM_ENGINE_CONFIG"


def resolve_config_path(env_prefix: str = "") -> Path | None:
    """Find the config file to use when none is given explicitly.

    Priority:
    1. ``{env_prefix}FORM_ENGINE_CONFIG`` env var
    2. ``./form-engine.toml``
    3. None (use defaults)
    """
    env_path = os.environ.get(f"{env_prefix}{CONFIG_ENV_VAR}")
    if env_path:
        return Path(env_path)

    local = Path.cwd() / CONFIG_FILE_NAME
    if local.exists():
        return local

    return None


def load_config(config_path: Path | None = None, env_prefix: str = "") -> EngineConfig:
    """Load engine configuration from a TOML file.

    Layout::

        [store]
        forms = "forms.json"
        submissions = "submissions.json"

        [builder]
        default_label = "New Field"
        default_options = ["Option 1", "Option 2"]

        [logging]
        level = "INFO"

    Relative store paths are resolved against the config file's directory.

    Args:
        config_path: Path to form-engine.toml.  When omitted, see
            ``resolve_config_path``; with no file found, defaults are used.
        env_prefix: Prefix for the config env var lookup.

    Returns:
        EngineConfig

    Raises:
        FileNotFoundError: If an explicit or env-provided path doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = resolve_config_path(env_prefix)
        if config_path is None:
            logger.debug("No %s found, using defaults", CONFIG_FILE_NAME)
            return EngineConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Engine config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    base_dir = config_path.parent
    store = data.get("store", {})
    builder = data.get("builder", {})
    logging_settings = data.get("logging", {})

    defaults = EngineConfig()
    return EngineConfig(
        forms_path=str(base_dir / store.get("forms", defaults.forms_path)),
        submissions_path=str(base_dir / store.get("submissions", defaults.submissions_path)),
        default_label=builder.get("default_label", defaults.default_label),
        default_options=builder.get("default_options", defaults.default_options),
        log_level=logging_settings.get("level", defaults.log_level),
    )
