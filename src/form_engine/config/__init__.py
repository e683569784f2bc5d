"""Configuration management: TOML loading and config models.

Usage:
    >>> from form_engine.config import load_config, EngineConfig
"""

from form_engine.config.loader import load_config
from form_engine.config.models import EngineConfig

__all__ = ["load_config", "EngineConfig"]
