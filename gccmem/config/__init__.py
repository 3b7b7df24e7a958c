"""Configuration module for gccmem."""

from gccmem.config.loader import get_config_path, load_config, save_config
from gccmem.config.schema import Config, GccConfig

__all__ = ["Config", "GccConfig", "get_config_path", "load_config", "save_config"]
