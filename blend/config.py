"""Settings for brew-blend.

Values come from built-in defaults, then an optional YAML file, then the
environment. The store root defaults to ``$HOMEBREW_PREFIX/Elevage``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Callable, Mapping

import yaml

from blend.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV = "BREW_BLEND_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "brew-blend" / "config.yaml"
STORE_DIRNAME = "Elevage"


@dataclass
class BlendSettings:
    """Resolved configuration."""

    prefix: Path
    root: Path | None = None
    formula_dir: str = "BlendFormula"
    manifest_suffix: str = "brewfile"
    info_suffix: str = "text"
    brew: str = "brew"

    def __post_init__(self):
        self.prefix = Path(self.prefix)
        self.root = Path(self.root) if self.root else self.prefix / STORE_DIRNAME


_FILE_KEYS = {f.name for f in fields(BlendSettings)}


def load_settings(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    prefix_lookup: Callable[[str], str] | None = None,
) -> BlendSettings:
    """Resolve settings from the config file and environment.

    Args:
        config_path: Explicit YAML file. Falls back to ``$BREW_BLEND_CONFIG``
            and then to ``~/.config/brew-blend/config.yaml`` when present.
        environ: Environment mapping (defaults to ``os.environ``).
        prefix_lookup: Called with the brew executable when no prefix is
            configured; defaults to running ``brew --prefix``.
    """
    env = os.environ if environ is None else environ
    values: dict = {}

    path = _config_file(config_path, env)
    if path is not None:
        values.update(_read_config_file(path))

    if env.get("HOMEBREW_PREFIX"):
        values["prefix"] = env["HOMEBREW_PREFIX"]
    if env.get("BREW_BLEND_ROOT"):
        values["root"] = env["BREW_BLEND_ROOT"]

    if not values.get("prefix"):
        # Only happens when run outside `brew blend`, e.g. during development
        if prefix_lookup is None:
            from blend.brew.client import brew_prefix

            prefix_lookup = brew_prefix
        values["prefix"] = prefix_lookup(values.get("brew", "brew"))

    settings = BlendSettings(**values)
    logger.debug("Using blend store root %s", settings.root)
    return settings


def _config_file(config_path: str | Path | None, env: Mapping[str, str]) -> Path | None:
    if config_path:
        path = Path(config_path)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        return path
    if env.get(CONFIG_ENV):
        path = Path(env[CONFIG_ENV])
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path} (from ${CONFIG_ENV})")
        return path
    if DEFAULT_CONFIG_PATH.is_file():
        return DEFAULT_CONFIG_PATH
    return None


def _read_config_file(path: Path) -> dict:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    unknown = sorted(set(data) - _FILE_KEYS)
    if unknown:
        raise ConfigError(f"{path}: unknown setting(s): {', '.join(unknown)}")
    return {k: str(v) for k, v in data.items() if v is not None}
