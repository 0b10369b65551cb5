"""
Startup configuration loading.

The configuration basename ``B`` selects the mode:

- ``B.config`` exists: a ``Key=Value`` file. ``Filename`` selects Single
  mode, otherwise ``DPrefix``/``DSuffix`` select DynamicID mode, unless a
  ``Resolver`` script is named.
- ``B.config`` is absent: ``B.py`` is loaded as the resolver script.

Anything else is a ConfigurationError.
"""

import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

from dotenv import dotenv_values
from pydantic import ValidationError

from .constants import CONFIG_SUFFIX, SCRIPT_SUFFIX, ConfigKey, EnvVar, ErrorMessages
from .core.resolver import load_resolver
from .errors import ConfigurationError
from .models.config import DynamicIDMode, ScriptMode, ServerSettings, SingleMode

logger = logging.getLogger(__name__)


def default_basename(environ: Mapping[str, str] | None = None) -> str:
    """Configuration basename: $SUBSETTER_CONFIG, else the program path without suffix."""
    environ = os.environ if environ is None else environ
    configured = environ.get(EnvVar.CONFIG_BASENAME)
    if configured:
        return configured
    program = Path(sys.argv[0])
    return str(program.with_suffix("")) if program.suffix else str(program)


def _script_mode(script_path: str) -> ScriptMode:
    resolver = load_resolver(script_path)
    return ScriptMode(script_path=script_path, resolver=resolver)


def _read_config(path: Path) -> dict[str, str]:
    values = dotenv_values(path)
    return {key: value for key, value in values.items() if value is not None}


def load_settings(basename: str, environ: Mapping[str, str] | None = None) -> ServerSettings:
    """
    Load startup configuration for a basename.

    Args:
        basename: Path without suffix; ``.config`` and ``.py`` are tried in turn
        environ: Environment for overrides (defaults to os.environ)

    Returns:
        Validated ServerSettings

    Raises:
        ConfigurationError: no mode could be established
    """
    environ = os.environ if environ is None else environ
    config_path = Path(basename + CONFIG_SUFFIX)
    script_path = Path(basename + SCRIPT_SUFFIX)

    values: dict[str, str] = {}
    if config_path.is_file():
        values = _read_config(config_path)
        logger.info(f"Loaded configuration from {config_path}")
        mode = _mode_from_values(values, config_path)
    elif script_path.is_file():
        mode = _script_mode(str(script_path))
    else:
        raise ConfigurationError(ErrorMessages.NO_CONFIGURATION.format(config_path, script_path))

    temp_dir = environ.get(EnvVar.TEMP_DIR) or values.get(ConfigKey.TEMP_DIR) or None
    try:
        return ServerSettings(
            mode=mode,
            missing_path=values.get(ConfigKey.MISSING) or None,
            temp_dir=temp_dir,
        )
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


def _mode_from_values(values: Mapping[str, str], config_path: Path):
    filename = values.get(ConfigKey.FILENAME, "")
    if filename:
        return SingleMode(filename=filename)

    resolver = values.get(ConfigKey.RESOLVER, "")
    if resolver:
        # Relative script paths are taken from the config file's directory
        script = Path(resolver)
        if not script.is_absolute():
            script = config_path.parent / script
        return _script_mode(str(script))

    prefix = values.get(ConfigKey.PREFIX, "")
    suffix = values.get(ConfigKey.SUFFIX, "")
    if prefix or suffix:
        return DynamicIDMode(prefix=prefix, suffix=suffix)

    raise ConfigurationError(ErrorMessages.NO_MODE.format(config_path))
