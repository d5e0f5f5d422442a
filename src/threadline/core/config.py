"""Config file - .threadline/config.yaml in the directory being reviewed

The file is a commented YAML dump of ThreadlineConfig. Unknown keys are
rejected so typos don't silently fall back to defaults.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from threadline.errors import ConfigInvalidError, ConfigNotFoundError
from threadline.models.config import ThreadlineConfig

CONFIG_DIR_NAME = ".threadline"
CONFIG_FILE_NAME = "config.yaml"

CONFIG_HEADER = """\
# threadline configuration
#
# endpoint_url     review endpoint; receives a JSON POST, streams the reply back
# storage_dir      saved sessions, one YAML file each
# max_sessions     newest sessions kept on disk
# autosave_delay   seconds of quiet before a session is saved
# request_timeout  seconds, or null to wait indefinitely
"""


def config_path(root: Optional[Path] = None) -> Path:
    """Location of the config file under root (default: working directory)"""
    return Path(root or ".") / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def read_config(path: Path) -> ThreadlineConfig:
    """Parse and validate one config file

    Raises:
        ConfigInvalidError: If the file is not a valid settings mapping
    """
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigInvalidError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigInvalidError(f"{path} must hold a mapping of settings")

    try:
        return ThreadlineConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigInvalidError(f"Invalid config in {path}: {e}") from e


def load_config(root: Optional[Path] = None) -> ThreadlineConfig:
    """Load the config under root

    Raises:
        ConfigNotFoundError: If there is no config file
        ConfigInvalidError: If the config file is invalid
    """
    path = config_path(root)
    if not path.exists():
        raise ConfigNotFoundError(
            f"No config at {path}; run 'threadline init' to create one"
        )
    return read_config(path)


def load_config_or_default(root: Optional[Path] = None) -> ThreadlineConfig:
    """Load the config under root, or defaults when there is none

    Raises:
        ConfigInvalidError: If a config file exists but is invalid
    """
    try:
        return load_config(root)
    except ConfigNotFoundError:
        return ThreadlineConfig()


def write_config(config: ThreadlineConfig, root: Optional[Path] = None) -> Path:
    """Write every setting of config, under the comment header"""
    path = config_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    body = yaml.safe_dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False)
    path.write_text(CONFIG_HEADER + "\n" + body)
    return path


def session_dir(config: ThreadlineConfig, root: Optional[Path] = None) -> Path:
    """The session directory of config; relative paths are taken from root"""
    if config.storage_path.is_absolute():
        return config.storage_path
    return Path(root or ".") / config.storage_path


def init_config(root: Optional[Path] = None, **settings) -> ThreadlineConfig:
    """Validate settings, write them out and create the session directory

    Raises:
        ValidationError: If a setting is invalid
    """
    config = ThreadlineConfig(**settings)
    write_config(config, root)
    session_dir(config, root).mkdir(parents=True, exist_ok=True)
    return config
