"""Settings file loading and validation.

Schema on disk (~/.config/hostm/config.json):

    {
        "hosts_file": "/etc/hosts",
        "tool_name": "hostm",
        "timestamp": true
    }

Every key is optional.  Keys prefixed with "_" are reserved (e.g. "_comment")
and are stripped on load.  A missing file means defaults.
"""

import json
from pathlib import Path

from pydantic import BaseModel, ValidationError, field_validator

from hostm.constants import APP_NAME, DEFAULT_HOSTS_FILE

CONFIG_PATH = Path("~/.config/hostm/config.json").expanduser()


class Settings(BaseModel):
    """User preferences for the hosts manager."""

    hosts_file: Path = DEFAULT_HOSTS_FILE
    # Name written into the "# created by <tool>" annotation.
    tool_name: str = APP_NAME
    timestamp: bool = True

    @field_validator("tool_name")
    @classmethod
    def _single_line_name(cls, value: str) -> str:
        # The name ends up inside a "# ..." comment on a single hosts line.
        if not value.strip():
            raise ValueError("tool_name must not be empty")
        if any(ch in value for ch in "\r\n#"):
            raise ValueError("tool_name must not contain line breaks or '#'")
        return value


class ConfigError(Exception):
    """Raised when config.json exists but cannot be parsed or validated."""


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate the settings file.

    Returns default Settings if the file does not exist.  Raises ConfigError
    if the file exists but is malformed.
    """
    config_path = path if path is not None else CONFIG_PATH
    if not config_path.exists():
        return Settings()

    try:
        raw: object = json.loads(config_path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config.json is not valid JSON: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"cannot read {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("config.json must be a JSON object at the top level")

    data = {k: v for k, v in raw.items() if not k.startswith("_")}
    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config: {exc}") from exc
