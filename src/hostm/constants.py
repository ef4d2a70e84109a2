"""Application-wide constants."""

from pathlib import Path

APP_NAME = "hostm"

DEFAULT_HOSTS_FILE: Path = Path("/etc/hosts")

# Trailing comment written on lines the tool creates or rewrites.
CREATED_ANNOTATION = "created by {tool}"
UPDATED_ANNOTATION = "updated by {tool}"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

TEMP_PREFIX = f".{APP_NAME}-"
TEMP_SUFFIX = ".tmp"
