"""Load per-project status bucket configurations from YAML and match tickets to them."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import yaml

from .config import DEFAULT_CONFIGURATION_FILE
from .errors import InvalidInputError
from .models import JiraConfiguration, StatusBucketConfig

logger = logging.getLogger(__name__)

# Used for tickets no configuration claims: nothing is attributed and the
# ticket never resolves.
EMPTY_BUCKET_CONFIG = StatusBucketConfig()


def configuration_from_mapping(data: dict) -> JiraConfiguration:
    if not isinstance(data, dict):
        raise InvalidInputError(f"configuration entry must be a mapping, got {type(data).__name__}")
    name = str(data.get("name") or "").strip()
    if not name:
        raise InvalidInputError("configuration entry has no name")
    return JiraConfiguration(
        name=name,
        bucket_config=StatusBucketConfig.from_mapping(data),
        server_url=data.get("serverUrl") or data.get("server_url"),
        jql=data.get("jql"),
        is_active=bool(data.get("isActive", data.get("is_active", True))),
    )


def load_configurations(path: str | Path | None = None) -> list[JiraConfiguration]:
    """Read the ``configurations`` list from a YAML file.

    A missing file yields no configurations. Unreadable YAML or malformed
    entries raise ``InvalidInputError``.
    """
    yaml_path = Path(path) if path else Path(__file__).resolve().parent.parent / DEFAULT_CONFIGURATION_FILE
    if not yaml_path.exists():
        logger.info("No status configuration file at %s", yaml_path)
        return []
    try:
        data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise InvalidInputError(f"cannot parse {yaml_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidInputError(f"{yaml_path} must contain a mapping at top level")
    entries = data.get("configurations") or []
    if not isinstance(entries, list):
        raise InvalidInputError(f"{yaml_path}: 'configurations' must be a list")
    return [configuration_from_mapping(entry) for entry in entries]


def find_configuration_for_ticket(
    ticket_key: str, configurations: Iterable[JiraConfiguration]
) -> JiraConfiguration | None:
    """Return the first active configuration whose name prefixes ``ticket_key``."""
    for config in configurations:
        if config.is_active and ticket_key.startswith(config.name):
            logger.debug("Found configuration for ticket %s: %s", ticket_key, config.name)
            return config
    logger.warning("No configuration found for ticket %s", ticket_key)
    return None
