"""
Event Guard Configuration Loader

Reads event_guard.yaml into an EngineConfig. String values may reference
environment variables:

- ${NAME}            must be set, otherwise KeyError
- ${NAME:-fallback}  uses fallback when NAME is unset

Example:
```yaml
logging:
  level: "${EVENT_GUARD_LOG_LEVEL:-INFO}"
```
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

from .schema import EngineConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "event_guard.yaml"

# ${NAME} or ${NAME:-fallback}
ENV_VAR_PATTERN = re.compile(r'\$\{([^}:]+)(?::-([^}]*))?\}')

PathLike = Union[str, Path]


def _env_reference(match: "re.Match[str]") -> str:
    name, fallback = match.group(1), match.group(2)
    value = os.environ.get(name, fallback)
    if value is None:
        raise KeyError(
            f"Environment variable '{name}' is not set and has no fallback "
            f"(use ${{{name}:-value}} to supply one)"
        )
    return value


def interpolate_env_vars(value: Any) -> Any:
    """Substitute environment references in every string of a parsed YAML tree"""
    if isinstance(value, str):
        return ENV_VAR_PATTERN.sub(_env_reference, value)
    if isinstance(value, dict):
        return {key: interpolate_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def load_config_from_file(path: PathLike, interpolate: bool = True) -> EngineConfig:
    """
    Build an EngineConfig from one YAML file.

    Raises:
        FileNotFoundError: path does not exist
        KeyError: a referenced environment variable is unset
        ValueError: a role lists a capability outside the closed set
        yaml.YAMLError: the file is not valid YAML
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Event guard config not found: {path}")

    logger.info(f"Reading event guard config from {path}")
    data = yaml.safe_load(path.read_text()) or {}

    if interpolate:
        try:
            data = interpolate_env_vars(data)
        except KeyError as e:
            logger.error(f"Cannot interpolate {path}: {e}")
            raise

    return EngineConfig.from_dict(data)


def _candidate_paths(working_dir: Optional[PathLike]) -> List[Path]:
    roots = [Path(working_dir)] if working_dir else []
    roots.append(Path.cwd())
    return [candidate for root in roots for candidate in (root / CONFIG_FILENAME, root / "config" / CONFIG_FILENAME)]


def load_config(
    config_path: Optional[PathLike] = None,
    working_dir: Optional[PathLike] = None,
) -> EngineConfig:
    """
    Resolve the engine configuration.

    An explicit config_path wins. Otherwise event_guard.yaml, then
    config/event_guard.yaml, is looked up in working_dir and then in the
    current directory. Defaults apply when nothing is found.
    """
    if config_path:
        return load_config_from_file(config_path)

    for candidate in _candidate_paths(working_dir):
        if candidate.is_file():
            logger.info(f"Using event guard config at {candidate}")
            return load_config_from_file(candidate)

    logger.info(f"No {CONFIG_FILENAME} found; using built-in role map and defaults")
    return EngineConfig()


DEFAULT_CONFIG_TEMPLATE = """# Event Guard Configuration
# Values may reference environment variables: ${NAME} or ${NAME:-fallback}

# Role -> capabilities. admin:full implies every other capability.
# Known capabilities: admin:full, events:view, events:edit, events:delete
roles:
  admin: ["admin:full", "events:view", "events:edit", "events:delete"]
  vp-activities: ["events:view", "events:edit"]
  event-chair: ["events:view"]
  member: []

# Role the escalation detector treats as chair-scoped
chair_role: event-chair

audit:
  resource_type: Event
  # false stops auditing plain reads (view / view_details)
  audit_reads: true

logging:
  level: "${EVENT_GUARD_LOG_LEVEL:-INFO}"
  # file: ./logs/event_guard.log
"""


def create_default_config(output_path: Optional[PathLike] = None) -> Path:
    """Write a starter event_guard.yaml and return its path"""
    output_path = Path(output_path or CONFIG_FILENAME)
    output_path.write_text(DEFAULT_CONFIG_TEMPLATE)
    logger.info(f"Wrote starter event guard config to {output_path}")
    return output_path
