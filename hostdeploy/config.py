"""
Deployment configuration.

Values are layered: built-in defaults, then an optional YAML file pointed to by
``HOSTDEPLOY_CONFIG``, then ``HOSTDEPLOY_*`` environment variables. The CLI
applies its own flags on top with ``DeployConfig.override``.
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_APP_BASE_DIR = "/home/ubuntu/app-deploy"
HEALTH_MODES = ("single", "poll")


@dataclass(frozen=True)
class DeployConfig:
    """Settings for one deployment run."""
    base_dir: str = DEFAULT_APP_BASE_DIR
    home: Optional[str] = None          # deployment run history; HOSTDEPLOY_HOME when unset
    grace_period: float = 5.0           # seconds before the first health check
    health_mode: str = "single"         # "single" | "poll"
    health_timeout: float = 30.0        # poll mode only
    log_lines: int = 50                 # lines surfaced on an unhealthy start
    health_url: Optional[str] = None    # optional HTTP check once online
    max_memory_restart: str = "500M"
    instances: str = "max"
    pm2_bin: str = "pm2"
    npm_bin: str = "npm"

    def __post_init__(self):
        if self.health_mode not in HEALTH_MODES:
            raise ValueError(f"Invalid health mode: {self.health_mode} (expected one of {', '.join(HEALTH_MODES)})")
        if self.grace_period < 0:
            raise ValueError("grace_period must not be negative")
        if self.health_mode == "poll" and self.health_timeout < self.grace_period:
            raise ValueError("health_timeout must be at least grace_period")
        if self.log_lines < 0:
            raise ValueError("log_lines must not be negative")

    def override(self, **values: Any) -> "DeployConfig":
        """Return a copy with every non-None value applied."""
        changes = {key: value for key, value in values.items() if value is not None}
        return replace(self, **_coerce(changes)) if changes else self


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    """Convert raw strings (env vars, YAML scalars) to the field types."""
    types = {f.name: f.type for f in fields(DeployConfig)}
    result = {}
    for key, value in values.items():
        if key not in types:
            raise ValueError(f"Unknown config key: {key}")
        target = types[key]
        if value is None:
            continue  # null keeps the default
        if target in (float, "float"):
            result[key] = float(value)
        elif target in (int, "int"):
            result[key] = int(value)
        else:
            result[key] = str(value)
    return result


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def _read_env(environ) -> Dict[str, Any]:
    values = {}
    for f in fields(DeployConfig):
        env_name = f"HOSTDEPLOY_{f.name.upper()}"
        if env_name in environ:
            values[f.name] = environ[env_name]
    return values


def load_config(path: Optional[str] = None, environ=None) -> DeployConfig:
    """
    Build the effective configuration.

    Args:
        path: Explicit YAML file; defaults to ``$HOSTDEPLOY_CONFIG`` if set
        environ: Mapping to read ``HOSTDEPLOY_*`` variables from (defaults to os.environ)

    Returns:
        DeployConfig with file and environment values applied
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    config_path = path or environ.get("HOSTDEPLOY_CONFIG")
    if config_path:
        values.update(_read_yaml(Path(config_path)))

    values.update(_read_env(environ))
    return DeployConfig(**_coerce(values))
