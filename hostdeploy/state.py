"""
On-disk bookkeeping for deployment runs.

Each run gets ``$HOSTDEPLOY_HOME/<deployment_id>/`` holding its request,
its event log and the captured output of every command it ran. This is the
controller's own history; the process table itself belongs to PM2.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .ids import is_valid_deployment_id


_home_override: Optional[str] = None


def set_home(path: Optional[str]) -> None:
    """Pin the runs directory (the ``home`` config key); ``None`` falls back to the environment."""
    global _home_override
    _home_override = path


def get_home() -> Path:
    """Directory holding all deployment runs (``home`` config, then ``HOSTDEPLOY_HOME``, default ``.hostdeploy``)."""
    return Path(_home_override or os.environ.get("HOSTDEPLOY_HOME", ".hostdeploy")).resolve()


def get_deployment_dir(deployment_id: str) -> Path:
    """
    Get the directory for a specific deployment.
    
    Raises:
        ValueError: If deployment ID is invalid
    """
    if not is_valid_deployment_id(deployment_id):
        raise ValueError(f"Invalid deployment ID: {deployment_id}")

    return get_home() / deployment_id


def create_deployment_dir(deployment_id: str) -> Path:
    deployment_dir = get_deployment_dir(deployment_id)
    deployment_dir.mkdir(parents=True, exist_ok=True)
    return deployment_dir


def write_request_json(deployment_id: str, identifier: str, environment: str) -> None:
    """Record what was asked for, before anything is resolved."""
    data = {
        "identifier": identifier,
        "environment": environment,
        "created_at": datetime.now().isoformat(),
    }
    with open(get_deployment_dir(deployment_id) / "request.json", "w") as f:
        json.dump(data, f, indent=2)


def read_request_json(deployment_id: str) -> Dict[str, Any]:
    """
    Raises:
        FileNotFoundError: If the deployment has no request.json
    """
    request_file = get_deployment_dir(deployment_id) / "request.json"
    if not request_file.exists():
        raise FileNotFoundError(f"Deployment {deployment_id} not found")

    with open(request_file, "r") as f:
        return json.load(f)


def write_result_json(deployment_id: str, result: Dict[str, Any]) -> None:
    with open(get_deployment_dir(deployment_id) / "result.json", "w") as f:
        json.dump(result, f, indent=2)


def read_result_json(deployment_id: str) -> Optional[Dict[str, Any]]:
    result_file = get_deployment_dir(deployment_id) / "result.json"
    if not result_file.exists():
        return None

    with open(result_file, "r") as f:
        return json.load(f)


def command_log_path(deployment_id: str) -> Path:
    return get_deployment_dir(deployment_id) / "commands.log"


def list_deployments() -> List[str]:
    """List all deployment IDs, most recent first."""
    home = get_home()
    if not home.exists():
        return []

    deployments = [
        item.name for item in home.iterdir()
        if item.is_dir() and is_valid_deployment_id(item.name)
    ]
    return sorted(deployments, reverse=True)


def deployment_exists(deployment_id: str) -> bool:
    deployment_dir = get_deployment_dir(deployment_id)
    return deployment_dir.exists() and (deployment_dir / "request.json").exists()

