"""
Project resolution: turn a CLI identifier into a project directory.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from .config import DEFAULT_APP_BASE_DIR
from .errors import NotFound
from .manifest import MANIFEST_FILE, has_manifest

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "production"


@dataclass(frozen=True)
class DeploymentRequest:
    """What the operator asked for; fixed for the whole run."""
    identifier: str
    environment: str = DEFAULT_ENVIRONMENT


@dataclass(frozen=True)
class ResolvedProject:
    name: str
    directory: Path
    environment: str


def project_location(identifier: str, base_dir: str = DEFAULT_APP_BASE_DIR):
    """
    Map an identifier to ``(name, directory)`` without touching the filesystem.

    An identifier starting with ``/`` is taken verbatim as the directory and
    named after its last path segment; anything else is looked up under
    ``base_dir``.
    """
    if identifier.startswith("/"):
        directory = Path(identifier)
        return directory.name, directory
    return identifier, Path(base_dir) / identifier


def resolve(identifier: str, environment: str = DEFAULT_ENVIRONMENT,
            base_dir: str = DEFAULT_APP_BASE_DIR) -> ResolvedProject:
    """
    Resolve a project identifier to an existing project.

    Args:
        identifier: Project name or absolute path
        environment: Target environment name
        base_dir: Directory bare names are resolved under

    Returns:
        ResolvedProject

    Raises:
        NotFound: If the directory is missing or has no package.json
    """
    if not identifier or not identifier.strip():
        raise NotFound("Project identifier must not be empty")

    name, directory = project_location(identifier, base_dir)
    if not name:
        raise NotFound(f"Cannot derive a project name from {identifier}")

    if not directory.is_dir():
        raise NotFound(
            f"Project directory does not exist: {directory}",
            hint="Make sure the repository has been cloned first",
        )

    if not has_manifest(directory):
        raise NotFound(f"{MANIFEST_FILE} not found in {directory}")

    logger.debug("Resolved %s to %s", identifier, directory)
    return ResolvedProject(name=name, directory=directory, environment=environment or DEFAULT_ENVIRONMENT)
