"""
Launch descriptor selection: PM2 config file if the project ships one,
otherwise an entry point inferred from package.json and build output.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .manifest import ProjectManifest
from .resolver import ResolvedProject

CONFIG_FILES = ("ecosystem.config.js", "ecosystem.config.cjs", "pm2.config.js")
CONVENTIONAL_ENTRY_POINTS = ("dist/index.js", "build/index.js", "src/index.js")
DEFAULT_ENTRY_POINT = "index.js"


class LaunchMode(Enum):
    CONFIG = "declarative-config"
    ENTRY_POINT = "inferred-entry-point"


@dataclass(frozen=True)
class LaunchDescriptor:
    mode: LaunchMode
    reference: str      # relative to the project directory
    environment: str

    @property
    def uses_config(self) -> bool:
        return self.mode is LaunchMode.CONFIG


def find_config_file(project_dir: Path):
    for name in CONFIG_FILES:
        if (project_dir / name).is_file():
            return name
    return None


def infer_entry_point(project_dir: Path, manifest: ProjectManifest) -> str:
    """Manifest ``main`` if it exists on disk, then conventional build outputs."""
    if manifest.main and (project_dir / manifest.main).is_file():
        return manifest.main

    for candidate in CONVENTIONAL_ENTRY_POINTS:
        if (project_dir / candidate).is_file():
            return candidate

    return manifest.main or DEFAULT_ENTRY_POINT


def select_launch(project: ResolvedProject, manifest: ProjectManifest) -> LaunchDescriptor:
    config_file = find_config_file(project.directory)
    if config_file:
        return LaunchDescriptor(LaunchMode.CONFIG, config_file, project.environment)

    return LaunchDescriptor(
        LaunchMode.ENTRY_POINT,
        infer_entry_point(project.directory, manifest),
        project.environment,
    )
