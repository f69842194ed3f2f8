from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from .errors import ManifestError

MANIFEST_FILE = "package.json"
LOCK_FILE = "package-lock.json"


@dataclass
class ProjectManifest:
    """The parts of package.json the deployment reads."""
    path: Path
    name: Optional[str] = None
    main: Optional[str] = None
    scripts: Dict[str, str] = field(default_factory=dict)
    lock_file: Optional[Path] = None

    def has_script(self, name: str) -> bool:
        # Only a declared script counts; a dependency called "build" does not.
        return bool(self.scripts.get(name))


def has_manifest(project_dir: Path) -> bool:
    return (Path(project_dir) / MANIFEST_FILE).is_file()


def read_manifest(project_dir: Path) -> ProjectManifest:
    root = Path(project_dir)
    manifest_path = root / MANIFEST_FILE

    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8") or "{}")
    except FileNotFoundError:
        raise ManifestError(f"{MANIFEST_FILE} not found in {root}") from None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ManifestError(
            f"Cannot parse {manifest_path}: {e}",
            hint="Fix the JSON syntax in package.json",
        ) from e

    if not isinstance(data, dict):
        raise ManifestError(f"{manifest_path} must contain a JSON object")

    scripts = data.get("scripts") or {}
    if not isinstance(scripts, dict):
        scripts = {}

    main = data.get("main")
    lock = root / LOCK_FILE

    return ProjectManifest(
        path=manifest_path,
        name=data.get("name") if isinstance(data.get("name"), str) else None,
        main=main if isinstance(main, str) and main else None,
        scripts={str(k): str(v) for k, v in scripts.items()},
        lock_file=lock if lock.is_file() else None,
    )
