"""
Build pipeline: dependency install, optional build, optional migrations.

Each step is a hard gate. There is no rollback; a failed step leaves the
project tree as the tool left it and a re-run is expected to be safe.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import BuildScriptError, DependencyInstallError, MigrationError
from .manifest import ProjectManifest, read_manifest
from .resolver import ResolvedProject
from .runner import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


@dataclass
class BuildOutcome:
    install_command: List[str]
    ran: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class BuildPipeline:
    """Runs npm against a resolved project."""

    def __init__(self, runner: CommandRunner, npm_bin: str = "npm", on_step=None):
        self.runner = runner
        self.npm_bin = npm_bin
        self.on_step = on_step or (lambda kind, message: None)

    def install_command(self, manifest: ProjectManifest) -> List[str]:
        if manifest.lock_file:
            return [self.npm_bin, "ci", "--production=false"]
        return [self.npm_bin, "install"]

    def build(self, project: ResolvedProject, manifest: Optional[ProjectManifest] = None) -> BuildOutcome:
        """
        Install dependencies, then run the build and migrate scripts if declared.

        Raises:
            DependencyInstallError: Installer exited non-zero
            BuildScriptError: ``npm run build`` exited non-zero
            MigrationError: ``npm run migrate`` exited non-zero
        """
        manifest = manifest or read_manifest(project.directory)
        outcome = BuildOutcome(install_command=self.install_command(manifest))

        self.on_step("step", "Installing dependencies...")
        self._run(outcome.install_command, project, DependencyInstallError,
                  "Dependency install failed", "Check the npm output and package-lock.json")
        outcome.ran.append("install")

        for script, error_cls, label in (("build", BuildScriptError, "build"),
                                         ("migrate", MigrationError, "database migrations")):
            if not manifest.has_script(script):
                self.on_step("info", f"No {script} script found, skipping...")
                outcome.skipped.append(script)
                continue

            self.on_step("step", f"Running {label}...")
            self._run([self.npm_bin, "run", script], project, error_cls,
                      f"npm run {script} failed", f"Run 'npm run {script}' in {project.directory} to reproduce")
            outcome.ran.append(script)

        return outcome

    def _run(self, command: List[str], project: ResolvedProject, error_cls, message: str, hint: str) -> CommandResult:
        try:
            result = self.runner.run(command, cwd=project.directory)
        except OSError as e:
            raise error_cls(f"{message}: {e}", hint=f"Is {command[0]} installed and on PATH?") from e

        if not result.ok:
            raise error_cls(f"{message} (exit code {result.returncode})", hint=hint, last_lines=result.tail())

        logger.debug("%s succeeded", " ".join(command))
        return result

