"""
Deployment error taxonomy.

Every stage failure is a ``DeploymentError``. The orchestrator turns these into
an ERROR event and a failed result; nothing here is retried automatically.
"""

from typing import List, Optional


class DeploymentError(Exception):
    """Base class for a terminal failure of one deployment run."""

    stage = "deploy"

    def __init__(self, message: str, hint: Optional[str] = None, last_lines: Optional[List[str]] = None,
                 stage: Optional[str] = None):
        super().__init__(message)
        if stage:
            self.stage = stage
        self.message = message
        self.hint = hint
        self.last_lines = list(last_lines or [])

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_event(self) -> dict:
        """Event payload in the same shape the ERROR events use."""
        data = {"reason": self.message, "stage": self.stage, "error_type": self.error_type}
        if self.hint:
            data["hint"] = self.hint
        if self.last_lines:
            data["last_lines"] = self.last_lines
        return data


class NotFound(DeploymentError):
    """Project directory, manifest or process record could not be found."""
    stage = "resolve"


class ManifestError(NotFound):
    """package.json exists but cannot be read as a manifest."""


class DependencyInstallError(DeploymentError):
    stage = "install"


class BuildScriptError(DeploymentError):
    stage = "build"


class MigrationError(DeploymentError):
    stage = "migrate"


class SupervisorUnavailable(DeploymentError):
    """The process supervisor could not be reached or rejected a command."""
    stage = "supervisor"


class Unhealthy(DeploymentError):
    """The new process did not reach the online state."""
    stage = "health"
