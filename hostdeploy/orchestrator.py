"""
Deployment orchestrator.

Runs Resolver -> Build -> redeploy (stop old, start new) -> Health -> Save.
Every stage is a hard gate: the first DeploymentError ends the run with a
failed result and nothing after it runs. The process table is saved only
after a healthy verification.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .build import BuildPipeline
from .config import DeployConfig
from .console import Console
from .errors import DeploymentError
from .events import EventTypes, emit_event
from .health import HealthSettings, HealthVerifier
from .ids import new_deployment_id
from .launch import select_launch
from .manifest import read_manifest
from .persist import persist
from .process import redeploy
from .resolver import DeploymentRequest, ResolvedProject, resolve
from .runner import CommandRunner
from .state import command_log_path, create_deployment_dir, set_home, write_request_json, write_result_json
from .supervisor import Pm2Supervisor, StartPolicy, Supervisor

logger = logging.getLogger(__name__)


@dataclass
class DeploymentResult:
    deployment_id: str
    project: str
    environment: str
    status: str                         # "healthy" | "failed"
    error_type: Optional[str] = None
    stage: Optional[str] = None
    message: Optional[str] = None
    process: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.status == "healthy"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "deployment_id": self.deployment_id,
            "project": self.project,
            "environment": self.environment,
            "status": self.status,
        }
        for key in ("error_type", "stage", "message", "process"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


class DeploymentOrchestrator:
    """
    Drives one deployment end to end.

    ``supervisor`` and ``runner`` default to PM2 and a subprocess runner
    writing to the deployment's ``commands.log``; tests pass fakes.
    """

    def __init__(self, config: Optional[DeployConfig] = None, supervisor: Optional[Supervisor] = None,
                 runner: Optional[CommandRunner] = None, console: Optional[Console] = None,
                 sleep=None, clock=None):
        self.config = config or DeployConfig()
        self.supervisor = supervisor
        self.runner = runner
        self.console = console or Console()
        self._timing = {key: value for key, value in (("sleep", sleep), ("clock", clock)) if value}

    def deploy(self, request: DeploymentRequest, deployment_id: Optional[str] = None) -> DeploymentResult:
        deployment_id = deployment_id or new_deployment_id()
        if self.config.home:
            set_home(self.config.home)
        create_deployment_dir(deployment_id)
        write_request_json(deployment_id, request.identifier, request.environment)
        emit_event(deployment_id, EventTypes.INIT, {
            "identifier": request.identifier,
            "environment": request.environment,
        })

        runner = self.runner or CommandRunner(log_file=command_log_path(deployment_id), echo=self.console.line)
        supervisor = self.supervisor or Pm2Supervisor(runner, pm2_bin=self.config.pm2_bin)

        project_name = request.identifier
        try:
            project = resolve(request.identifier, request.environment, self.config.base_dir)
            project_name = project.name
            record = self._run(deployment_id, project, runner, supervisor)
        except DeploymentError as e:
            return self._fail(deployment_id, project_name, request.environment, e)

        result = DeploymentResult(
            deployment_id=deployment_id,
            project=project.name,
            environment=project.environment,
            status="healthy",
            process=record.to_dict(),
        )
        emit_event(deployment_id, EventTypes.DONE, result.to_dict())
        write_result_json(deployment_id, result.to_dict())
        self._summary(project, supervisor)
        return result

    def _run(self, deployment_id: str, project: ResolvedProject, runner: CommandRunner, supervisor: Supervisor):
        console = self.console
        emit_event(deployment_id, EventTypes.RESOLVED, {
            "project": project.name,
            "directory": str(project.directory),
            "environment": project.environment,
        })
        console.info("Starting deployment...")
        console.block([
            f"  Project: {project.name}",
            f"  Environment: {project.environment}",
            f"  Directory: {project.directory}",
            "",
        ])

        def on_step(kind: str, message: str) -> None:
            if kind == "step":
                emit_event(deployment_id, EventTypes.STEP, {"message": message})
            console.marker(kind, message)

        manifest = read_manifest(project.directory)
        outcome = BuildPipeline(runner, npm_bin=self.config.npm_bin, on_step=on_step).build(project, manifest)
        emit_event(deployment_id, EventTypes.INSTALL_DONE, {"command": outcome.install_command})
        for script in ("build", "migrate"):
            if script in outcome.ran:
                emit_event(deployment_id, f"{script.upper()}_DONE", {})
            else:
                emit_event(deployment_id, f"{script.upper()}_SKIPPED", {})

        descriptor = select_launch(project, manifest)
        emit_event(deployment_id, EventTypes.LAUNCH_SELECTED, {
            "mode": descriptor.mode.value,
            "reference": descriptor.reference,
        })
        if descriptor.uses_config:
            console.info(f"Using PM2 config: {descriptor.reference}")
        else:
            console.info(f"Using entry point: {descriptor.reference}")

        policy = StartPolicy(max_memory_restart=self.config.max_memory_restart, instances=self.config.instances)
        redeploy(supervisor, project, descriptor, policy, on_step=on_step)
        emit_event(deployment_id, EventTypes.PROCESS_STARTED, {"name": project.name})

        settings = HealthSettings(
            mode=self.config.health_mode,
            grace_period=self.config.grace_period,
            timeout=self.config.health_timeout,
            log_lines=self.config.log_lines,
            url=self.config.health_url,
        )

        def on_check(attempt, record):
            emit_event(deployment_id, EventTypes.HEALTH_CHECK, {
                "attempt": attempt,
                "status": record.status.value if record else None,
            })

        on_step("step", "Waiting for application to start...")
        verifier = HealthVerifier(supervisor, settings, on_check=on_check, **self._timing)
        record = verifier.verify(project.name)
        emit_event(deployment_id, EventTypes.VERIFY_OK, record.to_dict())
        console.info("Application is running successfully!")

        on_step("step", "Saving PM2 process list...")
        persist(supervisor)
        emit_event(deployment_id, EventTypes.SAVED, {})
        return record

    def _fail(self, deployment_id: str, project_name: str, environment: str, error: DeploymentError) -> DeploymentResult:
        if error.stage == "health":
            emit_event(deployment_id, EventTypes.VERIFY_FAIL, {"reason": error.message})
        emit_event(deployment_id, EventTypes.ERROR, error.to_event())

        self.console.error(error.message)
        if error.hint:
            self.console.error(error.hint)
        if error.last_lines:
            self.console.line("")
            self.console.block(error.last_lines)

        result = DeploymentResult(
            deployment_id=deployment_id,
            project=project_name,
            environment=environment,
            status="failed",
            error_type=error.error_type,
            stage=error.stage,
            message=error.message,
        )
        write_result_json(deployment_id, result.to_dict())
        return result

    def _summary(self, project: ResolvedProject, supervisor: Supervisor) -> None:
        console = self.console
        console.line("")
        console.line("=" * 46)
        console.info("Deployment complete!")
        console.line("=" * 46)
        console.line("")
        details = supervisor.show(project.name)
        if details:
            console.line(details)
            console.line("")
        console.block([
            "Useful commands:",
            f"  - View logs:     pm2 logs {project.name}",
            "  - Monitor:       pm2 monit",
            f"  - Restart:       pm2 restart {project.name}",
            f"  - Stop:          pm2 stop {project.name}",
            "",
        ])
