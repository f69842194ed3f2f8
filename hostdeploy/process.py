"""
Replace the supervised process for a project: stop and delete the old
record, then start a fresh one. There is no in-place reload.
"""

import logging
from typing import Optional

from .errors import SupervisorUnavailable
from .launch import LaunchDescriptor
from .resolver import ResolvedProject
from .supervisor import ProcessRecord, StartPolicy, Supervisor

logger = logging.getLogger(__name__)


def stop_existing(supervisor: Supervisor, name: str) -> Optional[ProcessRecord]:
    """
    Stop and delete the record registered under ``name``, if any.

    Both commands are best-effort: an already-dead or vanished process is the
    normal case and never aborts the deployment. Failing to *query* the
    supervisor does.

    Returns:
        The record that was found, or None
    """
    existing = supervisor.describe(name)
    if existing is None:
        return None

    for label, action in (("stop", supervisor.stop), ("delete", supervisor.delete)):
        try:
            action(name)
        except SupervisorUnavailable as e:
            logger.warning("%s %s failed, continuing: %s", label, name, e)

    return existing


def start_new(supervisor: Supervisor, project: ResolvedProject, descriptor: LaunchDescriptor,
              policy: StartPolicy) -> None:
    if descriptor.uses_config:
        supervisor.start_from_config(descriptor.reference, descriptor.environment, cwd=project.directory)
    else:
        supervisor.start_from_entry_point(descriptor.reference, project.name, policy, cwd=project.directory)


def redeploy(supervisor: Supervisor, project: ResolvedProject, descriptor: LaunchDescriptor,
             policy: Optional[StartPolicy] = None, on_step=None) -> Optional[ProcessRecord]:
    """
    Stop the old instance and start a new one.

    Returns:
        The new record as read back from the supervisor (None if it has not
        registered yet; the health check decides what that means)

    Raises:
        SupervisorUnavailable: The supervisor could not be queried or refused the start
    """
    on_step = on_step or (lambda kind, message: None)

    on_step("step", "Checking for existing PM2 process...")
    previous = stop_existing(supervisor, project.name)
    if previous is None:
        on_step("info", "No existing process found")
    else:
        on_step("info", f"Stopped existing process: {project.name} (was {previous.status.value})")

    on_step("step", "Starting application with PM2...")
    start_new(supervisor, project, descriptor, policy or StartPolicy())
    return supervisor.describe(project.name)
