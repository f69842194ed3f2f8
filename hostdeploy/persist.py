"""
Save the supervisor's process table after a healthy deployment.
"""

import logging

from .supervisor import Supervisor

logger = logging.getLogger(__name__)


def persist(supervisor: Supervisor) -> None:
    """
    Snapshot every managed process so a supervisor or host restart brings it back.

    Only called after a healthy verification; an unhealthy process stays
    registered with the live supervisor but never becomes the saved state.

    Raises:
        SupervisorUnavailable: If the save command fails
    """
    supervisor.save()
    logger.debug("Process list saved")
