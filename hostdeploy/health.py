"""
Post-start health verification.

``single`` mode waits the grace period once and checks once. ``poll`` mode
re-checks with exponential backoff until the process is online, reaches a
terminal failure state, or the timeout runs out.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import requests

from .errors import NotFound, SupervisorUnavailable, Unhealthy
from .supervisor import ProcessRecord, Supervisor

logger = logging.getLogger(__name__)

MIN_POLL_DELAY = 0.2
MAX_POLL_DELAY = 5.0


@dataclass(frozen=True)
class HealthSettings:
    mode: str = "single"
    grace_period: float = 5.0
    timeout: float = 30.0
    log_lines: int = 50
    url: Optional[str] = None
    smoke_retries: int = 5
    smoke_delay: float = 2.0


class HealthVerifier:
    """Checks the supervisor's view of a freshly started process."""

    def __init__(self, supervisor: Supervisor, settings: HealthSettings,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic,
                 on_check: Optional[Callable[[int, Optional[ProcessRecord]], None]] = None):
        self.supervisor = supervisor
        self.settings = settings
        self.sleep = sleep
        self.clock = clock
        self.on_check = on_check or (lambda attempt, record: None)

    def verify(self, name: str) -> ProcessRecord:
        """
        Confirm that ``name`` is online.

        Returns:
            The online ProcessRecord

        Raises:
            NotFound: No record under ``name`` after the start
            Unhealthy: Record present but not online, or the HTTP check failed
        """
        if self.settings.mode == "poll":
            record = self._poll(name)
        else:
            self.sleep(self.settings.grace_period)
            record = self._check(name, 1)

        if record is None:
            raise NotFound(f"PM2 process {name} not found after starting", stage="health",
                           hint="Check that the config file's app name matches the project name")

        if not record.status.is_healthy:
            raise Unhealthy(
                f"Application started but status is: {record.status.value}",
                hint=f"Inspect with 'pm2 logs {name}'",
                last_lines=self.recent_logs(name),
            )

        if self.settings.url:
            self.smoke_check(name, self.settings.url)

        return record

    def _check(self, name: str, attempt: int) -> Optional[ProcessRecord]:
        record = self.supervisor.find(name)
        logger.debug("Health check %d for %s: %s", attempt, name,
                     record.status.value if record else "absent")
        self.on_check(attempt, record)
        return record

    def _poll(self, name: str) -> Optional[ProcessRecord]:
        deadline = self.clock() + self.settings.timeout
        delay = max(self.settings.grace_period / 5, MIN_POLL_DELAY)
        attempt = 0
        record = None

        while True:
            remaining = deadline - self.clock()
            self.sleep(max(min(delay, remaining), 0))
            attempt += 1
            record = self._check(name, attempt)

            if record is not None and (record.status.is_healthy or record.status.is_terminal_failure):
                return record
            if self.clock() >= deadline:
                return record
            delay = min(delay * 2, MAX_POLL_DELAY)

    def recent_logs(self, name: str) -> List[str]:
        if not self.settings.log_lines:
            return []
        try:
            return self.supervisor.logs(name, self.settings.log_lines)
        except SupervisorUnavailable as e:
            logger.warning("Could not fetch logs for %s: %s", name, e)
            return []

    def smoke_check(self, name: str, url: str) -> None:
        """
        GET ``url`` until it answers with a 2xx/3xx status.

        Raises:
            Unhealthy: If every attempt fails
        """
        last_error = None
        for attempt in range(self.settings.smoke_retries):
            try:
                response = requests.get(url, timeout=10)
                if response.status_code < 400:
                    logger.info("Smoke check %s returned %s", url, response.status_code)
                    return
                last_error = f"Expected a 2xx/3xx status, got {response.status_code}"
            except requests.exceptions.RequestException as e:
                last_error = f"Request failed: {e}"

            if attempt < self.settings.smoke_retries - 1:
                logger.debug("Smoke attempt %d failed, retrying in %ss", attempt + 1, self.settings.smoke_delay)
                self.sleep(self.settings.smoke_delay)

        raise Unhealthy(
            f"Process is online but {url} failed: {last_error}",
            hint="Check the port the application listens on",
            last_lines=self.recent_logs(name),
        )


def verify(supervisor: Supervisor, name: str, settings: Optional[HealthSettings] = None, **kwargs) -> ProcessRecord:
    """Shorthand for ``HealthVerifier(supervisor, settings).verify(name)``."""
    return HealthVerifier(supervisor, settings or HealthSettings(), **kwargs).verify(name)


__all__ = ["HealthSettings", "HealthVerifier", "verify"]
