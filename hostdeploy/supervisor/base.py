"""
Supervisor interface and process record types.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional


class ProcessStatus(Enum):
    """Process states as reported by the supervisor."""
    STOPPED = "stopped"
    STARTING = "starting"      # pm2 reports "launching" while booting
    ONLINE = "online"
    STOPPING = "stopping"
    ERRORED = "errored"
    UNKNOWN = "unknown"

    @classmethod
    def from_raw(cls, value: Optional[str]) -> "ProcessStatus":
        """Map a supervisor status string; anything unrecognised is UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        value = str(value).strip().lower()
        if value in ("launching", "waiting restart", "one-launch-status"):
            return cls.STARTING
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_healthy(self) -> bool:
        return self is ProcessStatus.ONLINE

    @property
    def is_terminal_failure(self) -> bool:
        """States a poll should not wait out."""
        return self in (ProcessStatus.ERRORED, ProcessStatus.STOPPED)


@dataclass
class ProcessRecord:
    """One named application in the supervisor's process table."""
    name: str
    status: ProcessStatus
    instances: int = 1
    environment: Optional[str] = None
    pids: Optional[List[int]] = None
    restarts: int = 0
    memory: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "status": self.status.value,
            "instances": self.instances,
            "environment": self.environment,
            "pids": self.pids or [],
            "restarts": self.restarts,
            "memory": self.memory,
        }


@dataclass(frozen=True)
class StartPolicy:
    """Defaults for the inferred-entry-point start path."""
    max_memory_restart: str = "500M"
    instances: str = "max"
    timestamps: bool = True
    merge_logs: bool = True
    log_date_format: str = "YYYY-MM-DD HH:mm:ss Z"


class Supervisor(ABC):
    """Narrow interface onto an external process supervisor."""

    @abstractmethod
    def describe(self, name: str) -> Optional[ProcessRecord]:
        """Return the record registered under ``name``, or None if absent."""
        pass

    @abstractmethod
    def stop(self, name: str) -> None:
        pass

    @abstractmethod
    def delete(self, name: str) -> None:
        pass

    @abstractmethod
    def start_from_config(self, config_path: str, environment: str, cwd: Optional[Path] = None) -> None:
        """
        Start the application(s) described by a declarative config file.

        Args:
            config_path: Config file, relative to ``cwd``
            environment: Environment block to apply (``--env``)
            cwd: Project directory
        """
        pass

    @abstractmethod
    def start_from_entry_point(self, entry_point: str, name: str, policy: StartPolicy,
                               cwd: Optional[Path] = None) -> None:
        pass

    @abstractmethod
    def list(self) -> List[ProcessRecord]:
        """Return every record in the process table."""
        pass

    @abstractmethod
    def save(self) -> None:
        """Persist the current process table so it survives a restart."""
        pass

    @abstractmethod
    def logs(self, name: str, lines: int) -> List[str]:
        """Return the last ``lines`` log lines for ``name``."""
        pass

    def show(self, name: str) -> str:
        """Human-readable details for ``name``; empty if unsupported."""
        return ""

    def find(self, name: str) -> Optional[ProcessRecord]:
        for record in self.list():
            if record.name == name:
                return record
        return None
