"""
PM2 implementation of the supervisor interface, driven through the pm2 CLI.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import SupervisorUnavailable
from ..runner import CommandResult, CommandRunner
from .base import ProcessRecord, ProcessStatus, StartPolicy, Supervisor

logger = logging.getLogger(__name__)


def _load_json_array(output: str):
    # pm2 may print daemon start-up banners ("[PM2] Spawning ...") before the payload.
    lines = output.splitlines()
    for index, line in enumerate(lines):
        stripped = line.lstrip()
        if stripped.startswith("[{") or stripped.startswith("[]"):
            payload, _ = json.JSONDecoder().raw_decode("\n".join(lines[index:]).lstrip())
            return payload
    raise ValueError("no JSON array in pm2 output")


def _record_from_entry(entry: Dict[str, Any]) -> ProcessRecord:
    pm2_env = entry.get("pm2_env") or {}
    env_vars = pm2_env.get("env") or {}
    monit = entry.get("monit") or {}
    pid = entry.get("pid")

    return ProcessRecord(
        name=str(entry.get("name", "")),
        status=ProcessStatus.from_raw(pm2_env.get("status")),
        instances=1,
        environment=pm2_env.get("NODE_ENV") or env_vars.get("NODE_ENV"),
        pids=[pid] if pid else [],
        restarts=int(pm2_env.get("restart_time") or 0),
        memory=int(monit.get("memory") or 0),
    )


def _merge(existing: ProcessRecord, other: ProcessRecord) -> ProcessRecord:
    """Fold one more cluster instance into the aggregate record."""
    existing.instances += 1
    existing.pids = (existing.pids or []) + (other.pids or [])
    existing.restarts += other.restarts
    existing.memory += other.memory
    # The aggregate is only online if every instance is.
    if existing.status.is_healthy and not other.status.is_healthy:
        existing.status = other.status
    return existing


def parse_jlist(output: str) -> List[ProcessRecord]:
    """
    Parse ``pm2 jlist`` output into one record per application name.

    Raises:
        ValueError: If the output holds no JSON array
    """
    entries = _load_json_array(output)
    if not isinstance(entries, list):
        raise ValueError("pm2 jlist did not return a list")

    records: Dict[str, ProcessRecord] = {}
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("name"):
            continue
        record = _record_from_entry(entry)
        if record.name in records:
            _merge(records[record.name], record)
        else:
            records[record.name] = record

    return list(records.values())


class Pm2Supervisor(Supervisor):
    """Talks to PM2 by running ``pm2`` subcommands."""

    def __init__(self, runner: Optional[CommandRunner] = None, pm2_bin: str = "pm2"):
        self.runner = runner or CommandRunner()
        self.pm2_bin = pm2_bin

    def _pm2(self, *args: str, cwd: Optional[Path] = None, quiet: bool = False) -> CommandResult:
        command = [self.pm2_bin, *args]
        try:
            return self.runner.run(command, cwd=cwd, quiet=quiet)
        except OSError as e:
            raise SupervisorUnavailable(
                f"Cannot run {self.pm2_bin}: {e}",
                hint="Install PM2 with 'npm install -g pm2'",
            ) from e

    def _checked(self, *args: str, cwd: Optional[Path] = None, quiet: bool = False) -> CommandResult:
        result = self._pm2(*args, cwd=cwd, quiet=quiet)
        if not result.ok:
            raise SupervisorUnavailable(
                f"pm2 {args[0]} failed (exit code {result.returncode})",
                last_lines=result.tail(),
            )
        return result

    def describe(self, name: str) -> Optional[ProcessRecord]:
        return self.find(name)

    def stop(self, name: str) -> None:
        self._checked("stop", name)

    def delete(self, name: str) -> None:
        self._checked("delete", name)

    def start_from_config(self, config_path: str, environment: str, cwd: Optional[Path] = None) -> None:
        self._checked("start", config_path, "--env", environment, cwd=cwd)

    def start_from_entry_point(self, entry_point: str, name: str, policy: StartPolicy,
                               cwd: Optional[Path] = None) -> None:
        args = ["start", entry_point, "--name", name,
                "--max-memory-restart", policy.max_memory_restart]
        if policy.timestamps:
            args.append("--time")
        if policy.merge_logs:
            args.append("--merge-logs")
        args += ["--log-date-format", policy.log_date_format, "-i", policy.instances]
        self._checked(*args, cwd=cwd)

    def list(self) -> List[ProcessRecord]:
        result = self._checked("jlist", quiet=True)
        try:
            return parse_jlist(result.output)
        except ValueError as e:
            raise SupervisorUnavailable(f"Unreadable pm2 jlist output: {e}",
                                        last_lines=result.tail()) from e

    def save(self) -> None:
        self._checked("save")

    def logs(self, name: str, lines: int) -> List[str]:
        # --nostream prints the tail and exits instead of following.
        result = self._pm2("logs", name, "--lines", str(lines), "--nostream", quiet=True)
        return result.output_lines

    def show(self, name: str) -> str:
        result = self._pm2("show", name, quiet=True)
        return result.output if result.ok else ""
