"""
Subprocess wrapper used for every external tool (npm, pm2).
"""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

TAIL_LINES = 40


@dataclass
class CommandResult:
    """Outcome of one external command."""
    command: List[str]
    returncode: int
    output_lines: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return "\n".join(self.output_lines)

    def tail(self, count: int = TAIL_LINES) -> List[str]:
        return self.output_lines[-count:] if count else []


class CommandRunner:
    """
    Runs commands to completion, merging stderr into stdout.

    Output is streamed line by line to the logger and, when ``log_file`` is
    set, appended to it under a ``=== command ===`` header. No timeout is
    applied; a command runs until it exits.
    """

    def __init__(self, log_file: Optional[Path] = None, echo=None):
        self.log_file = log_file
        self.echo = echo

    def run(self, command: Sequence[str], cwd: Optional[Path] = None, quiet: bool = False) -> CommandResult:
        """
        Run ``command`` and capture its output.

        Args:
            command: argv list
            cwd: Working directory
            quiet: Do not forward output lines to ``echo`` (used for JSON queries)

        Returns:
            CommandResult; a non-zero exit is reported, not raised

        Raises:
            OSError: If the executable cannot be started (missing, not executable)
        """
        command = [str(part) for part in command]
        logger.debug("Running %s (cwd=%s)", " ".join(command), cwd)

        process = subprocess.Popen(
            command,
            cwd=str(cwd) if cwd else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )

        output_lines = []
        log_handle = None
        try:
            if self.log_file:
                log_handle = open(self.log_file, "a", encoding="utf-8")
            if log_handle:
                log_handle.write(f"=== {' '.join(command)} ===\n")
            for line in process.stdout:
                line = line.rstrip()
                output_lines.append(line)
                if log_handle:
                    log_handle.write(line + "\n")
                    log_handle.flush()
                if self.echo and not quiet:
                    self.echo(line)
            process.wait()
        finally:
            if process.poll() is None:
                # Reading or logging failed part-way; do not leave the child behind.
                process.kill()
                process.wait()
            process.stdout.close()
            if log_handle:
                log_handle.close()

        if process.returncode != 0:
            logger.debug("Command %s exited with %s", command[0], process.returncode)

        return CommandResult(command=command, returncode=process.returncode, output_lines=output_lines)
