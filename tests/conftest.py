"""
Shared fakes: an in-memory supervisor, a scripted command runner and a
manual clock, so the pipeline runs without npm or PM2.
"""

import json

import pytest

from hostdeploy.errors import SupervisorUnavailable
from hostdeploy.runner import CommandResult
from hostdeploy.state import set_home
from hostdeploy.supervisor import ProcessRecord, ProcessStatus, Supervisor


class FakeRunner:
    """Returns scripted exit codes keyed by the command's leading words."""

    def __init__(self, outcomes=None):
        self.outcomes = outcomes or {}
        self.commands = []

    def run(self, command, cwd=None, quiet=False):
        command = [str(part) for part in command]
        self.commands.append((command, cwd))
        for prefix, (code, lines) in self.outcomes.items():
            if " ".join(command).startswith(prefix):
                return CommandResult(command, code, list(lines))
        return CommandResult(command, 0, [])


class FakeSupervisor(Supervisor):
    """
    In-memory process table.

    ``boot_status`` decides what a started process reports; ``snapshot`` is
    the last saved copy of the table.
    """

    def __init__(self, boot_status="online", fail_stop=False, fail_delete=False):
        self.records = {}
        self.snapshot = None
        self.calls = []
        self.boot_status = boot_status
        self.fail_stop = fail_stop
        self.fail_delete = fail_delete
        self.log_lines = ["Error: listen EADDRINUSE :::3000"]

    def add(self, name, status="online", instances=1):
        self.records[name] = ProcessRecord(name=name, status=ProcessStatus.from_raw(status), instances=instances)

    def describe(self, name):
        self.calls.append(("describe", name))
        return self.records.get(name)

    def stop(self, name):
        self.calls.append(("stop", name))
        if self.fail_stop or name not in self.records:
            raise SupervisorUnavailable(f"pm2 stop failed for {name}")
        self.records[name].status = ProcessStatus.STOPPED

    def delete(self, name):
        self.calls.append(("delete", name))
        if self.fail_delete or name not in self.records:
            raise SupervisorUnavailable(f"pm2 delete failed for {name}")
        del self.records[name]

    def _boot(self, name, environment=None):
        if self.boot_status is not None:
            self.records[name] = ProcessRecord(
                name=name, status=ProcessStatus.from_raw(self.boot_status), environment=environment)

    def start_from_config(self, config_path, environment, cwd=None):
        self.calls.append(("start_from_config", config_path, environment))
        # Config files in the tests always name the app after the project dir.
        self._boot(cwd.name if cwd else config_path, environment)

    def start_from_entry_point(self, entry_point, name, policy, cwd=None):
        self.calls.append(("start_from_entry_point", entry_point, name, policy))
        self._boot(name)

    def list(self):
        self.calls.append(("list",))
        return list(self.records.values())

    def save(self):
        self.calls.append(("save",))
        self.snapshot = [record.to_dict() for record in self.records.values()]

    def logs(self, name, lines):
        self.calls.append(("logs", name, lines))
        return self.log_lines[-lines:]

    def call_names(self):
        return [call[0] for call in self.calls]


class FakeClock:
    """``sleep`` advances ``now``; nothing actually waits."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds

    def __call__(self):
        return self.now


@pytest.fixture
def hostdeploy_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("HOSTDEPLOY_HOME", str(home))
    return home


@pytest.fixture
def make_project(tmp_path):
    """Create a Node.js project directory under ``tmp_path / 'apps'``."""
    base = tmp_path / "apps"

    def _make(name, scripts=None, main=None, files=(), lock=False, extra=None):
        project = base / name
        project.mkdir(parents=True)
        manifest = {"name": name, "version": "1.0.0", "scripts": scripts or {}}
        if main:
            manifest["main"] = main
        manifest.update(extra or {})
        (project / "package.json").write_text(json.dumps(manifest))
        if lock:
            (project / "package-lock.json").write_text("{}")
        for relative in files:
            path = project / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("// stub\n")
        return project

    _make.base = base
    return _make


@pytest.fixture(autouse=True)
def _reset_home_override():
    yield
    set_home(None)
