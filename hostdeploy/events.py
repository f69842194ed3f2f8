"""
Event logging utilities for NDJSON format.
"""

import json
import time
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from .state import get_deployment_dir


# Predefined event types for consistency
class EventTypes:
    INIT = "INIT"
    RESOLVED = "RESOLVED"
    STEP = "STEP"
    INSTALL_DONE = "INSTALL_DONE"
    BUILD_DONE = "BUILD_DONE"
    BUILD_SKIPPED = "BUILD_SKIPPED"
    MIGRATE_DONE = "MIGRATE_DONE"
    MIGRATE_SKIPPED = "MIGRATE_SKIPPED"
    LAUNCH_SELECTED = "LAUNCH_SELECTED"
    PROCESS_STOPPED = "PROCESS_STOPPED"
    PROCESS_STARTED = "PROCESS_STARTED"
    HEALTH_CHECK = "HEALTH_CHECK"
    VERIFY_OK = "VERIFY_OK"
    VERIFY_FAIL = "VERIFY_FAIL"
    SMOKE_ATTEMPT = "SMOKE_ATTEMPT"
    SMOKE_OK = "SMOKE_OK"
    SMOKE_FAIL = "SMOKE_FAIL"
    SAVED = "SAVED"
    DONE = "DONE"
    ERROR = "ERROR"


def emit_event(deployment_id: str, event_type: str, data: Dict[str, Any]) -> None:
    """
    Emit an event to the deployment's logs.ndjson file.

    Args:
        deployment_id: Deployment ID
        event_type: One of ``EventTypes``
        data: Event data
    """
    logs_file = get_deployment_dir(deployment_id) / "logs.ndjson"

    event = {
        "ts": datetime.now().isoformat(),
        "type": event_type,
        "data": data
    }

    with open(logs_file, "a") as f:
        f.write(json.dumps(event) + "\n")
        f.flush()


def _parse_lines(lines) -> Iterator[Dict[str, Any]]:
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            yield json.loads(line)
        except json.JSONDecodeError:
            continue  # Skip malformed lines


def read_events(deployment_id: str) -> List[Dict[str, Any]]:
    """Read all events from a deployment's logs.ndjson file."""
    logs_file = get_deployment_dir(deployment_id) / "logs.ndjson"
    if not logs_file.exists():
        return []

    with open(logs_file, "r") as f:
        return list(_parse_lines(f))


def get_last_event(deployment_id: str) -> Optional[Dict[str, Any]]:
    events = read_events(deployment_id)
    return events[-1] if events else None


def get_status_from_events(deployment_id: str) -> str:
    """
    Determine deployment status from the last event.

    Returns:
        Status string
    """
    last_event = get_last_event(deployment_id)
    if not last_event:
        return "unknown"

    status_map = {
        EventTypes.INIT: "queued",
        EventTypes.RESOLVED: "resolving",
        EventTypes.STEP: "running",
        EventTypes.INSTALL_DONE: "building",
        EventTypes.BUILD_DONE: "building",
        EventTypes.BUILD_SKIPPED: "building",
        EventTypes.MIGRATE_DONE: "building",
        EventTypes.MIGRATE_SKIPPED: "building",
        EventTypes.LAUNCH_SELECTED: "starting",
        EventTypes.PROCESS_STOPPED: "starting",
        EventTypes.PROCESS_STARTED: "verifying",
        EventTypes.HEALTH_CHECK: "verifying",
        EventTypes.SMOKE_ATTEMPT: "verifying",
        EventTypes.SMOKE_OK: "verifying",
        EventTypes.VERIFY_OK: "saving",
        EventTypes.SAVED: "saving",
        EventTypes.DONE: "healthy",
        EventTypes.VERIFY_FAIL: "failed",
        EventTypes.SMOKE_FAIL: "failed",
        EventTypes.ERROR: "failed",
    }

    return status_map.get(last_event.get("type", ""), "unknown")


def tail_events(deployment_id: str, follow: bool = False, interval: float = 0.1):
    """
    Generator that yields new events as they're written.

    Args:
        deployment_id: Deployment ID
        follow: If True, continue watching for new events
        interval: Polling interval while following

    Yields:
        Event dictionaries
    """
    logs_file = get_deployment_dir(deployment_id) / "logs.ndjson"
    if not logs_file.exists():
        return

    last_size = logs_file.stat().st_size
    with open(logs_file, "r") as f:
        yield from _parse_lines(f.read(last_size).splitlines())

    if not follow:
        return

    while True:
        try:
            current_size = logs_file.stat().st_size
            if current_size > last_size:
                with open(logs_file, "r") as f:
                    f.seek(last_size)
                    chunk = f.read(current_size - last_size)
                last_size = current_size
                yield from _parse_lines(chunk.splitlines())
            time.sleep(interval)
        except (FileNotFoundError, KeyboardInterrupt):
            break
