from hostdeploy.events import EventTypes, emit_event, get_status_from_events, read_events, tail_events
from hostdeploy.ids import is_valid_deployment_id, new_deployment_id
from hostdeploy.state import create_deployment_dir, deployment_exists, list_deployments, write_request_json


def test_status_progression_basic(hostdeploy_home):
    deployment_id = new_deployment_id()
    create_deployment_dir(deployment_id)
    assert get_status_from_events(deployment_id) == "unknown"
    emit_event(deployment_id, EventTypes.INIT, {})
    assert get_status_from_events(deployment_id) == "queued"
    emit_event(deployment_id, EventTypes.PROCESS_STARTED, {})
    assert get_status_from_events(deployment_id) == "verifying"
    emit_event(deployment_id, EventTypes.DONE, {})
    assert get_status_from_events(deployment_id) == "healthy"


def test_malformed_lines_skipped(hostdeploy_home):
    deployment_id = new_deployment_id()
    deployment_dir = create_deployment_dir(deployment_id)
    emit_event(deployment_id, EventTypes.INIT, {"identifier": "svc-a"})
    with open(deployment_dir / "logs.ndjson", "a") as f:
        f.write("{truncated\n\n")
    emit_event(deployment_id, EventTypes.ERROR, {"reason": "boom"})

    events = read_events(deployment_id)
    assert [e["type"] for e in events] == ["INIT", "ERROR"]
    assert [e["type"] for e in tail_events(deployment_id)] == ["INIT", "ERROR"]


def test_deployment_ids():
    deployment_id = new_deployment_id()
    assert is_valid_deployment_id(deployment_id)
    assert not is_valid_deployment_id("d-2026-10-18")
    assert not is_valid_deployment_id("x-20261018-120000-abcd")
    assert not is_valid_deployment_id("d-20261018-120000-AB!D")


def test_list_deployments_most_recent_first(hostdeploy_home):
    for deployment_id in ("d-20261017-090000-aaaa", "d-20261018-090000-bbbb"):
        create_deployment_dir(deployment_id)
        write_request_json(deployment_id, "svc-a", "production")
    (hostdeploy_home / "not-a-deployment").mkdir()

    assert list_deployments() == ["d-20261018-090000-bbbb", "d-20261017-090000-aaaa"]
    assert deployment_exists("d-20261018-090000-bbbb")
