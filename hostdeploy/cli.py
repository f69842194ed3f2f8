"""
Click CLI for hostdeploy.

    hostdeploy deploy <project_name_or_path> [environment]
"""

import json
import logging
import sys
from typing import Optional

import click

from .config import HEALTH_MODES, load_config
from .console import Console
from .errors import SupervisorUnavailable
from .events import read_events, tail_events
from .ids import is_valid_deployment_id
from .orchestrator import DeploymentOrchestrator
from .resolver import DEFAULT_ENVIRONMENT, DeploymentRequest
from .state import deployment_exists, list_deployments, read_request_json, read_result_json, set_home
from .supervisor import Pm2Supervisor


def _json_output(data) -> None:
    click.echo(json.dumps(data))


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML config file")
@click.option("--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def main(ctx, config_path: Optional[str], verbose: bool):
    """
    hostdeploy - deploy Node.js projects on this host under PM2.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    try:
        ctx.obj = load_config(config_path)
    except (OSError, ValueError) as e:
        raise click.UsageError(f"Invalid configuration: {e}")
    set_home(ctx.obj.home)


@main.command()
@click.argument("project")
@click.argument("environment", default=DEFAULT_ENVIRONMENT)
@click.option("--base-dir", help="Directory bare project names are resolved under")
@click.option("--health-mode", type=click.Choice(HEALTH_MODES), help="single: one check after the grace period; poll: retry with backoff")
@click.option("--grace-period", type=float, help="Seconds to wait before the first health check")
@click.option("--health-timeout", type=float, help="Give up polling after this many seconds")
@click.option("--log-lines", type=int, help="Log lines to show when the process is unhealthy")
@click.option("--health-url", help="Also require this URL to answer 2xx/3xx once online")
@click.option("--json", "output_json", is_flag=True, help="Print the result as JSON only")
@click.pass_obj
def deploy(config, project: str, environment: str, base_dir, health_mode, grace_period, health_timeout,
           log_lines, health_url, output_json: bool):
    """
    Deploy PROJECT (a name under the base directory, or an absolute path).
    """
    try:
        config = config.override(
            base_dir=base_dir,
            health_mode=health_mode,
            grace_period=grace_period,
            health_timeout=health_timeout,
            log_lines=log_lines,
            health_url=health_url,
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    orchestrator = DeploymentOrchestrator(config, console=Console(quiet=output_json))

    try:
        result = orchestrator.deploy(DeploymentRequest(project, environment))
    except KeyboardInterrupt:
        click.echo("\nDeployment cancelled by user", err=True)
        sys.exit(1)

    if output_json:
        _json_output(result.to_dict())

    sys.exit(0 if result.ok else 1)


@main.command()
@click.argument("name")
@click.option("--json", "output_json", is_flag=True, help="Output machine-readable JSON")
@click.pass_obj
def status(config, name: str, output_json: bool):
    """Show the live PM2 record for NAME."""
    supervisor = Pm2Supervisor(pm2_bin=config.pm2_bin)
    try:
        record = supervisor.find(name)
    except SupervisorUnavailable as e:
        click.echo(f"Status check failed: {e}", err=True)
        sys.exit(1)

    if record is None:
        if output_json:
            _json_output({"error": f"Process {name} not found"})
        else:
            click.echo(f"Process {name} not found", err=True)
        sys.exit(2)

    if output_json:
        _json_output(record.to_dict())
        return

    color = "green" if record.status.is_healthy else "red"
    click.echo(f"Process: {record.name}")
    click.echo(f"Status: {click.style(record.status.value, fg=color)}")
    click.echo(f"Instances: {record.instances}")
    click.echo(f"Restarts: {record.restarts}")
    if record.environment:
        click.echo(f"Environment: {record.environment}")


@main.command()
@click.option("--limit", type=int, default=20, show_default=True)
def history(limit: int):
    """List recent deployments."""
    for deployment_id in list_deployments()[:limit]:
        try:
            request = read_request_json(deployment_id)
        except FileNotFoundError:
            # Run directory created but the request was never written.
            request = {}
        result = read_result_json(deployment_id) or {}
        outcome = result.get("status", "incomplete")
        color = {"healthy": "green", "failed": "red"}.get(outcome, "yellow")
        click.echo(f"{deployment_id}  {request.get('identifier', '?')} ({request.get('environment', '?')})  "
                   f"{click.style(outcome, fg=color)}")


@main.command()
@click.argument("deployment_id")
@click.option("--follow", is_flag=True, help="Follow events in real-time")
def events(deployment_id: str, follow: bool):
    """Print the NDJSON event log of a deployment."""
    if not is_valid_deployment_id(deployment_id) or not deployment_exists(deployment_id):
        click.echo(f"Deployment {deployment_id} not found", err=True)
        sys.exit(2)

    source = tail_events(deployment_id, follow=True) if follow else read_events(deployment_id)
    try:
        for event in source:
            click.echo(json.dumps(event))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
