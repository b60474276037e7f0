"""Main CLI entry point using Typer."""

import logging
import sys
import threading
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..aws.provider import LoadBalancerProvider
from ..models.recreation import RecreationResult
from ..models.resources import LoadBalancerRef
from ..models.teardown_outcome import STAGE_ORDER, StageStatus, TeardownOutcome
from ..teardown.orchestrator import TeardownOrchestrator
from ..utils.cancellation import CancellationToken
from ..utils.logging import setup_logging
from ..verify.poller import RecreationPoller
from ..verify.resolver import KubectlServiceResolver
from ..verify.scenario import RecreationScenario, ScenarioError
from .config import Config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="lbreaper",
    help="Load balancer teardown and recreation verifier",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None

STATUS_STYLES = {
    StageStatus.COMPLETED: "green",
    StageStatus.WARNING: "yellow",
    StageStatus.FATAL: "bold red",
    StageStatus.SKIPPED: "dim",
}


@app.callback()
def main(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="AWS region"),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Config file path (default: ~/.lbreaper/config.yaml)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """Load balancer teardown and recreation verifier."""
    global config

    # Load configuration
    try:
        config = Config.load(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"✗ Invalid configuration: {e}", style="bold red")
        raise typer.Exit(code=2)

    # Override with CLI options
    if profile:
        config.aws_profile = profile
    if region:
        config.region = region

    # Setup logging
    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)

    # Disable colors if requested
    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    console.print(f"lbreaper version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"boto3 {boto3.__version__}")


def _provider() -> LoadBalancerProvider:
    return LoadBalancerProvider(
        aws_profile=config.aws_profile,
        region=config.region,
        client_options=config.client_options,
    )


def _orchestrator(provider: LoadBalancerProvider, delete_load_balancer: bool = False) -> TeardownOrchestrator:
    return TeardownOrchestrator(
        provider,
        poll_interval=config.poll_interval_seconds,
        deletion_wait=config.deletion_wait_seconds,
        delete_load_balancer=delete_load_balancer,
        security_group_retries=config.security_group_retries,
    )


def _cancel_after(token: CancellationToken, seconds: Optional[float]) -> Optional[threading.Timer]:
    """Cancel ``token`` after ``seconds`` from a background timer."""
    if not seconds:
        return None
    timer = threading.Timer(seconds, token.cancel, kwargs={"reason": f"aborted after {seconds}s"})
    timer.daemon = True
    timer.start()
    return timer


def render_outcome(outcome: TeardownOutcome) -> Table:
    """Build a table summarizing a teardown outcome."""
    table = Table(title=f"Teardown of {outcome.load_balancer_name}")
    table.add_column("Stage", style="cyan")
    table.add_column("Status")
    table.add_column("Deleted", justify="right")
    table.add_column("Already absent", justify="right")
    table.add_column("Failed", justify="right")

    for name in STAGE_ORDER:
        stage = outcome.stage(name)
        status = stage.status
        table.add_row(
            name.value,
            f"[{STATUS_STYLES[status]}]{status.value}[/{STATUS_STYLES[status]}]",
            str(stage.deleted),
            str(stage.already_absent),
            str(stage.failed),
        )
    return table


def _print_outcome(outcome: TeardownOutcome) -> None:
    console.print(render_outcome(outcome))
    for warning in outcome.warnings:
        console.print(f"⚠ {warning}", style="yellow")
    if outcome.is_fatal:
        console.print(f"✗ Teardown failed: {outcome.fatal_error}", style="bold red")
    else:
        console.print("✓ Teardown completed", style="bold green")


def _print_recreation(result: RecreationResult) -> None:
    if result.confirmed:
        console.print(
            f"✓ Load balancer recreated: [cyan]{result.old_name}[/cyan] → [cyan]{result.new_name}[/cyan] "
            f"({result.ticks} checks, {result.elapsed_seconds:.0f}s)",
            style="bold green",
        )
        return

    reason = "cancelled" if result.cancelled else "timed out"
    console.print(
        f"✗ Recreation of {result.old_name} {reason} after {result.ticks} checks ({result.elapsed_seconds:.0f}s)",
        style="bold red",
    )
    observation = result.last_observation
    if observation is not None:
        if observation.resolver_error:
            console.print(f"  Last lookup error: {observation.resolver_error}")
        elif observation.current_name and not observation.old_absent:
            console.print(f"  {observation.current_name} is up but {result.old_name} still exists")


@app.command()
def teardown(
    load_balancer: str = typer.Argument(..., help="Load balancer name"),
    security_groups: Optional[List[str]] = typer.Option(
        None, "--security-group", "-g", help="Orphan security group ID to delete (repeatable)"
    ),
    delete_load_balancer: bool = typer.Option(
        False, "--delete-load-balancer", help="Delete the load balancer itself after its target groups"
    ),
    deletion_wait: Optional[float] = typer.Option(None, "--wait", help="Max seconds to wait for deletion"),
):
    """Delete a load balancer's listeners, target groups and orphan security groups.

    Examples:
        # Clean up dependents and wait for the load balancer to disappear
        lbreaper teardown a1b2c3d4 -g sg-0123 -g sg-0456

        # Delete the load balancer as well
        lbreaper teardown a1b2c3d4 --delete-load-balancer
    """
    if deletion_wait is not None:
        config.deletion_wait_seconds = deletion_wait

    try:
        orchestrator = _orchestrator(_provider(), delete_load_balancer=delete_load_balancer)
        outcome = orchestrator.run(load_balancer, security_groups or [])
    except KeyboardInterrupt:
        console.print("✗ Interrupted", style="bold red")
        raise typer.Exit(code=130)
    except Exception as e:
        console.print(f"✗ Error during teardown: {e}", style="bold red")
        logger.exception("Error in teardown command")
        raise typer.Exit(code=2)

    _print_outcome(outcome)
    if outcome.is_fatal:
        raise typer.Exit(code=1)


@app.command("wait-recreated")
def wait_recreated(
    namespace: str = typer.Argument(..., help="Service namespace"),
    service: str = typer.Argument(..., help="Service name"),
    old_load_balancer: str = typer.Option(..., "--old-lb", help="Name of the deleted load balancer"),
    old_arn: Optional[str] = typer.Option(
        None, "--old-arn", help="ARN of the deleted load balancer (detects a replacement under the same name)"
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Max seconds to wait"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="kubeconfig path"),
):
    """Wait until a service is fronted by a new load balancer.

    Without --old-arn only a differently named load balancer counts as new.

    Examples:
        lbreaper wait-recreated openshift-ingress router-default --old-lb a1b2c3d4 \\
            --old-arn arn:aws:elasticloadbalancing:us-east-1:123456789012:loadbalancer/net/a1b2c3d4/50dc6c495c0c9188
    """
    old = LoadBalancerRef(name=old_load_balancer, arn=old_arn) if old_arn else old_load_balancer
    poller = RecreationPoller(
        _provider(),
        KubectlServiceResolver(kubeconfig=kubeconfig or config.kubeconfig),
        poll_interval=config.poll_interval_seconds,
        timeout=timeout if timeout is not None else config.recreation_timeout_seconds,
    )

    try:
        result = poller.poll(namespace, service, old)
    except KeyboardInterrupt:
        console.print("✗ Interrupted", style="bold red")
        raise typer.Exit(code=130)
    except Exception as e:
        console.print(f"✗ Error while waiting for recreation: {e}", style="bold red")
        logger.exception("Error in wait-recreated command")
        raise typer.Exit(code=2)

    _print_recreation(result)
    if not result.confirmed:
        raise typer.Exit(code=1)


@app.command()
def verify(
    namespace: str = typer.Argument(..., help="Service namespace"),
    service: str = typer.Argument(..., help="Service name"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Max seconds to wait for recreation"),
    abort_after: Optional[float] = typer.Option(
        None, "--abort-after", help="Cancel the whole run after this many seconds"
    ),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="kubeconfig path"),
):
    """Delete a service's load balancer and verify it gets recreated.

    Steps:
    - Resolve the load balancer currently fronting the service
    - Collect its security groups and revoke references to them
    - Delete listeners, target groups, the load balancer and its security groups
    - Wait for a new, distinct load balancer

    Examples:
        lbreaper verify openshift-ingress router-default --timeout 900
    """
    provider = _provider()
    resolver = KubectlServiceResolver(kubeconfig=kubeconfig or config.kubeconfig)
    scenario = RecreationScenario(
        provider,
        resolver,
        _orchestrator(provider, delete_load_balancer=True),
        RecreationPoller(
            provider,
            resolver,
            poll_interval=config.poll_interval_seconds,
            timeout=timeout if timeout is not None else config.recreation_timeout_seconds,
        ),
    )

    token = CancellationToken()
    timer = _cancel_after(token, abort_after)
    try:
        console.print(f"\n🔍 Verifying load balancer recreation for [bold cyan]{namespace}/{service}[/bold cyan]\n")
        result = scenario.run(namespace, service, token=token)
    except ScenarioError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        token.cancel("interrupted")
        console.print("✗ Interrupted", style="bold red")
        raise typer.Exit(code=130)
    except Exception as e:
        console.print(f"✗ Error during verification: {e}", style="bold red")
        logger.exception("Error in verify command")
        raise typer.Exit(code=2)
    finally:
        if timer is not None:
            timer.cancel()

    if result.scan.orphans:
        console.print(f"Orphan security groups: {', '.join(result.scan.orphan_ids)}")
    _print_outcome(result.teardown)
    if result.recreation is not None:
        _print_recreation(result.recreation)

    if not result.passed:
        raise typer.Exit(code=1)


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
