"""
Click CLI for vpcwatch.
"""

import json
import logging
import sys
import threading
from typing import Optional

import click

from .config import load_settings, validate_network_id
from .errors import FetchError, InvalidNetworkIdError
from .fetch import AwsResourceFetcher
from .models import PollResult
from .render import render_flow, render_text
from .scheduler import PollScheduler, collect_topology


def _print_result(result: PollResult, output_format: str) -> None:
    if output_format == "json":
        print(json.dumps(render_flow(result), indent=2), flush=True)
    else:
        click.echo(render_text(result))


@click.group()
@click.option("--log-level", default="WARNING",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Logging level")
def main(log_level: str):
    """
    vpcwatch - live topology of web/app tier instances and load balancers in a VPC.
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--vpc-id", required=True, help="VPC ID to inspect")
@click.option("--region", help="AWS region (defaults to AWS_REGION or ap-northeast-2)")
@click.option("--format", "output_format", type=click.Choice(["json", "human"]), default="human", help="Output format")
def snapshot(vpc_id: str, region: Optional[str], output_format: str):
    """
    Fetch the VPC once and print its topology.
    """
    settings = load_settings(region)
    try:
        vpc_id = validate_network_id(vpc_id)
        result = collect_topology(
            AwsResourceFetcher(settings.region), vpc_id,
            rules=settings.rules, layout=settings.layout,
        )
    except InvalidNetworkIdError as e:
        click.echo(f"Invalid VPC ID: {e}", err=True)
        sys.exit(1)
    except FetchError as e:
        click.echo(f"Failed to fetch resources: {e}", err=True)
        sys.exit(1)

    _print_result(result, output_format)


@main.command()
@click.option("--vpc-id", required=True, help="VPC ID to monitor")
@click.option("--region", help="AWS region (defaults to AWS_REGION or ap-northeast-2)")
@click.option("--format", "output_format", type=click.Choice(["json", "human"]), default="human", help="Output format")
def watch(vpc_id: str, region: Optional[str], output_format: str):
    """
    Poll the VPC every 10 seconds and print each refreshed topology.
    """
    settings = load_settings(region)

    def publish(result: PollResult):
        click.echo(f"--- {vpc_id} ({len(result.nodes)} nodes, {len(result.edges)} edges)")
        _print_result(result, output_format)

    scheduler = PollScheduler(
        AwsResourceFetcher(settings.region),
        publish=publish,
        interval=settings.poll_interval,
        rules=settings.rules,
        layout=settings.layout,
    )

    try:
        scheduler.start(vpc_id)
    except InvalidNetworkIdError as e:
        click.echo(f"Invalid VPC ID: {e}", err=True)
        sys.exit(1)

    click.echo(f"Watching {scheduler.network_id} in {settings.region}, Ctrl+C to stop", err=True)
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        click.echo("\nMonitoring stopped", err=True)
    finally:
        scheduler.shutdown()


@main.command()
@click.option("--host", default="0.0.0.0", help="Host to bind to")
@click.option("--port", default=3000, help="Port to bind to")
@click.option("--region", help="AWS region (defaults to AWS_REGION or ap-northeast-2)")
def serve(host: str, port: int, region: Optional[str]):
    """
    Start the REST API server.
    """
    import uvicorn
    from .api import create_app

    app = create_app(settings=load_settings(region))
    click.echo(f"Starting vpcwatch API server on {host}:{port}")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
