#!/usr/bin/python3

import click

from bridge_deployment.inspection import check_network_endpoints
from bridge_deployment.networks import load_network_registry
from bridge_deployment.options import networks_config_option


@click.command(name="check-networks")
@networks_config_option
def cli(networks_config):
    """List enabled networks and whether their RPC endpoints resolve."""
    registry = load_network_registry(networks_config)
    statuses = check_network_endpoints(registry)

    hub = registry.find_bridge_hub()
    if hub is None:
        click.secho("⚠ No bridge hub network enabled", fg="yellow")
    else:
        click.secho(f"Bridge hub: {hub.network_key} ({hub.descriptor.chain_id})", fg="green")

    for status in statuses:
        marker = " [hub]" if status.is_bridge_hub else ""
        if status.resolved:
            click.secho(f"✓ {status.network} ({status.chain_id}){marker}", fg="green")
        else:
            click.secho(
                f"✗ {status.network} ({status.chain_id}){marker}: {status.rpc_key} is not set",
                fg="red",
            )

    unresolved = [status.network for status in statuses if not status.resolved]
    if unresolved:
        raise click.ClickException(f"Unresolved RPC endpoints: {', '.join(unresolved)}")


if __name__ == "__main__":
    cli()
