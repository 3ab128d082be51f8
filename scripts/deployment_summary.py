#!/usr/bin/python3

import json
from pathlib import Path

import click

from bridge_deployment.inspection import summarize_deployments
from bridge_deployment.networks import load_network_registry
from bridge_deployment.options import addresses_dir_option, networks_config_option
from bridge_deployment.store import STANDARD_ADDRESSES_JSON_FORMAT, AddressStore


@click.command(name="deployment-summary")
@networks_config_option
@addresses_dir_option
@click.option(
    "--output-filepath",
    "-o",
    help="Write the summary as JSON to this file",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
)
def cli(networks_config, addresses_dir, output_filepath):
    """Summarize the deployments recorded in the address store."""
    registry = load_network_registry(networks_config)
    summary = summarize_deployments(AddressStore(addresses_dir), registry)

    print("\n=== Deployment Summary ===")
    for network in summary.networks:
        gateway = "✓" if network.has_gateway else "✗"
        click.secho(
            f"    {network.network}: gateway {gateway}, {len(network.roles)} contract(s), "
            f"{network.token_count} token(s)",
            fg="cyan",
        )
    print(f"\nChains: {summary.chains}")
    print(f"Gateways: {summary.gateways}")
    print(f"Tokens: {summary.tokens}")
    for problem in summary.problems:
        click.secho(f"⚠ {problem}", fg="yellow")

    if output_filepath:
        with open(output_filepath, "w") as file:
            json.dump(summary.to_json(), file, **STANDARD_ADDRESSES_JSON_FORMAT)
        print(f"\n(i) Summary written to {output_filepath}")


if __name__ == "__main__":
    cli()
