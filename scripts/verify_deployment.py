#!/usr/bin/python3

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, network_option

from bridge_deployment.constants import (
    DI_GATEWAY,
    GATEWAY_CONTRACT,
    TOKEN_REGISTRY,
    TOKEN_REGISTRY_CONTRACT,
)
from bridge_deployment.contracts import DIGateway, TokenRegistry
from bridge_deployment.inspection import inspect_gateway
from bridge_deployment.interfaces import load_contract_interface
from bridge_deployment.networks import is_local_network, load_network_registry, select_network_key
from bridge_deployment.options import (
    addresses_dir_option,
    chain_ids_option,
    network_key_option,
    networks_config_option,
)
from bridge_deployment.orchestrator import load_deployment_settings
from bridge_deployment.store import AddressStore
from bridge_deployment.utils import get_contract_container


def _display_supported_chains(registry, supported_chains) -> None:
    click.secho("\nSupported chains:", fg="green")
    for chain_id, supported in supported_chains.items():
        network_key = registry.network_for_chain_id(chain_id) or "unknown"
        if supported is None:
            click.secho(f"    {network_key} ({chain_id}): lookup failed", fg="red")
        else:
            color = "cyan" if supported else "yellow"
            click.secho(f"    {network_key} ({chain_id}): {supported}", fg=color)


@click.command(cls=ConnectedProviderCommand, name="verify-deployment")
@network_option(required=True)
@network_key_option
@networks_config_option
@addresses_dir_option
@chain_ids_option
def cli(network, network_key, networks_config, addresses_dir, chain_ids):
    """Inspect the deployed gateway of the connected network."""
    registry = load_network_registry(networks_config)
    settings = load_deployment_settings(networks_config)
    interface = load_contract_interface(settings.interface_version)
    store = AddressStore(addresses_dir)

    network_key = select_network_key(
        registry,
        chain_id=networks.provider.chain_id,
        network_key=network_key,
        strict=not is_local_network(),
    )
    gateway_address = store.get_contract_address(network_key, DI_GATEWAY)
    expected_registry = store.find_contract_address(network_key, TOKEN_REGISTRY)
    gateway = DIGateway(
        get_contract_container(GATEWAY_CONTRACT).at(gateway_address),
        transactor=None,
        interface=interface,
    )
    token_registry = None
    if expected_registry:
        token_registry = TokenRegistry(
            get_contract_container(TOKEN_REGISTRY_CONTRACT).at(expected_registry),
            transactor=None,
            interface=interface,
        )

    if not chain_ids:
        chain_ids = [
            registry.describe_network(key).chain_id for key in registry.list_enabled_networks()
        ]

    print(f"\n=== Verifying {network_key} deployment ===")
    report = inspect_gateway(
        gateway,
        expected_registry=expected_registry,
        chain_ids=chain_ids,
        token_registry=token_registry,
    )
    click.secho(f"DIGateway: {gateway_address}", fg="green")
    print(f"Bridge fee: {report.bridge_fee} bps")
    print(f"Fee receiver: {report.fee_receiver}")
    print(f"Token registry: {report.token_registry}")
    if report.registry_linked:
        click.secho("✓ Gateway points at the recorded token registry", fg="green")
    else:
        click.secho(
            f"✗ Gateway token registry does not match the recorded one ({expected_registry})",
            fg="red",
        )
    if report.registry_owner:
        print(f"Token registry owner: {report.registry_owner}")
    if report.gateway_linked:
        click.secho("✓ Token registry points back at the gateway", fg="green")
    elif report.gateway_linked is False:
        click.secho("✗ Token registry gateway does not match the deployed gateway", fg="red")
    _display_supported_chains(registry, report.supported_chains)

    for error in report.errors:
        click.secho(f"✗ Lookup failed: {error}", fg="red")
    if report.errors:
        raise click.ClickException(f"{len(report.errors)} lookup(s) failed.")


if __name__ == "__main__":
    cli()
