#!/usr/bin/python3

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, account_option, network_option

from bridge_deployment.confirm import _confirm_redeployment
from bridge_deployment.interfaces import load_contract_interface
from bridge_deployment.networks import is_local_network, load_network_registry, select_network_key
from bridge_deployment.options import (
    addresses_dir_option,
    autosign_option,
    network_key_option,
    networks_config_option,
    redeploy_option,
    verify_option,
)
from bridge_deployment.orchestrator import BridgeDeployment, load_deployment_settings
from bridge_deployment.params import Deployer
from bridge_deployment.store import AddressStore


@click.command(cls=ConnectedProviderCommand, name="deploy-bridge")
@network_option(required=True)
@account_option()
@network_key_option
@networks_config_option
@addresses_dir_option
@redeploy_option
@autosign_option
@verify_option
def cli(
    network, account, network_key, networks_config, addresses_dir, redeploy, autosign, verify
):
    """Deploy and wire the bridge contracts on the connected network."""
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
    click.secho(
        f"Deploying to {network_key} with contract interface {interface.version}", fg="green"
    )

    if not autosign:
        for role in redeploy:
            address = store.find_contract_address(network_key, role)
            if address:
                _confirm_redeployment(network_key, role, address)

    deployer = Deployer(account=account, autosign=autosign, verify=verify)
    deployment = BridgeDeployment(
        network=network_key,
        registry=registry,
        store=store,
        deployer=deployer,
        interface=interface,
        settings=settings,
        redeploy=redeploy,
    )
    result = deployment.run()

    print(f"\nAddresses saved to {store.filepath(network_key)}")
    for role, address in result.contracts.items():
        click.secho(f"\t{role}: {address}", fg="cyan")
    if result.failed_tokens:
        raise click.ClickException(f"Failed tokens: {', '.join(result.failed_tokens)}")


if __name__ == "__main__":
    cli()
