#!/usr/bin/python3

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, account_option, network_option

from bridge_deployment.constants import (
    BRIDGE_HUB,
    BRIDGE_HUB_CONTRACT,
    GAS_CREDIT_VAULT,
    GAS_CREDIT_VAULT_CONTRACT,
)
from bridge_deployment.contracts import BridgeHub, GasCreditVault
from bridge_deployment.interfaces import load_contract_interface
from bridge_deployment.networks import NetworkRegistry, is_local_network, load_network_registry
from bridge_deployment.options import (
    addresses_dir_option,
    autosign_option,
    networks_config_option,
    relayer_option,
)
from bridge_deployment.orchestrator import load_deployment_settings
from bridge_deployment.params import Transactor
from bridge_deployment.reconciler import CrossChainReconciler
from bridge_deployment.store import AddressStore
from bridge_deployment.utils import get_contract_container


@click.command(cls=ConnectedProviderCommand, name="register-bridge-hub")
@network_option(required=True)
@account_option()
@networks_config_option
@addresses_dir_option
@relayer_option
@autosign_option
def cli(network, account, networks_config, addresses_dir, relayer, autosign):
    """Register every deployed chain and token with the bridge hub."""
    registry = load_network_registry(networks_config)
    settings = load_deployment_settings(networks_config)
    interface = load_contract_interface(settings.interface_version)
    store = AddressStore(addresses_dir)

    hub_info = registry.find_bridge_hub()
    if hub_info is None:
        raise NetworkRegistry.UnknownNetwork("No bridge hub network found in config")

    hub_network = hub_info.network_key
    chain_id = networks.provider.chain_id
    if chain_id != hub_info.descriptor.chain_id and not is_local_network():
        raise click.ClickException(
            f"Connected to chain id {chain_id}; the bridge hub lives on "
            f"{hub_network} ({hub_info.descriptor.chain_id})"
        )

    hub_address = store.get_contract_address(hub_network, BRIDGE_HUB)
    click.secho(f"BridgeHub: {hub_address}", fg="green")

    transactor = Transactor(account=account, autosign=autosign)
    hub = BridgeHub(
        get_contract_container(BRIDGE_HUB_CONTRACT).at(hub_address),
        transactor=transactor,
        interface=interface,
    )

    vault = None
    vault_address = store.find_contract_address(hub_network, GAS_CREDIT_VAULT)
    if vault_address:
        vault = GasCreditVault(
            get_contract_container(GAS_CREDIT_VAULT_CONTRACT).at(vault_address),
            transactor=transactor,
            interface=interface,
        )

    reconciler = CrossChainReconciler(
        registry=registry,
        store=store,
        hub=hub,
        vault=vault,
        relayer=relayer or settings.relayer,
    )
    report = reconciler.run(current_network=hub_network)
    if report.failures:
        raise click.ClickException(f"{report.failures} registration(s) failed")
    click.secho("\n✓ Bridge hub registration complete", fg="green")


if __name__ == "__main__":
    cli()
