#!/usr/bin/python3

import click

from bridge_deployment.networks import load_network_registry
from bridge_deployment.options import addresses_dir_option, networks_config_option
from bridge_deployment.store import AddressStore


def _display_network(store: AddressStore, registry, network: str) -> None:
    chain = registry.describe_network(network)
    title = f"{chain.name} ({chain.chain_id})" if chain else f"{network} (not configured)"
    click.secho(f"\n{title}", fg="green")

    for index, (role, address) in enumerate(
        store.get_contract_addresses(network).items(), start=1
    ):
        click.secho(f"    {index}. {role} {address}", fg="cyan")

    token_data = store.get_token_data(network)
    if token_data and token_data.tokens:
        click.secho(f"    Tokens (updated {token_data.timestamp}):", fg="yellow")
        for token in token_data.tokens:
            kind = "bridged" if token.is_deployed else "existing"
            click.secho(
                f"        {token.symbol} {token.address} ({kind}, {token.decimals} decimals)",
                fg="cyan",
            )


@click.command(name="list-addresses")
@click.option(
    "--network-key",
    "-k",
    "network_keys",
    help="Only list these networks",
    type=str,
    multiple=True,
)
@networks_config_option
@addresses_dir_option
def cli(network_keys, networks_config, addresses_dir):
    """List recorded contract addresses and tokens per network."""
    registry = load_network_registry(networks_config)
    store = AddressStore(addresses_dir)

    networks = store.list_networks()
    if network_keys:
        networks = [network for network in networks if network in network_keys]
    if not networks:
        print(f"(i) No address files found in {store.directory}")
        return

    for network in networks:
        _display_network(store, registry, network)


if __name__ == "__main__":
    cli()
