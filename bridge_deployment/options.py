from pathlib import Path

import click

from bridge_deployment.constants import (
    ADDRESSES_DIR,
    CONTRACT_ROLES,
    NETWORKS_CONFIG_FILEPATH,
)
from bridge_deployment.types import ChecksumAddress, MinInt

network_key_option = click.option(
    "--network-key",
    "-k",
    help="Network key from the network configuration; defaults to the connected chain.",
    type=str,
    required=False,
)

networks_config_option = click.option(
    "--networks-config",
    "-c",
    help="Network configuration YAML",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    default=NETWORKS_CONFIG_FILEPATH,
    show_default=True,
)

addresses_dir_option = click.option(
    "--addresses-dir",
    "-a",
    help="Directory holding the per-network address files",
    type=click.Path(file_okay=False, path_type=Path),
    default=ADDRESSES_DIR,
    show_default=True,
)

autosign_option = click.option(
    "--autosign",
    help="Automatically sign transactions.",
    is_flag=True,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Publish deployed contracts to the block explorer.",
    default=False,
)

redeploy_option = click.option(
    "--redeploy",
    "-r",
    help="Contract role to deploy again even if already recorded.",
    type=click.Choice(list(CONTRACT_ROLES)),
    multiple=True,
)

relayer_option = click.option(
    "--relayer",
    help="Relayer to whitelist; defaults to the configured relayer.",
    type=ChecksumAddress(),
    required=False,
)

chain_ids_option = click.option(
    "--chain-id",
    "chain_ids",
    help="Chain id to check gateway support for; defaults to all enabled networks.",
    type=MinInt(1),
    multiple=True,
)
