import os
from pathlib import Path
from typing import List

import yaml
from ape import networks, project
from ape.contracts import ContractContainer, ContractInstance
from ape_etherscan.utils import API_KEY_ENV_KEY_MAP

from bridge_deployment.constants import OZ_DEPENDENCY_NAME, OZ_DEPENDENCY_VERSION
from bridge_deployment.networks import is_local_network


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def check_etherscan_plugin() -> None:
    """
    Checks that the ape-etherscan plugin is installed and that
    the appropriate API key environment variable is set.
    """
    if is_local_network():
        # unnecessary for local deployment
        return
    ecosystem_name = networks.provider.network.ecosystem.name
    explorer_envvar = API_KEY_ENV_KEY_MAP.get(ecosystem_name)
    api_key = os.environ.get(explorer_envvar)
    if not api_key:
        raise ValueError(f"{explorer_envvar} is not set.")


def verify_contracts(contracts: List[ContractInstance]) -> None:
    """Publishes contracts to the explorer; proxies are published with their implementation."""
    explorer = networks.provider.network.explorer
    ecosystem = networks.provider.network.ecosystem
    for instance in contracts:
        print(f"(i) Verifying {instance.contract_type.name}...")
        proxy_info = ecosystem.get_proxy_info(instance.address)
        if proxy_info:
            print(f"(i) Proxy detected; verifying implementation at {proxy_info.target}")
            explorer.publish_contract(proxy_info.target)
        explorer.publish_contract(instance.address)


def check_plugins() -> None:
    print("Checking plugins...")
    check_etherscan_plugin()


def get_oz_dependency():
    """Returns the OpenZeppelin dependency project (proxy contracts)."""
    return project.dependencies[OZ_DEPENDENCY_NAME][OZ_DEPENDENCY_VERSION]


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            contract_container = getattr(dependency_api, contract)
            return contract_container
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container
