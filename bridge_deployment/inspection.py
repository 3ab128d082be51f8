"""Read-only checks over deployed contracts and the address store."""

import os
from typing import Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional

from bridge_deployment.constants import DI_GATEWAY
from bridge_deployment.contracts import ContractCallError, DIGateway, TokenRegistry
from bridge_deployment.networks import NetworkRegistry, resolve_rpc_url
from bridge_deployment.store import AddressStore


class GatewayReport(NamedTuple):
    # view results are None when their lookup failed; see errors
    bridge_fee: Optional[int]
    fee_receiver: Optional[str]
    token_registry: Optional[str]
    registry_linked: bool
    supported_chains: Dict[int, Optional[bool]]
    errors: List[str]
    registry_owner: Optional[str] = None
    gateway_linked: Optional[bool] = None  # None when the registry was not inspected


def _same_address(address: Optional[str], expected: Optional[str]) -> bool:
    return bool(address) and bool(expected) and address.lower() == expected.lower()


def inspect_gateway(
    gateway: DIGateway,
    expected_registry: Optional[str],
    chain_ids: Iterable[int],
    token_registry: Optional[TokenRegistry] = None,
) -> GatewayReport:
    """
    Reads the gateway configuration and, given the token registry, checks
    that both contracts point at each other. Each lookup fails on its own
    and is reported in `errors`.
    """
    errors = list()

    def lookup(description: str, read: Callable):
        try:
            return read()
        except ContractCallError as e:
            errors.append(f"{description}: {e}")
            return None

    bridge_fee = lookup("bridge fee", gateway.get_bridge_fee)
    fee_receiver = lookup("fee receiver", gateway.fee_receiver)
    registry_address = lookup("token registry", gateway.get_bridge_token_registry)

    supported = dict()
    for chain_id in chain_ids:
        supported[chain_id] = lookup(
            f"supported chain {chain_id}", lambda: gateway.supported_chains(chain_id)
        )

    registry_owner, gateway_linked = None, None
    if token_registry is not None:
        registry_owner = lookup("token registry owner", token_registry.owner)
        registry_gateway = lookup("token registry gateway", token_registry.gateway)
        if registry_gateway is not None:
            gateway_linked = _same_address(registry_gateway, gateway.address)

    return GatewayReport(
        bridge_fee=bridge_fee,
        fee_receiver=fee_receiver,
        token_registry=registry_address,
        registry_linked=_same_address(registry_address, expected_registry),
        supported_chains=supported,
        registry_owner=registry_owner,
        gateway_linked=gateway_linked,
        errors=errors,
    )


class NetworkSummary(NamedTuple):
    network: str
    chain_name: Optional[str]
    roles: List[str]
    has_gateway: bool
    token_count: int


class DeploymentSummary(NamedTuple):
    networks: List[NetworkSummary]
    problems: List[str]

    @property
    def chains(self) -> int:
        return len(self.networks)

    @property
    def gateways(self) -> int:
        return sum(1 for network in self.networks if network.has_gateway)

    @property
    def tokens(self) -> int:
        return sum(network.token_count for network in self.networks)

    def to_json(self) -> Dict:
        return {
            "chains": self.chains,
            "gateways": self.gateways,
            "tokens": self.tokens,
            "networks": [network._asdict() for network in self.networks],
            "errors": list(self.problems),
        }


def summarize_deployments(store: AddressStore, registry: NetworkRegistry) -> DeploymentSummary:
    """Summarizes what the address store holds for each network."""
    summaries, problems = list(), list()
    for network in store.list_networks():
        chain = registry.describe_network(network)
        if chain is None:
            problems.append(f"{network}: not found in network configuration")

        try:
            contracts = store.get_contract_addresses(network)
            token_data = store.get_token_data(network)
        except (OSError, ValueError, KeyError, TypeError) as e:
            problems.append(f"{network}: unreadable address file ({e})")
            continue

        token_count = len(token_data.tokens) if token_data else 0
        has_gateway = DI_GATEWAY in contracts
        if token_count and not has_gateway:
            problems.append(f"{network}: token data recorded without a gateway")

        summaries.append(
            NetworkSummary(
                network=network,
                chain_name=chain.name if chain else None,
                roles=sorted(contracts),
                has_gateway=has_gateway,
                token_count=token_count,
            )
        )
    return DeploymentSummary(networks=summaries, problems=problems)


class EndpointStatus(NamedTuple):
    network: str
    chain_id: int
    rpc_key: str
    resolved: bool
    is_bridge_hub: bool


def check_network_endpoints(
    registry: NetworkRegistry, environ: Mapping[str, str] = os.environ
) -> List[EndpointStatus]:
    statuses = list()
    for network in registry.list_enabled_networks():
        chain = registry.describe_network(network)
        try:
            resolve_rpc_url(chain, environ=environ)
            resolved = True
        except ValueError:
            resolved = False
        statuses.append(
            EndpointStatus(
                network=network,
                chain_id=chain.chain_id,
                rpc_key=chain.rpc_key,
                resolved=resolved,
                is_bridge_hub=chain.is_bridge_hub,
            )
        )
    return statuses
