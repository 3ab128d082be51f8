import os
from collections import OrderedDict
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Set

import yaml
from ape import networks
from eth_typing import ChecksumAddress
from eth_utils import is_hex_address, to_checksum_address

from bridge_deployment.constants import (
    BRIDGED_TOKEN_NAME_PREFIX,
    LOCAL_NETWORK_NAMES,
    NETWORKS_CONFIG_FILEPATH,
)

ChainId = int
NetworkKey = str

URL_SCHEMES = ("http://", "https://", "ws://", "wss://")


class ChainDescriptor(NamedTuple):
    """Static description of one chain the bridge can be deployed to."""

    key: NetworkKey
    chain_id: ChainId
    name: str
    rpc_key: str  # literal URL or name of an environment variable holding it
    enabled: bool
    is_bridge_hub: bool = False


class ChainOverride(NamedTuple):
    address: Optional[ChecksumAddress] = None
    decimals: Optional[int] = None
    price_feed: Optional[ChecksumAddress] = None


class TokenDescriptor(NamedTuple):
    symbol: str
    name: str
    default_decimals: int
    is_stablecoin: bool
    origin_chain_id: Optional[ChainId]
    chains: Mapping[ChainId, ChainOverride]


class ResolvedToken(NamedTuple):
    """A token as it should exist on one particular network."""

    name: str
    symbol: str
    decimals: int
    origin_symbol: str
    address: Optional[str]
    is_stablecoin: bool
    price_feed: Optional[ChecksumAddress] = None
    origin_chain_id: Optional[ChainId] = None


class BridgeHubInfo(NamedTuple):
    network_key: NetworkKey
    descriptor: ChainDescriptor


def _checksum(value: Optional[str], context: str) -> Optional[ChecksumAddress]:
    if value is None:
        return None
    if not is_hex_address(value):
        raise NetworkRegistry.Invalid(f"Invalid address '{value}' for {context}.")
    return to_checksum_address(value)


def _parse_chain(key: NetworkKey, data: Dict[str, Any]) -> ChainDescriptor:
    try:
        return ChainDescriptor(
            key=key,
            chain_id=int(data["chain_id"]),
            name=data["name"],
            rpc_key=data["rpc_key"],
            enabled=bool(data.get("enabled", False)),
            is_bridge_hub=bool(data.get("is_bridge_hub", False)),
        )
    except KeyError as e:
        raise NetworkRegistry.Invalid(f"Network '{key}' is missing field {e}.")


def _parse_token(symbol: str, data: Dict[str, Any]) -> TokenDescriptor:
    chains = dict()
    for chain_id, override in (data.get("chains") or {}).items():
        override = override or {}
        context = f"{symbol} on chain {chain_id}"
        decimals = override.get("decimals")
        chains[int(chain_id)] = ChainOverride(
            address=_checksum(override.get("address"), context),
            decimals=int(decimals) if decimals is not None else None,
            price_feed=_checksum(override.get("price_feed"), context),
        )

    origin_chain_id = data.get("origin_chain_id")
    try:
        return TokenDescriptor(
            symbol=data.get("symbol", symbol),
            name=data["name"],
            default_decimals=int(data["default_decimals"]),
            is_stablecoin=bool(data.get("is_stablecoin", False)),
            origin_chain_id=int(origin_chain_id) if origin_chain_id is not None else None,
            chains=MappingProxyType(chains),
        )
    except KeyError as e:
        raise NetworkRegistry.Invalid(f"Token '{symbol}' is missing field {e}.")


class NetworkRegistry:
    """
    Read-only table of chain and token descriptors.

    Built once from configuration; declaration order of networks and tokens
    is preserved and significant.
    """

    class Invalid(ValueError):
        """Raised when the network configuration is inconsistent."""

    class UnknownNetwork(ValueError):
        """Raised when a network key is not configured."""

    def __init__(self, chains: List[ChainDescriptor], tokens: List[TokenDescriptor]):
        self._chains = OrderedDict((chain.key, chain) for chain in chains)
        self._tokens = OrderedDict((token.symbol, token) for token in tokens)
        self._validate()

    def _validate(self) -> None:
        enabled = [chain for chain in self._chains.values() if chain.enabled]

        seen = dict()
        for chain in enabled:
            if chain.chain_id in seen:
                raise self.Invalid(
                    f"Chain id {chain.chain_id} is used by both "
                    f"'{seen[chain.chain_id]}' and '{chain.key}'."
                )
            seen[chain.chain_id] = chain.key

        hubs = [chain.key for chain in enabled if chain.is_bridge_hub]
        if len(hubs) > 1:
            raise self.Invalid(f"Only one enabled bridge hub is allowed; got {', '.join(hubs)}.")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "NetworkRegistry":
        networks_config = config.get("networks")
        if not networks_config:
            raise cls.Invalid("Network configuration is missing 'networks' field.")

        chains = [_parse_chain(key, data) for key, data in networks_config.items()]
        tokens = [
            _parse_token(symbol, data) for symbol, data in (config.get("tokens") or {}).items()
        ]
        return cls(chains=chains, tokens=tokens)

    def list_enabled_networks(self) -> List[NetworkKey]:
        return [key for key, chain in self._chains.items() if chain.enabled]

    def describe_network(self, key: NetworkKey) -> Optional[ChainDescriptor]:
        return self._chains.get(key)

    def require_network(self, key: NetworkKey) -> ChainDescriptor:
        descriptor = self.describe_network(key)
        if descriptor is None:
            raise self.UnknownNetwork(f"Network '{key}' not found in network configuration.")
        return descriptor

    def network_for_chain_id(self, chain_id: ChainId) -> Optional[NetworkKey]:
        """Returns the configured network for a chain id, preferring enabled entries."""
        candidates = [chain for chain in self._chains.values() if chain.chain_id == chain_id]
        candidates.sort(key=lambda chain: not chain.enabled)
        return candidates[0].key if candidates else None

    def list_token_symbols(self) -> Set[str]:
        return set(self._tokens)

    def describe_token(self, symbol: str) -> Optional[TokenDescriptor]:
        return self._tokens.get(symbol)

    def resolve_tokens_for_network(self, key: NetworkKey) -> List[ResolvedToken]:
        """
        Returns the tokens that should exist on a network.

        A chain override with an address adopts that existing token. Without
        one, the token has to be deployed as a bridged token on the network.
        """
        chain = self.require_network(key)

        tokens = list()
        for symbol, token in self._tokens.items():
            override = token.chains.get(chain.chain_id, ChainOverride())
            if override.decimals is not None:
                decimals = override.decimals
            else:
                decimals = token.default_decimals

            if override.address:
                name = token.name
                origin_chain_id = chain.chain_id
            else:
                name = f"{BRIDGED_TOKEN_NAME_PREFIX}{token.name}"
                origin_chain_id = token.origin_chain_id

            tokens.append(
                ResolvedToken(
                    name=name,
                    symbol=token.symbol,
                    decimals=decimals,
                    origin_symbol=symbol,
                    address=override.address,
                    is_stablecoin=token.is_stablecoin,
                    price_feed=override.price_feed,
                    origin_chain_id=origin_chain_id,
                )
            )
        return tokens

    def find_bridge_hub(self) -> Optional[BridgeHubInfo]:
        for key, chain in self._chains.items():
            if chain.enabled and chain.is_bridge_hub:
                return BridgeHubInfo(network_key=key, descriptor=chain)
        return None

    def is_bridge_hub_network(self, key: NetworkKey) -> bool:
        hub = self.find_bridge_hub()
        return hub is not None and hub.network_key == key


def load_network_registry(filepath: Path = NETWORKS_CONFIG_FILEPATH) -> NetworkRegistry:
    with open(filepath, "r") as file:
        config = yaml.safe_load(file)
    return NetworkRegistry.from_config(config)


def select_network_key(
    registry: NetworkRegistry,
    chain_id: ChainId,
    network_key: Optional[NetworkKey] = None,
    strict: bool = True,
) -> NetworkKey:
    """
    Picks the configured network a script operates on.

    Without an explicit key the connected chain id decides. An explicit key
    must match the connected chain unless `strict` is off (local test chains).
    """
    if network_key is None:
        network_key = registry.network_for_chain_id(chain_id)
        if network_key is None:
            raise NetworkRegistry.UnknownNetwork(
                f"No network configured for chain id {chain_id}; use --network-key."
            )
        return network_key

    descriptor = registry.require_network(network_key)
    if strict and descriptor.chain_id != chain_id:
        raise NetworkRegistry.Invalid(
            f"Network '{network_key}' is configured for chain id {descriptor.chain_id}, "
            f"but the connected chain id is {chain_id}."
        )
    return network_key


def resolve_rpc_url(descriptor: ChainDescriptor, environ: Mapping[str, str] = os.environ) -> str:
    """Returns the RPC URL of a chain, reading it from the environment when keyed."""
    if descriptor.rpc_key.startswith(URL_SCHEMES):
        return descriptor.rpc_key
    url = environ.get(descriptor.rpc_key)
    if not url:
        raise ValueError(f"{descriptor.rpc_key} is not set (RPC URL for '{descriptor.key}').")
    return url


def is_local_network() -> bool:
    return networks.provider.network.name in LOCAL_NETWORK_NAMES
