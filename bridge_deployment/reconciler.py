from collections import Counter
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

import click
from eth_utils import is_hex_address

from bridge_deployment.constants import (
    DI_GATEWAY,
    GAS_CREDIT_VAULT,
    META_TX_GATEWAY,
    ZERO_ADDRESS,
)
from bridge_deployment.contracts import AlreadyExists, BridgeHub, ContractCallError, GasCreditVault
from bridge_deployment.networks import NetworkRegistry
from bridge_deployment.store import AddressStore, NetworkTokenData, TokenRecord

CHAIN_PASS = "chains"
TOKEN_PASS = "tokens"
TOKEN_CONTRACT_PASS = "token_contracts"
WHITELIST_PASS = "whitelist"


class RegistrationResult(Enum):
    ADDED = "added"
    ALREADY_EXISTS = "already_exists"
    SKIPPED = "skipped"
    FAILED = "failed"


class ReconciliationReport:
    """Tally of registration results per pass."""

    def __init__(self):
        self.results: Dict[str, Counter] = dict()

    def record(self, pass_name: str, result: RegistrationResult) -> RegistrationResult:
        self.results.setdefault(pass_name, Counter())[result] += 1
        return result

    def count(self, pass_name: str, result: RegistrationResult) -> int:
        return self.results.get(pass_name, Counter())[result]

    @property
    def failures(self) -> int:
        return sum(counter[RegistrationResult.FAILED] for counter in self.results.values())

    def print_summary(self) -> None:
        print("\nReconciliation Summary:")
        for pass_name, counter in self.results.items():
            tallies = ", ".join(
                f"{result.value}={counter[result]}" for result in RegistrationResult
            )
            print(f"\t{pass_name}: {tallies}")


def _is_valid_address(address: Optional[str]) -> bool:
    return bool(address) and is_hex_address(address) and int(address, 16) != 0


class CrossChainReconciler:
    """
    Brings the bridge hub in line with the address store of every network.

    Chains are registered first, then token symbols and their per-chain
    contracts, and finally (on the hub network itself) the hub's tokens
    and relayer are whitelisted in its gas credit vault. Every submission
    is safe to repeat: duplicates are reported as warnings, other failures
    are logged and the pass moves on to the next item.
    """

    def __init__(
        self,
        registry: NetworkRegistry,
        store: AddressStore,
        hub: BridgeHub,
        vault: Optional[GasCreditVault] = None,
        relayer: Optional[str] = None,
    ):
        self.registry = registry
        self.store = store
        self.hub = hub
        self.vault = vault
        self.relayer = relayer
        self.report = ReconciliationReport()

    def _submit(self, pass_name: str, description: str, submit: Callable) -> RegistrationResult:
        try:
            submit()
        except AlreadyExists as e:
            click.secho(f"⚠ {description} already registered: {e.reason}", fg="yellow")
            return self.report.record(pass_name, RegistrationResult.ALREADY_EXISTS)
        except ContractCallError as e:
            click.secho(f"✗ Failed to register {description}: {e}", fg="red")
            return self.report.record(pass_name, RegistrationResult.FAILED)
        click.secho(f"✓ Registered {description}", fg="green")
        return self.report.record(pass_name, RegistrationResult.ADDED)

    def _skip(self, pass_name: str, message: str) -> RegistrationResult:
        click.secho(f"⚠ {message}", fg="yellow")
        return self.report.record(pass_name, RegistrationResult.SKIPPED)

    def run(self, current_network: str) -> ReconciliationReport:
        hub_info = self.registry.find_bridge_hub()
        if hub_info is None:
            raise NetworkRegistry.UnknownNetwork("No bridge hub network found in config")

        self.report = ReconciliationReport()
        networks_data = self.store.list_all_networks_with_token_data()
        self.register_chains(networks_data)
        self.register_tokens(networks_data)

        if current_network == hub_info.network_key:
            self.whitelist_hub_tokens(hub_info.network_key, networks_data)
        else:
            print(
                f"(i) Skipping vault whitelisting; current network {current_network} "
                f"is not the bridge hub network {hub_info.network_key}"
            )

        self.report.print_summary()
        return self.report

    def _address_or_zero(self, network: str, role: str) -> str:
        return self.store.find_contract_address(network, role) or ZERO_ADDRESS

    def register_chains(self, networks_data) -> None:
        print("\n=== Registering Chains with BridgeHub ===")
        for network_data in networks_data:
            network = network_data.network
            chain = self.registry.describe_network(network)
            if chain is None:
                self._skip(CHAIN_PASS, f"Network config not found for {network}")
                continue

            self._submit(
                CHAIN_PASS,
                f"chain {chain.name} ({chain.chain_id})",
                lambda: self.hub.add_chain(
                    chain.chain_id,
                    chain.name,
                    chain.rpc_key,
                    self._address_or_zero(network, DI_GATEWAY),
                    self._address_or_zero(network, GAS_CREDIT_VAULT),
                    self._address_or_zero(network, META_TX_GATEWAY),
                ),
            )

    def register_tokens(self, networks_data) -> None:
        print("\n=== Registering Tokens with BridgeHub ===")
        submitted: Set[str] = set()  # symbols sent to the hub during this run
        for network_data in networks_data:
            print(f"\n--- Processing {network_data.network} ---")
            if not network_data.tokens:
                print(f"(i) No tokens found for {network_data.network}")
                continue

            chain = self.registry.describe_network(network_data.network)
            for token in network_data.tokens:
                if token.symbol not in submitted:
                    self._submit(
                        TOKEN_PASS,
                        f"token {token.symbol}",
                        lambda: self.hub.add_token(token.symbol, token.name, token.decimals),
                    )
                    submitted.add(token.symbol)

                if chain is None:
                    self._skip(
                        TOKEN_CONTRACT_PASS,
                        f"No chain id for {network_data.network}; "
                        f"{token.symbol} contract not registered",
                    )
                    continue
                self._register_token_contract(chain.chain_id, token)

    def _register_token_contract(self, chain_id: int, token: TokenRecord) -> None:
        self._submit(
            TOKEN_CONTRACT_PASS,
            f"{token.symbol} contract for chain {chain_id}: {token.address}",
            lambda: self.hub.add_token_contract(
                token.symbol,
                chain_id,
                token.address,
                token.origin_chain_id or 0,
                token.origin_symbol or "",
                token.is_deployed,
            ),
        )

    def whitelist_hub_tokens(self, hub_network: str, networks_data: List[NetworkTokenData]) -> None:
        print("\n=== Whitelisting Hub Tokens in GasCreditVault ===")
        if self.vault is None:
            self._skip(WHITELIST_PASS, f"No gas credit vault recorded for {hub_network}")
            return

        hub_tokens = [data.tokens for data in networks_data if data.network == hub_network]
        for token in hub_tokens[0] if hub_tokens else []:
            if not _is_valid_address(token.address):
                self._skip(WHITELIST_PASS, f"{token.symbol} has no valid address")
                continue
            descriptor = self.registry.describe_token(token.origin_symbol)
            self._whitelist_token(hub_network, token, descriptor)

        if self.relayer:
            self._whitelist_relayer(self.relayer)

    def _whitelist_token(self, hub_network: str, token: TokenRecord, descriptor) -> None:
        price_feed, is_stablecoin = None, False
        if descriptor is not None:
            is_stablecoin = descriptor.is_stablecoin
            chain = self.registry.describe_network(hub_network)
            override = descriptor.chains.get(chain.chain_id) if chain else None
            price_feed = override.price_feed if override else None

        description = f"{token.symbol} ({token.address}) in gas credit vault"
        try:
            whitelisted = self.vault.is_token_whitelisted(token.address)
        except ContractCallError as e:
            click.secho(f"✗ Could not check {description}: {e}", fg="red")
            self.report.record(WHITELIST_PASS, RegistrationResult.FAILED)
            return
        if whitelisted:
            print(f"(i) {token.symbol} already whitelisted")
            self.report.record(WHITELIST_PASS, RegistrationResult.ALREADY_EXISTS)
            return

        self._submit(
            WHITELIST_PASS,
            description,
            lambda: self.vault.whitelist_token(token.address, price_feed, is_stablecoin),
        )

    def _whitelist_relayer(self, relayer: str) -> None:
        description = f"relayer {relayer} in gas credit vault"
        try:
            whitelisted = self.vault.is_relayer_whitelisted(relayer)
        except ContractCallError as e:
            click.secho(f"✗ Could not check {description}: {e}", fg="red")
            self.report.record(WHITELIST_PASS, RegistrationResult.FAILED)
            return
        if whitelisted:
            print(f"(i) Relayer {relayer} already whitelisted")
            self.report.record(WHITELIST_PASS, RegistrationResult.ALREADY_EXISTS)
            return
        self._submit(
            WHITELIST_PASS, description, lambda: self.vault.add_whitelisted_relayer(relayer)
        )
