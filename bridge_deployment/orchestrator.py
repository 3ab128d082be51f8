import typing
from pathlib import Path
from typing import Any, Dict, Iterable, List, NamedTuple

import click
from eth_utils import is_hex_address, to_checksum_address

from bridge_deployment.constants import (
    BRIDGE_HUB,
    BRIDGE_HUB_CONTRACT,
    DEFAULT_FEE_IN_BPS,
    DI_GATEWAY,
    GAS_CREDIT_VAULT,
    GAS_CREDIT_VAULT_CONTRACT,
    GATEWAY_CONTRACT,
    MAX_FEE_IN_BPS,
    META_TX_GATEWAY,
    META_TX_GATEWAY_CONTRACT,
    NETWORKS_CONFIG_FILEPATH,
    TOKEN_REGISTRY,
    TOKEN_REGISTRY_CONTRACT,
    TOKEN_TEMPLATE,
    TOKEN_TEMPLATE_CONTRACT,
    ZERO_ADDRESS,
)
from bridge_deployment.contracts import (
    AlreadyExists,
    BridgeHub,
    ContractCallError,
    DIGateway,
    GasCreditVault,
    MetaTxGateway,
    TokenRegistry,
)
from bridge_deployment.interfaces import ContractInterface
from bridge_deployment.networks import ChainDescriptor, NetworkRegistry, ResolvedToken
from bridge_deployment.store import AddressStore, TokenRecord
from bridge_deployment.utils import _load_yaml

INITIALIZER = "initialize"


class DeploymentSettings(NamedTuple):
    owner: str
    fee_receiver: str
    relayer: str
    fee_in_bps: int
    interface_version: str

    class Invalid(ValueError):
        """Raised when the deployment settings are malformed"""

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "DeploymentSettings":
        deployment = config.get("deployment")
        if not deployment:
            raise cls.Invalid("deployment is not set in network configuration.")

        addresses = dict()
        for field in ("owner", "relayer"):
            value = deployment.get(field)
            if not value or not is_hex_address(value):
                raise cls.Invalid(f"deployment.{field} must be an address; got {value}.")
            addresses[field] = to_checksum_address(value)

        fee_receiver = deployment.get("fee_receiver") or addresses["owner"]
        fee_in_bps = int(deployment.get("fee_in_bps", DEFAULT_FEE_IN_BPS))
        if not 0 <= fee_in_bps <= MAX_FEE_IN_BPS:
            raise cls.Invalid(f"deployment.fee_in_bps must be within 0-{MAX_FEE_IN_BPS}.")

        interface_version = deployment.get("interface_version")
        if not interface_version:
            raise cls.Invalid("deployment.interface_version is not set.")

        return cls(
            owner=addresses["owner"],
            fee_receiver=to_checksum_address(fee_receiver),
            relayer=addresses["relayer"],
            fee_in_bps=fee_in_bps,
            interface_version=str(interface_version),
        )


def load_deployment_settings(filepath: Path = NETWORKS_CONFIG_FILEPATH) -> DeploymentSettings:
    return DeploymentSettings.from_config(_load_yaml(filepath))


class DeploymentResult(NamedTuple):
    network: str
    contracts: Dict[str, str]
    tokens: List[TokenRecord]
    failed_tokens: List[str]


class BridgeDeployment:
    """
    Deploys and wires the bridge contracts on a single network.

    Each contract address is written to the address store as soon as it is
    deployed, so a failed run can be resumed: roles already on record are
    attached rather than deployed again, unless explicitly listed in `redeploy`.
    """

    class NetworkDisabled(ValueError):
        """Raised when deploying to a network that is not enabled"""

    def __init__(
        self,
        network: str,
        registry: NetworkRegistry,
        store: AddressStore,
        deployer: Any,
        interface: ContractInterface,
        settings: DeploymentSettings,
        redeploy: Iterable[str] = (),
    ):
        self.network = network
        self.registry = registry
        self.store = store
        self.deployer = deployer
        self.interface = interface
        self.settings = settings
        self.redeploy = set(redeploy)
        self._new_deployments = list()

    def _check_network(self) -> ChainDescriptor:
        descriptor = self.registry.require_network(self.network)
        if not descriptor.enabled:
            raise self.NetworkDisabled(f"Network {self.network} is disabled in config")
        return descriptor

    def _adapter(self, adapter_class, instance):
        return adapter_class(instance, transactor=self.deployer, interface=self.interface)

    def _record(self, role: str, contract_name: str, instance) -> None:
        previous = self.store.put_contract_address(self.network, role, instance.address)
        self._new_deployments.append(instance)
        click.secho(f"✓ {contract_name}: {instance.address}", fg="green")
        if previous and previous != instance.address:
            click.secho(f"⚠ Replaced {role} previously at {previous}", fg="yellow")

    def _existing(self, role: str, contract_name: str):
        address = self.store.find_contract_address(self.network, role)
        if not address or role in self.redeploy:
            return None
        print(f"(i) {contract_name} already deployed at {address}; skipping")
        return self.deployer.at(contract_name, address)

    def _deploy(self, role: str, contract_name: str, **values):
        instance = self._existing(role, contract_name)
        if instance is not None:
            return instance
        params = self.interface.constructor_parameters(contract_name, **values)
        instance = self.deployer.deploy(contract_name, params)
        self._record(role, contract_name, instance)
        return instance

    def _deploy_proxy(self, role: str, contract_name: str, **values):
        instance = self._existing(role, contract_name)
        if instance is not None:
            return instance
        initializer = self.interface.method(contract_name, INITIALIZER)
        init_params = self.interface.named_arguments(contract_name, INITIALIZER, **values)
        instance = self.deployer.deploy_proxy(contract_name, initializer.name, init_params)
        self._record(role, contract_name, instance)
        return instance

    def run(self) -> DeploymentResult:
        chain = self._check_network()
        print(f"\n=== Deploying Bridge Infrastructure on {self.network} ===")
        print(f"Network: {chain.name} ({chain.chain_id})")

        deployer_address = self.deployer.get_account().address
        template = self._deploy(TOKEN_TEMPLATE, TOKEN_TEMPLATE_CONTRACT)
        token_registry = self._deploy(
            TOKEN_REGISTRY,
            TOKEN_REGISTRY_CONTRACT,
            tokenTemplate=template.address,
            initialGateway=self.settings.owner,
            deployer=deployer_address,
        )
        gateway = self._deploy(
            DI_GATEWAY,
            GATEWAY_CONTRACT,
            tokenRegistry=token_registry.address,
            deployer=deployer_address,
            feeInBps=self.settings.fee_in_bps,
            feeReceiver=self.settings.fee_receiver,
        )

        token_registry = self._adapter(TokenRegistry, token_registry)
        gateway = self._adapter(DIGateway, gateway)
        self._link_gateway(token_registry, gateway)

        meta_tx_gateway = self._adapter(
            MetaTxGateway, self._deploy_proxy(META_TX_GATEWAY, META_TX_GATEWAY_CONTRACT)
        )
        vault = self._adapter(
            GasCreditVault, self._deploy_proxy(GAS_CREDIT_VAULT, GAS_CREDIT_VAULT_CONTRACT)
        )

        self._grant_relayer_permissions(gateway, meta_tx_gateway, vault)
        tokens, failed_tokens = self._deploy_tokens(chain, token_registry, vault)

        if self.registry.is_bridge_hub_network(self.network):
            self._deploy_bridge_hub(vault)

        self.deployer.finalize(self._new_deployments)
        click.secho(f"\n✓ Deployment completed for {self.network}", fg="green")
        if failed_tokens:
            click.secho(f"✗ Failed tokens: {', '.join(failed_tokens)}", fg="red")

        return DeploymentResult(
            network=self.network,
            contracts=self.store.get_contract_addresses(self.network),
            tokens=tokens,
            failed_tokens=failed_tokens,
        )

    def _link_gateway(self, token_registry: TokenRegistry, gateway: DIGateway) -> None:
        token_registry.set_gateway(gateway.address)
        click.secho("✓ Token registry gateway updated", fg="green")

    def _grant_relayer_permissions(
        self, gateway: DIGateway, meta_tx_gateway: MetaTxGateway, vault: GasCreditVault
    ) -> None:
        relayer = self.settings.relayer
        try:
            gateway.add_relayer(relayer)
        except AlreadyExists:
            click.secho(f"⚠ Relayer {relayer} already set on {gateway!r}", fg="yellow")
        meta_tx_gateway.authorize_relayer(relayer, True)
        if vault.is_relayer_whitelisted(relayer):
            click.secho(f"⚠ Relayer {relayer} already whitelisted on {vault!r}", fg="yellow")
        else:
            vault.add_whitelisted_relayer(relayer)
        click.secho("✓ Relayer permissions set", fg="green")

    def _deploy_tokens(
        self, chain: ChainDescriptor, token_registry: TokenRegistry, vault: GasCreditVault
    ) -> typing.Tuple[List[TokenRecord], List[str]]:
        tokens = self.registry.resolve_tokens_for_network(self.network)
        if not tokens:
            print("(i) No tokens configured for this network")
            return [], []

        records, failed = list(), list()
        for token in tokens:
            try:
                record = self._deploy_token(chain, token, token_registry, vault)
            except ContractCallError as e:
                click.secho(f"✗ Failed to process {token.symbol}: {e}", fg="red")
                failed.append(token.symbol)
                continue
            self.store.upsert_token_record(self.network, record)
            records.append(record)
        return records, failed

    def _deploy_token(
        self,
        chain: ChainDescriptor,
        token: ResolvedToken,
        token_registry: TokenRegistry,
        vault: GasCreditVault,
    ) -> TokenRecord:
        if token.address:
            address = token.address
            try:
                token_registry.add_token(
                    token.symbol, address, token.name, token.decimals, is_deployed=False
                )
                click.secho(f"✓ Added existing {token.symbol}: {address}", fg="green")
            except AlreadyExists:
                click.secho(f"⚠ {token.symbol} already added: {address}", fg="yellow")
        else:
            try:
                token_registry.deploy_token(
                    token.name, token.symbol, token.decimals, chain.chain_id, token.origin_symbol
                )
            except AlreadyExists:
                click.secho(f"⚠ {token.symbol} already deployed; reading address", fg="yellow")
            address = token_registry.get_token(chain.chain_id, token.origin_symbol)
            if address == ZERO_ADDRESS:
                raise ContractCallError(f"{token_registry!r} has no {token.origin_symbol} token")
            click.secho(f"✓ Deployed {token.symbol}: {address}", fg="green")

        if vault.is_token_whitelisted(address):
            print(f"(i) {token.symbol} already whitelisted in credit vault")
        else:
            vault.whitelist_token(address, token.price_feed, token.is_stablecoin)
            click.secho(f"✓ Whitelisted {token.symbol} in credit vault", fg="green")

        return TokenRecord(
            symbol=token.symbol,
            name=token.name,
            decimals=token.decimals,
            address=address,
            is_deployed=not token.address,
            origin_symbol=token.origin_symbol,
            origin_chain_id=token.origin_chain_id,
        )

    def _deploy_bridge_hub(self, vault: GasCreditVault) -> None:
        bridge_hub = self._adapter(BridgeHub, self._deploy(BRIDGE_HUB, BRIDGE_HUB_CONTRACT))
        bridge_hub.set_gas_credit_vault(vault.address)
        click.secho(f"✓ {bridge_hub!r} gas credit vault set to {vault.address}", fg="green")
