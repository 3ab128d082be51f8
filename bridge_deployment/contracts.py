"""
Adapters over the bridge contracts.

Each adapter pairs a contract instance with a transactor and a contract
interface revision. Mutating operations are submitted through the
transactor; view calls go straight to the instance. Chain failures surface
as ContractCallError, and reverts that signal a duplicate registration as
AlreadyExists.
"""

from typing import Any, Optional

from ape.exceptions import ApeException, ContractLogicError
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from bridge_deployment.constants import (
    BRIDGE_HUB_CONTRACT,
    GAS_CREDIT_VAULT_CONTRACT,
    GATEWAY_CONTRACT,
    META_TX_GATEWAY_CONTRACT,
    TOKEN_REGISTRY_CONTRACT,
    ZERO_ADDRESS,
)
from bridge_deployment.interfaces import ContractInterface


class ContractCallError(Exception):
    """Raised when a contract call or transaction fails."""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class AlreadyExists(ContractCallError):
    """Raised when the contract rejects a registration it already holds."""


def _revert_reason(error: ApeException) -> str:
    reason = getattr(error, "revert_message", None)
    return reason or str(error)


class ContractAdapter:
    CONTRACT_NAME: str = None

    def __init__(self, instance: Any, transactor: Any, interface: ContractInterface):
        self.instance = instance
        self.transactor = transactor
        self.interface = interface

    @property
    def address(self) -> str:
        return self.instance.address

    def __repr__(self) -> str:
        return f"{self.CONTRACT_NAME}[{self.address[:10]}]"

    def _handler(self, operation: str, **values):
        spec = self.interface.method(self.CONTRACT_NAME, operation)
        args = self.interface.arguments(self.CONTRACT_NAME, operation, **values)
        return getattr(self.instance, spec.name), args

    def _transact(self, operation: str, **values):
        method, args = self._handler(operation, **values)
        try:
            return self.transactor.transact(method, *args)
        except ContractLogicError as e:
            reason = _revert_reason(e)
            message = f"{self!r}.{operation} reverted: {reason}"
            if self.interface.is_already_exists(reason):
                raise AlreadyExists(message, reason=reason) from e
            raise ContractCallError(message, reason=reason) from e
        except (ApeException, ValueError) as e:
            # ValueError: arguments that do not encode against the method ABI
            raise ContractCallError(f"{self!r}.{operation} failed: {e}", reason=str(e)) from e

    def _call(self, operation: str, **values):
        method, args = self._handler(operation, **values)
        try:
            return method(*args)
        except (ApeException, ValueError) as e:
            raise ContractCallError(f"{self!r}.{operation} failed: {e}", reason=str(e)) from e


class TokenRegistry(ContractAdapter):
    CONTRACT_NAME = TOKEN_REGISTRY_CONTRACT

    def deploy_token(
        self, name: str, symbol: str, decimals: int, chain_id: int, origin_symbol: str
    ):
        return self._transact(
            "deployToken",
            name=name,
            symbol=symbol,
            decimals=decimals,
            chainId=chain_id,
            originSymbol=origin_symbol,
        )

    def add_token(self, symbol: str, address: str, name: str, decimals: int, is_deployed=False):
        return self._transact(
            "addToken",
            symbol=symbol,
            address=address,
            name=name,
            decimals=decimals,
            isDeployed=is_deployed,
        )

    def get_token(self, chain_id: int, origin_symbol: str) -> ChecksumAddress:
        address = self._call("getToken", chainId=chain_id, originSymbol=origin_symbol)
        return to_checksum_address(address)

    def set_gateway(self, gateway: str):
        return self._transact("setGateway", gateway=gateway)

    def gateway(self) -> ChecksumAddress:
        return to_checksum_address(self._call("gateway"))

    def owner(self) -> ChecksumAddress:
        return to_checksum_address(self._call("owner"))


class DIGateway(ContractAdapter):
    CONTRACT_NAME = GATEWAY_CONTRACT

    def add_relayer(self, relayer: str):
        return self._transact("addRelayer", relayer=relayer)

    def get_bridge_fee(self) -> int:
        return self._call("getBridgeFee")

    def fee_receiver(self) -> ChecksumAddress:
        return to_checksum_address(self._call("feeReceiver"))

    def get_bridge_token_registry(self) -> ChecksumAddress:
        return to_checksum_address(self._call("getBridgeTokenRegistry"))

    def supported_chains(self, chain_id: int) -> bool:
        return bool(self._call("supportedChains", chainId=chain_id))


class MetaTxGateway(ContractAdapter):
    CONTRACT_NAME = META_TX_GATEWAY_CONTRACT

    def authorize_relayer(self, relayer: str, authorized: bool = True):
        return self._transact("authorizeRelayer", relayer=relayer, authorized=authorized)


class GasCreditVault(ContractAdapter):
    CONTRACT_NAME = GAS_CREDIT_VAULT_CONTRACT

    def whitelist_token(self, token: str, price_feed: Optional[str], is_stablecoin: bool):
        return self._transact(
            "whitelistToken",
            token=token,
            priceFeed=price_feed or ZERO_ADDRESS,
            isStablecoin=is_stablecoin,
        )

    def is_token_whitelisted(self, token: str) -> bool:
        return bool(self._call("isTokenWhitelisted", token=token))

    def add_whitelisted_relayer(self, relayer: str):
        return self._transact("addWhitelistedRelayer", relayer=relayer)

    def is_relayer_whitelisted(self, relayer: str) -> bool:
        return bool(self._call("isRelayerWhitelisted", relayer=relayer))


class BridgeHub(ContractAdapter):
    CONTRACT_NAME = BRIDGE_HUB_CONTRACT

    def add_chain(
        self,
        chain_id: int,
        name: str,
        rpc_key: str,
        gateway: str,
        gas_credit_vault: str,
        meta_tx_gateway: str,
    ):
        return self._transact(
            "addChain",
            chainId=chain_id,
            name=name,
            rpcKey=rpc_key,
            gateway=gateway,
            gasCreditVault=gas_credit_vault,
            metaTxGateway=meta_tx_gateway,
        )

    def add_token(self, symbol: str, name: str, decimals: int):
        return self._transact("addToken", symbol=symbol, name=name, decimals=decimals)

    def add_token_contract(
        self,
        symbol: str,
        chain_id: int,
        address: str,
        origin_chain_id: int,
        origin_symbol: str,
        is_deployed: bool,
    ):
        return self._transact(
            "addTokenContract",
            symbol=symbol,
            chainId=chain_id,
            address=address,
            originChainId=origin_chain_id,
            originSymbol=origin_symbol,
            isDeployed=is_deployed,
        )

    def set_gas_credit_vault(self, gas_credit_vault: str):
        return self._transact("setGasCreditVault", gasCreditVault=gas_credit_vault)
