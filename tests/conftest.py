from collections import OrderedDict
from itertools import count
from types import SimpleNamespace

import pytest
from ape.exceptions import ContractLogicError, ProviderError
from eth_utils import to_checksum_address
from ethpm_types import MethodABI

from bridge_deployment.constants import (
    BRIDGE_HUB_CONTRACT,
    GAS_CREDIT_VAULT_CONTRACT,
    GATEWAY_CONTRACT,
    META_TX_GATEWAY_CONTRACT,
    TOKEN_REGISTRY_CONTRACT,
    TOKEN_TEMPLATE_CONTRACT,
    ZERO_ADDRESS,
)
from bridge_deployment.interfaces import load_contract_interface
from bridge_deployment.networks import NetworkRegistry
from bridge_deployment.orchestrator import DeploymentSettings
from bridge_deployment.params import Transactor
from bridge_deployment.store import AddressStore

# Common constants
HUB_CHAIN_ID = 999
SPOKE_CHAIN_ID = 4157
OWNER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
RELAYER = "0x1111111111111111111111111111111111111111"
DEPLOYER = "0x2222222222222222222222222222222222222222"
ADOPTED_TOKEN_ADDRESS = "0xdAC17F958D2ee523a2206206994597C13D831ec7"
PRICE_FEED = "0x3333333333333333333333333333333333333333"
TIMESTAMP = "2024-01-01T00:00:00.000Z"

_addresses = count(start=0x1000)


def next_address() -> str:
    return to_checksum_address(f"0x{next(_addresses):040x}")


def revert(message: str) -> ContractLogicError:
    return ContractLogicError(message)


# Fake contracts; method names follow the on-chain ABI
class FakeContract:
    def __init__(self, address=None, *args):
        self.address = address or next_address()
        self.constructor_args = args
        self.initialized = False

    def initialize(self):
        self.initialized = True


class FakeTokenTemplate(FakeContract):
    pass


class FakeTokenRegistry(FakeContract):
    def __init__(self, address=None, *args):
        super().__init__(address, *args)
        self.deployed = dict()  # (chain id, origin symbol) -> address
        self.added = dict()  # symbol -> address
        self.owner_address = args[0] if args else ZERO_ADDRESS
        self.linked_gateway = ZERO_ADDRESS
        self.failures = dict()  # symbol -> revert message

    def deployToken(self, name, symbol, decimals, chainId, originSymbol):
        if symbol in self.failures:
            raise revert(self.failures[symbol])
        if (chainId, originSymbol) in self.deployed:
            raise revert("Token already exists")
        self.deployed[(chainId, originSymbol)] = next_address()

    def addToken(self, symbol, address, name, decimals, isDeployed):
        if symbol in self.failures:
            raise revert(self.failures[symbol])
        if symbol in self.added:
            raise revert("Token already added")
        self.added[symbol] = address

    def getToken(self, chainId, originSymbol):
        return self.deployed.get((chainId, originSymbol), ZERO_ADDRESS)

    def setGateway(self, gateway):
        self.linked_gateway = gateway

    def gateway(self):
        return self.linked_gateway

    def owner(self):
        return self.owner_address


class FakeGateway(FakeContract):
    def __init__(self, address=None, *args):
        super().__init__(address, *args)
        self.relayers = set()
        self.token_registry = args[0] if args else ZERO_ADDRESS
        self.fee_in_bps = args[2] if len(args) > 2 else 0
        self.fee_receiver = args[3] if len(args) > 3 else ZERO_ADDRESS
        self.chains = set()

    def addRelayer(self, relayer):
        if relayer in self.relayers:
            raise revert("Relayer already exists")
        self.relayers.add(relayer)

    def getBridgeFee(self):
        return self.fee_in_bps

    def feeReceiver(self):
        return self.fee_receiver

    def getBridgeTokenRegistry(self):
        return self.token_registry

    def supportedChains(self, chainId):
        if chainId < 0:
            raise ProviderError("call failed")
        return chainId in self.chains


class FakeMetaTxGateway(FakeContract):
    def __init__(self, address=None, *args):
        super().__init__(address, *args)
        self.authorized = dict()

    def setRelayerAuthorization(self, relayer, authorized):
        self.authorized[relayer] = authorized


class FakeVault(FakeContract):
    def __init__(self, address=None, *args):
        super().__init__(address, *args)
        self.tokens = dict()  # token -> (price feed, is stablecoin)
        self.relayers = set()
        self.writes = 0

    def whitelistToken(self, token, priceFeed, isStablecoin):
        if token in self.tokens:
            raise revert("Token already whitelisted")
        self.writes += 1
        self.tokens[token] = (priceFeed, isStablecoin)

    def isTokenWhitelisted(self, token):
        return token in self.tokens

    def addWhitelistedRelayer(self, relayer):
        if relayer in self.relayers:
            raise revert("Relayer already whitelisted")
        self.writes += 1
        self.relayers.add(relayer)

    def isRelayerWhitelisted(self, relayer):
        return relayer in self.relayers


class FakeBridgeHub(FakeContract):
    def __init__(self, address=None, *args):
        super().__init__(address, *args)
        self.chains = OrderedDict()
        self.tokens = OrderedDict()
        self.token_contracts = OrderedDict()  # (symbol, chain id) -> args
        self.gas_credit_vault = None
        self.unavailable_chains = set()  # chain ids whose registration fails
        self.failures = dict()  # (symbol, chain id) -> revert message

    def addChain(self, chainId, name, rpcKey, gateway, gasCreditVault, metaTxGateway):
        if chainId in self.unavailable_chains:
            raise ProviderError("connection reset")
        if chainId in self.chains:
            raise revert("Chain already exists")
        self.chains[chainId] = (name, rpcKey, gateway, gasCreditVault, metaTxGateway)

    def addToken(self, symbol, name, decimals):
        if symbol in self.tokens:
            raise revert("Token already exists")
        self.tokens[symbol] = (name, decimals)

    def addTokenContract(self, symbol, chainId, address, *origin):
        if (symbol, chainId) in self.failures:
            raise revert(self.failures[(symbol, chainId)])
        if (symbol, chainId) in self.token_contracts:
            raise revert("Token contract already registered")
        self.token_contracts[(symbol, chainId)] = (address, *origin)

    def setGasCreditVault(self, gasCreditVault):
        self.gas_credit_vault = gasCreditVault


FAKE_CONTRACTS = {
    TOKEN_TEMPLATE_CONTRACT: FakeTokenTemplate,
    TOKEN_REGISTRY_CONTRACT: FakeTokenRegistry,
    GATEWAY_CONTRACT: FakeGateway,
    META_TX_GATEWAY_CONTRACT: FakeMetaTxGateway,
    GAS_CREDIT_VAULT_CONTRACT: FakeVault,
    BRIDGE_HUB_CONTRACT: FakeBridgeHub,
}


def method_abi(name, *inputs):
    return MethodABI(
        type="function",
        name=name,
        stateMutability="nonpayable",
        inputs=[{"name": input_name, "type": input_type} for input_name, input_type in inputs],
        outputs=[],
    )


BRIDGE_HUB_ABIS = {
    "addChain": method_abi(
        "addChain",
        ("chainId", "uint256"),
        ("name", "string"),
        ("rpcKey", "string"),
        ("gateway", "address"),
        ("gasCreditVault", "address"),
        ("metaTxGateway", "address"),
    ),
    "addToken": method_abi(
        "addToken", ("symbol", "string"), ("name", "string"), ("decimals", "uint8")
    ),
    "addTokenContract": method_abi(
        "addTokenContract",
        ("symbol", "string"),
        ("chainId", "uint256"),
        ("tokenAddress", "address"),
        ("originChainId", "uint256"),
        ("originSymbol", "string"),
        ("isDeployed", "bool"),
    ),
}


class AbiMethod:
    """Fake contract method carrying its ABI, as ape's transaction handlers do."""

    def __init__(self, contract, abi):
        self.contract = contract
        self.abis = [abi]

    def __str__(self):
        return self.abis[0].name

    def __call__(self, *args, sender=None):
        return getattr(self.contract.fake, self.abis[0].name)(*args)


class AbiContract:
    """Exposes the methods of a fake contract through their ABIs."""

    def __init__(self, fake, contract_name, abis):
        self.fake = fake
        self.address = fake.address
        self.contract_type = SimpleNamespace(name=contract_name)
        self.abis = abis

    def __getattr__(self, name):
        return AbiMethod(self, self.abis[name])


class FakeTransactor:
    """Submits transactions straight to the fake contracts."""

    def __init__(self):
        self.transactions = list()

    def transact(self, method, *args):
        self.transactions.append((method.__name__, args))
        return method(*args)


class FakeDeployer(FakeTransactor):
    """Stands in for the ape backed Deployer."""

    def __init__(self, fail_on=(), token_failures=None):
        super().__init__()
        self.account = SimpleNamespace(address=DEPLOYER)
        self.fail_on = set(fail_on)
        self.token_failures = token_failures or dict()
        self.contracts = dict()  # address -> fake instance
        self.deployed = list()  # contract names in deployment order
        self.finalized = None

    def get_account(self):
        return self.account

    def deploy(self, contract_name, params):
        if contract_name in self.fail_on:
            raise ProviderError(f"{contract_name} deployment failed")
        instance = FAKE_CONTRACTS[contract_name](None, *params.values())
        if contract_name == TOKEN_REGISTRY_CONTRACT:
            instance.failures = self.token_failures
        self.contracts[instance.address] = instance
        self.deployed.append(contract_name)
        return instance

    def deploy_proxy(self, contract_name, initializer, init_params):
        instance = self.deploy(contract_name, OrderedDict())
        getattr(instance, initializer)(*init_params.values())
        return instance

    def at(self, contract_name, address):
        if address not in self.contracts:
            self.contracts[address] = FAKE_CONTRACTS[contract_name](address)
        return self.contracts[address]

    def finalize(self, deployments):
        self.finalized = list(deployments)

    def find(self, contract_name):
        for instance in self.contracts.values():
            if isinstance(instance, FAKE_CONTRACTS[contract_name]):
                return instance
        return None


def network_config(token_chains=None, **token_fields):
    """Builds a two network configuration: a hub (999) and a spoke (4157)."""
    token = {
        "name": "Test Token",
        "default_decimals": 18,
        "is_stablecoin": True,
        "origin_chain_id": 1,
        **token_fields,
    }
    if token_chains is not None:
        token["chains"] = token_chains
    return {
        "networks": {
            "hub": {
                "chain_id": HUB_CHAIN_ID,
                "name": "Hub Chain",
                "rpc_key": "http://127.0.0.1:8545",
                "enabled": True,
                "is_bridge_hub": True,
            },
            "spoke": {
                "chain_id": SPOKE_CHAIN_ID,
                "name": "Spoke Chain",
                "rpc_key": "SPOKE_RPC_URL",
                "enabled": True,
            },
            "dormant": {
                "chain_id": 31337,
                "name": "Dormant Chain",
                "rpc_key": "DORMANT_RPC_URL",
                "enabled": False,
            },
        },
        "tokens": {"TKN": token},
    }


# Fixtures
@pytest.fixture(scope="session")
def interface():
    return load_contract_interface("v2")


@pytest.fixture
def settings():
    return DeploymentSettings(
        owner=OWNER,
        fee_receiver=OWNER,
        relayer=RELAYER,
        fee_in_bps=30,
        interface_version="v2",
    )


@pytest.fixture
def adopted_registry():
    return NetworkRegistry.from_config(
        network_config(token_chains={SPOKE_CHAIN_ID: {"address": ADOPTED_TOKEN_ADDRESS}})
    )


@pytest.fixture
def bridged_registry():
    return NetworkRegistry.from_config(network_config())


@pytest.fixture
def store(tmp_path):
    return AddressStore(tmp_path / "addresses", clock=lambda: TIMESTAMP)


@pytest.fixture
def deployer():
    return FakeDeployer()


@pytest.fixture
def transactor():
    return FakeTransactor()


@pytest.fixture
def abi_transactor():
    """A real Transactor, validating arguments against the method ABIs."""
    account = SimpleNamespace(address=DEPLOYER, set_autosign=lambda autosign: None)
    return Transactor(account=account, autosign=True)
