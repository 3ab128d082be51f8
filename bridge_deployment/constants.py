from pathlib import Path

import bridge_deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(bridge_deployment.__file__).parent
CONFIG_DIR = DEPLOYMENT_DIR / "config"
NETWORKS_CONFIG_FILEPATH = CONFIG_DIR / "networks.yml"
INTERFACES_CONFIG_FILEPATH = CONFIG_DIR / "interfaces.yml"
ADDRESSES_DIR = DEPLOYMENT_DIR.parent / "addresses"

#
# Contracts
#

TOKEN_TEMPLATE_CONTRACT = "DIBridgedToken"
TOKEN_REGISTRY_CONTRACT = "DIBridgedTokenRegistry"
GATEWAY_CONTRACT = "DIGateway"
META_TX_GATEWAY_CONTRACT = "MetaTxGateway"
GAS_CREDIT_VAULT_CONTRACT = "GasCreditVault"
BRIDGE_HUB_CONTRACT = "BridgeHub"

PROXY_CONTRACT = "ERC1967Proxy"
OZ_DEPENDENCY_NAME = "openzeppelin"
OZ_DEPENDENCY_VERSION = "5.0.0"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

#
# Address store roles
#

TOKEN_TEMPLATE = "tokenTemplate"
TOKEN_REGISTRY = "tokenRegistry"
DI_GATEWAY = "diGateway"
META_TX_GATEWAY = "metaTxGateway"
GAS_CREDIT_VAULT = "gasCreditVault"
BRIDGE_HUB = "bridgeHub"

# role -> contract type
CONTRACT_ROLES = {
    TOKEN_TEMPLATE: TOKEN_TEMPLATE_CONTRACT,
    TOKEN_REGISTRY: TOKEN_REGISTRY_CONTRACT,
    DI_GATEWAY: GATEWAY_CONTRACT,
    META_TX_GATEWAY: META_TX_GATEWAY_CONTRACT,
    GAS_CREDIT_VAULT: GAS_CREDIT_VAULT_CONTRACT,
    BRIDGE_HUB: BRIDGE_HUB_CONTRACT,
}

TOKEN_DATA_KEY = "tokenData"

#
# Tokens
#

BRIDGED_TOKEN_NAME_PREFIX = "DI Bridged "

DEFAULT_FEE_IN_BPS = 30
MAX_FEE_IN_BPS = 10_000

#
# Networks
#

LOCAL_NETWORK_NAMES = ("local", "development")
