from ape.exceptions import ProviderError

from bridge_deployment.constants import (
    DI_GATEWAY,
    GAS_CREDIT_VAULT,
    TOKEN_REGISTRY,
)
from bridge_deployment.contracts import DIGateway, TokenRegistry
from bridge_deployment.inspection import (
    check_network_endpoints,
    inspect_gateway,
    summarize_deployments,
)
from bridge_deployment.store import TokenRecord
from tests.conftest import (
    ADOPTED_TOKEN_ADDRESS,
    DEPLOYER,
    HUB_CHAIN_ID,
    OWNER,
    SPOKE_CHAIN_ID,
    FakeGateway,
    FakeTokenRegistry,
)

TOKEN_REGISTRY_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
GATEWAY_ADDRESS = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"


def gateway_adapter(interface):
    gateway = FakeGateway(None, TOKEN_REGISTRY_ADDRESS, DEPLOYER, 30, OWNER)
    gateway.chains.add(HUB_CHAIN_ID)
    return DIGateway(gateway, transactor=None, interface=interface)


def token_record(symbol="TKN"):
    return TokenRecord(
        symbol=symbol,
        name="Test Token",
        decimals=6,
        address=ADOPTED_TOKEN_ADDRESS,
        is_deployed=False,
        origin_symbol=symbol,
    )


def registry_adapter(interface, gateway_address):
    token_registry = FakeTokenRegistry(TOKEN_REGISTRY_ADDRESS, OWNER, DEPLOYER)
    token_registry.setGateway(gateway_address)
    return TokenRegistry(token_registry, transactor=None, interface=interface)


def test_inspect_gateway(interface):
    gateway = gateway_adapter(interface)
    report = inspect_gateway(
        gateway,
        expected_registry=TOKEN_REGISTRY_ADDRESS.lower(),
        chain_ids=[HUB_CHAIN_ID, SPOKE_CHAIN_ID, -1],
        token_registry=registry_adapter(interface, gateway.address),
    )
    assert report.bridge_fee == 30
    assert report.fee_receiver == OWNER
    assert report.token_registry == TOKEN_REGISTRY_ADDRESS
    assert report.registry_linked
    assert report.registry_owner == OWNER
    assert report.gateway_linked
    assert report.supported_chains == {HUB_CHAIN_ID: True, SPOKE_CHAIN_ID: False, -1: None}
    assert len(report.errors) == 1
    assert report.errors[0].startswith("supported chain -1")


def test_inspect_gateway_unlinked_registry(interface):
    report = inspect_gateway(gateway_adapter(interface), expected_registry=None, chain_ids=[])
    assert not report.registry_linked
    assert report.gateway_linked is None
    report = inspect_gateway(
        gateway_adapter(interface), expected_registry=GATEWAY_ADDRESS, chain_ids=[]
    )
    assert not report.registry_linked


def test_inspect_registry_pointing_elsewhere(interface):
    report = inspect_gateway(
        gateway_adapter(interface),
        expected_registry=TOKEN_REGISTRY_ADDRESS,
        chain_ids=[],
        token_registry=registry_adapter(interface, GATEWAY_ADDRESS),
    )
    assert report.registry_linked
    assert report.gateway_linked is False
    assert report.errors == []


def test_failed_view_calls_are_reported_per_section(interface):
    gateway = gateway_adapter(interface)

    def unavailable():
        raise ProviderError("call failed")

    gateway.instance.getBridgeFee = unavailable
    gateway.instance.getBridgeTokenRegistry = unavailable
    token_registry = registry_adapter(interface, gateway.address)
    token_registry.instance.owner = unavailable

    report = inspect_gateway(
        gateway,
        expected_registry=TOKEN_REGISTRY_ADDRESS,
        chain_ids=[HUB_CHAIN_ID],
        token_registry=token_registry,
    )
    assert report.bridge_fee is None
    assert report.token_registry is None
    assert not report.registry_linked
    assert report.registry_owner is None
    # the remaining lookups still ran
    assert report.fee_receiver == OWNER
    assert report.supported_chains == {HUB_CHAIN_ID: True}
    assert report.gateway_linked
    assert [error.split(":")[0] for error in report.errors] == [
        "bridge fee",
        "token registry",
        "token registry owner",
    ]


def test_summarize_deployments(bridged_registry, store):
    store.put_contract_address("hub", DI_GATEWAY, GATEWAY_ADDRESS)
    store.put_contract_address("hub", TOKEN_REGISTRY, TOKEN_REGISTRY_ADDRESS)
    store.upsert_token_record("hub", token_record())
    store.upsert_token_record("hub", token_record("AAA"))
    store.put_contract_address("spoke", GAS_CREDIT_VAULT, GATEWAY_ADDRESS)
    store.upsert_token_record("spoke", token_record())
    store.put_contract_address("retired", DI_GATEWAY, GATEWAY_ADDRESS)

    summary = summarize_deployments(store, bridged_registry)

    assert [network.network for network in summary.networks] == ["hub", "retired", "spoke"]
    hub = summary.networks[0]
    assert hub.chain_name == "Hub Chain"
    assert hub.roles == sorted([DI_GATEWAY, TOKEN_REGISTRY])
    assert hub.token_count == 2
    assert summary.chains == 3
    assert summary.gateways == 2
    assert summary.tokens == 3
    assert summary.problems == [
        "retired: not found in network configuration",
        "spoke: token data recorded without a gateway",
    ]

    as_json = summary.to_json()
    assert as_json["chains"] == 3
    assert as_json["networks"][0]["network"] == "hub"
    assert as_json["errors"] == summary.problems


def test_summarize_unreadable_file(bridged_registry, store):
    store.put_contract_address("hub", DI_GATEWAY, GATEWAY_ADDRESS)
    store.filepath("spoke").write_text("{oops")

    summary = summarize_deployments(store, bridged_registry)
    assert [network.network for network in summary.networks] == ["hub"]
    assert summary.problems[0].startswith("spoke: unreadable address file")


def test_check_network_endpoints(bridged_registry):
    statuses = check_network_endpoints(bridged_registry, environ={})
    assert [(status.network, status.resolved) for status in statuses] == [
        ("hub", True),
        ("spoke", False),
    ]
    assert statuses[0].is_bridge_hub

    statuses = check_network_endpoints(bridged_registry, environ={"SPOKE_RPC_URL": "https://x"})
    assert all(status.resolved for status in statuses)
