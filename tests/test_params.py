from collections import OrderedDict

import pytest
from ethpm_types import MethodABI

from bridge_deployment.confirm import _confirm_redeployment, _confirm_resolution, _continue
from bridge_deployment.constants import ZERO_ADDRESS
from bridge_deployment.params import _validate_method_args
from tests.conftest import OWNER, RELAYER

ADD_TOKEN_CONTRACT_V1 = MethodABI(
    type="function",
    name="addTokenContract",
    stateMutability="nonpayable",
    inputs=[
        {"name": "symbol", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "tokenAddress", "type": "address"},
    ],
    outputs=[],
)

ADD_TOKEN_CONTRACT_V2 = MethodABI(
    type="function",
    name="addTokenContract",
    stateMutability="nonpayable",
    inputs=[
        {"name": "symbol", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "tokenAddress", "type": "address"},
        {"name": "originChainId", "type": "uint256"},
        {"name": "originSymbol", "type": "string"},
        {"name": "isDeployed", "type": "bool"},
    ],
    outputs=[],
)


def test_validate_method_args_picks_matching_overload():
    abis = [ADD_TOKEN_CONTRACT_V1, ADD_TOKEN_CONTRACT_V2]
    named = _validate_method_args(abis, ["TKN", 4157, OWNER])
    assert named == {"symbol": "TKN", "chainId": 4157, "tokenAddress": OWNER}

    named = _validate_method_args(abis, ["TKN", 4157, OWNER, 0, "", False])
    assert named["originChainId"] == 0
    assert named["isDeployed"] is False


def test_validate_method_args_rejects_wrong_types():
    with pytest.raises(ValueError, match="addTokenContract"):
        _validate_method_args([ADD_TOKEN_CONTRACT_V1], ["TKN", "not a number", OWNER])
    with pytest.raises(ValueError, match="1 arg"):
        _validate_method_args([ADD_TOKEN_CONTRACT_V1], ["TKN"])


def test_validate_method_args_requires_abis():
    with pytest.raises(ValueError):
        _validate_method_args([], [])


def answer(monkeypatch, *answers):
    answers = iter(answers)
    monkeypatch.setattr("builtins.input", lambda _: next(answers))


def test_continue(monkeypatch):
    answer(monkeypatch, "y")
    _continue()

    answer(monkeypatch, " N ")
    with pytest.raises(SystemExit):
        _continue()


def test_confirm_resolution_prints_parameters(monkeypatch, capsys):
    answer(monkeypatch, "y")
    _confirm_resolution(OrderedDict(owner=OWNER, relayer=RELAYER), "DIGateway")
    output = capsys.readouterr().out
    assert f"owner={OWNER}" in output
    assert f"relayer={RELAYER}" in output


def test_confirm_resolution_flags_zero_address(monkeypatch):
    answer(monkeypatch, "y", "n")
    with pytest.raises(SystemExit):
        _confirm_resolution(OrderedDict(owner=ZERO_ADDRESS), "DIGateway")


def test_confirm_redeployment(monkeypatch, capsys):
    answer(monkeypatch, "n")
    with pytest.raises(SystemExit):
        _confirm_redeployment("spoke", "diGateway", OWNER)
    assert "Aborting deployment!" in capsys.readouterr().out
