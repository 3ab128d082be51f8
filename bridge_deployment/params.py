import typing
from collections import OrderedDict
from typing import Any, List

from ape import networks
from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractInstance, ContractTransactionHandler
from ethpm_types import MethodABI
from web3.auto import w3

from bridge_deployment.confirm import _confirm_resolution, _continue
from bridge_deployment.constants import PROXY_CONTRACT
from bridge_deployment.utils import (
    check_plugins,
    get_contract_container,
    get_oz_dependency,
    verify_contracts,
)


def _validate_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            if not w3.is_encodable(abi_input.type, arg):
                break
            named_args[abi_input.name] = arg
        else:
            return named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


class Transactor:
    """
    Represents an ape account plus validated/annotated transaction execution.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        self._account.set_autosign(autosign)

    def get_account(self) -> AccountAPI:
        """Returns the transactor account."""
        return self._account

    def transact(self, method: ContractTransactionHandler, *args) -> ReceiptAPI:
        named_args = _validate_method_args(method_abis=method.abis, args=args)
        base_message = (
            f"\nTransacting {method.contract.contract_type.name}"
            f"[{method.contract.address[:10]}].{method}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)
        if not self._autosign:
            _continue()

        return method(*args, sender=self._account)


class Deployer(Transactor):
    """
    Represents an ape account plus contract and UUPS proxy deployment,
    with optional publication to the network's block explorer.
    """

    def __init__(
        self,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
        verify: bool = False,
    ):
        super().__init__(account, autosign)
        if verify:
            check_plugins()
        self.verify = verify
        self._print_deployment_info()

        if not self._autosign:
            # Confirms the start of the deployment.
            _continue()

    def deploy(self, contract_name: str, params: OrderedDict) -> ContractInstance:
        container = get_contract_container(contract_name)
        if not self._autosign:
            _confirm_resolution(params, contract_name)
        return self._account.deploy(container, *params.values())

    def deploy_proxy(
        self, contract_name: str, initializer: str, init_params: OrderedDict
    ) -> ContractInstance:
        """
        Deploys an implementation behind an ERC1967 proxy and initializes it
        in the proxy constructor. Returns the implementation type at the proxy address.
        """
        implementation = self.deploy(contract_name, OrderedDict())
        init_data = getattr(implementation, initializer).encode_input(*init_params.values())

        proxy_container = getattr(get_oz_dependency(), PROXY_CONTRACT)
        print(f"\nDeploying {PROXY_CONTRACT} contract to proxy {contract_name}.")
        proxy_params = OrderedDict(implementation=implementation.address, _data=init_data)
        if not self._autosign:
            _confirm_resolution(proxy_params, PROXY_CONTRACT)
        proxy_contract = self._account.deploy(proxy_container, *proxy_params.values())

        print(
            f"\nWrapping {contract_name} into {PROXY_CONTRACT} "
            f"at {proxy_contract.address}."
        )
        return get_contract_container(contract_name).at(proxy_contract.address)

    def at(self, contract_name: str, address: str) -> ContractInstance:
        return get_contract_container(contract_name).at(address)

    def finalize(self, deployments: List[ContractInstance]) -> None:
        """Publishes newly deployed contracts to the block explorer, if requested."""
        if self.verify and deployments:
            verify_contracts(contracts=deployments)

    def _print_deployment_info(self):
        print(
            f"Account: {self.get_account().address}",
            f"Verify: {self.verify}",
            f"Ecosystem: {networks.provider.network.ecosystem.name}",
            f"Network: {networks.provider.network.name}",
            f"Chain ID: {networks.provider.network.chain_id}",
            f"Gas Price: {networks.provider.gas_price}",
            sep="\n",
        )
