from collections import OrderedDict

import click

from bridge_deployment.constants import ZERO_ADDRESS


def _abort_unless_confirmed(question: str) -> None:
    answer = input(f"{question} Y/N? ")
    if answer.lower().strip() == "n":
        print("Aborting deployment!")
        exit(-1)


def _continue() -> None:
    """Asks the user to continue."""
    _abort_unless_confirmed("Continue")


def _confirm_resolution(resolved_params: OrderedDict, contract_name: str) -> None:
    """Asks the user to confirm the constructor parameters of a single contract."""
    if len(resolved_params) == 0:
        print(f"\n(i) No constructor parameters for {contract_name}")
    else:
        print(f"\nConstructor parameters for {contract_name}")
        for name, resolved_value in resolved_params.items():
            print(f"\t{name}={resolved_value}")

    _abort_unless_confirmed(f"Deploy {contract_name}")
    if ZERO_ADDRESS in resolved_params.values():
        _abort_unless_confirmed("Zero Address detected for deployment parameter; Continue?")


def _confirm_redeployment(network: str, role: str, address: str) -> None:
    """Asks the user to confirm replacing an already recorded contract."""
    click.secho(f"\n⚠ {role} is already deployed on {network} at {address}", fg="yellow")
    _abort_unless_confirmed(f"Redeploy {role} and replace the recorded address")
