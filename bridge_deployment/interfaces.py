import typing
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, NamedTuple

from bridge_deployment.constants import INTERFACES_CONFIG_FILEPATH
from bridge_deployment.utils import _load_yaml

EXTENDS_KEY = "extends"
MARKERS_KEY = "already_exists_markers"
CONSTRUCTOR = "constructor"


class MethodSpec(NamedTuple):
    name: str
    args: typing.Tuple[str, ...]


def _parse_method(operation: str, spec: Any) -> MethodSpec:
    if spec is None:
        return MethodSpec(name=operation, args=tuple())
    if isinstance(spec, list):
        return MethodSpec(name=operation, args=tuple(spec))
    if isinstance(spec, dict):
        return MethodSpec(name=spec.get("method", operation), args=tuple(spec.get("args") or []))
    raise ContractInterface.Invalid(f"Malformed interface entry for '{operation}'.")


def _flatten_revision(config: Dict[str, Any], version: str, seen: List[str]) -> Dict[str, Any]:
    """Resolves the 'extends' chain of a revision into a single mapping."""
    if version in seen:
        raise ContractInterface.Invalid(f"Circular interface revisions: {' -> '.join(seen)}.")
    try:
        revision = config[version] or dict()
    except KeyError:
        raise ContractInterface.Invalid(f"Contract interface revision '{version}' not found.")

    base = revision.get(EXTENDS_KEY)
    if base:
        flattened = _flatten_revision(config, base, seen=[*seen, version])
    else:
        flattened = {MARKERS_KEY: []}

    for key, value in revision.items():
        if key == EXTENDS_KEY:
            continue
        if key == MARKERS_KEY:
            flattened[MARKERS_KEY] = list(value or [])
            continue
        operations = OrderedDict(flattened.get(key, {}))
        operations.update(value or {})
        flattened[key] = operations
    return flattened


class ContractInterface:
    """
    One revision of the bridge contracts' ABI surface.

    Maps logical operations to on-chain method names and positional argument
    order, so that the scripts do not hard code signatures that changed
    between contract releases.
    """

    class Invalid(ValueError):
        """Raised when an interface revision is malformed or incomplete"""

    def __init__(
        self,
        version: str,
        methods: Dict[str, Dict[str, MethodSpec]],
        already_exists_markers: List[str],
    ):
        self.version = version
        self.methods = methods
        self.already_exists_markers = [marker.lower() for marker in already_exists_markers]

    @classmethod
    def from_config(cls, config: Dict[str, Any], version: str) -> "ContractInterface":
        revision = _flatten_revision(config, version, seen=[])
        methods = dict()
        for contract_name, operations in revision.items():
            if contract_name == MARKERS_KEY:
                continue
            methods[contract_name] = {
                operation: _parse_method(operation, spec) for operation, spec in operations.items()
            }
        return cls(
            version=version, methods=methods, already_exists_markers=revision[MARKERS_KEY]
        )

    def method(self, contract_name: str, operation: str) -> MethodSpec:
        try:
            return self.methods[contract_name][operation]
        except KeyError:
            raise self.Invalid(
                f"Operation '{operation}' of {contract_name} is not defined "
                f"in interface revision '{self.version}'."
            )

    def named_arguments(self, contract_name: str, operation: str, **values) -> OrderedDict:
        """Selects and orders the named values an operation takes."""
        spec = self.method(contract_name, operation)
        missing = [name for name in spec.args if name not in values]
        if missing:
            raise self.Invalid(
                f"{contract_name}.{spec.name} ({self.version}) requires "
                f"argument(s) {', '.join(missing)}."
            )
        return OrderedDict((name, values[name]) for name in spec.args)

    def arguments(self, contract_name: str, operation: str, **values) -> List[Any]:
        return list(self.named_arguments(contract_name, operation, **values).values())

    def constructor_parameters(self, contract_name: str, **values) -> OrderedDict:
        return self.named_arguments(contract_name, CONSTRUCTOR, **values)

    def is_already_exists(self, reason: typing.Optional[str]) -> bool:
        """Returns True if a revert reason signals a duplicate registration."""
        if not reason:
            return False
        reason = reason.lower()
        return any(marker in reason for marker in self.already_exists_markers)


def load_contract_interface(
    version: str, filepath: Path = INTERFACES_CONFIG_FILEPATH
) -> ContractInterface:
    config = _load_yaml(filepath)
    return ContractInterface.from_config(config, version=version)
