import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, NamedTuple, Optional

import click
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from bridge_deployment.constants import ADDRESSES_DIR, TOKEN_DATA_KEY

STANDARD_ADDRESSES_JSON_FORMAT = {"indent": 2}


class TokenRecord(NamedTuple):
    """A token as deployed (or adopted) on one network."""

    symbol: str
    name: str
    decimals: int
    address: ChecksumAddress
    is_deployed: bool  # True for a newly created bridged token
    origin_symbol: str
    origin_chain_id: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
            "address": self.address,
            "isDeployed": self.is_deployed,
            "originSymbol": self.origin_symbol,
            "originChainId": self.origin_chain_id,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "TokenRecord":
        return cls(
            symbol=data["symbol"],
            name=data.get("name", data["symbol"]),
            decimals=int(data["decimals"]),
            address=to_checksum_address(data["address"]),
            is_deployed=bool(data.get("isDeployed", False)),
            origin_symbol=data.get("originSymbol") or data["symbol"],
            origin_chain_id=data.get("originChainId"),
        )


class NetworkTokenData(NamedTuple):
    network: str
    tokens: List[TokenRecord]
    timestamp: Optional[str]


def _utc_timestamp() -> str:
    now = datetime.now(tz=timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AddressStore:
    """
    Per-network record of deployed contract addresses and token metadata.

    One JSON file per network, mapping contract roles to addresses plus an
    optional token data section. Every write reads the whole document,
    applies a single merge and atomically replaces the file, so an
    interrupted run leaves either the old or the new document on disk.

    Concurrent writers from separate processes are not coordinated.
    """

    class NotFound(LookupError):
        """Raised when a network file or contract role is missing."""

    def __init__(
        self,
        directory: Path = ADDRESSES_DIR,
        clock: Callable[[], str] = _utc_timestamp,
    ):
        self.directory = Path(directory)
        self.clock = clock

    def filepath(self, network: str) -> Path:
        return self.directory / f"{network}.json"

    def _read(self, network: str) -> Optional[Dict[str, Any]]:
        filepath = self.filepath(network)
        if not filepath.exists():
            return None
        with open(filepath, "r") as file:
            return json.load(file)

    def _write(self, network: str, document: Dict[str, Any]) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        filepath = self.filepath(network)
        temp_filepath = filepath.with_suffix(".tmp")
        try:
            with open(temp_filepath, "w") as file:
                json.dump(document, file, **STANDARD_ADDRESSES_JSON_FORMAT)
                file.flush()
                os.fsync(file.fileno())
            os.replace(temp_filepath, filepath)
        finally:
            if temp_filepath.exists():
                temp_filepath.unlink()
        return filepath

    def update(self, network: str, merge: Callable[[Dict[str, Any]], Dict[str, Any]]) -> Path:
        """Reads the network document, applies one merge function and writes it back."""
        document = self._read(network) or dict()
        document = merge(document)
        return self._write(network, document)

    def put_contract_address(
        self, network: str, role: str, address: str
    ) -> Optional[ChecksumAddress]:
        """Records the address of a contract role, returning the address it replaced."""
        address = to_checksum_address(address)
        previous = self.find_contract_address(network, role)

        def merge(document):
            document[role] = address
            return document

        self.update(network, merge)
        return previous

    def find_contract_address(self, network: str, role: str) -> Optional[str]:
        document = self._read(network)
        if not document:
            return None
        address = document.get(role)
        if not isinstance(address, str):
            return None
        return address

    def get_contract_address(self, network: str, role: str) -> str:
        if not self.filepath(network).exists():
            raise self.NotFound(f"No addresses file found for {network}")
        address = self.find_contract_address(network, role)
        if not address:
            raise self.NotFound(f"Contract {role} not found in {network} addresses")
        return address

    def get_contract_addresses(self, network: str) -> Dict[str, str]:
        document = self._read(network) or dict()
        return {role: value for role, value in document.items() if isinstance(value, str)}

    def upsert_token_record(self, network: str, record: TokenRecord) -> Path:
        """Replaces the record with the same symbol, or appends it."""
        timestamp = self.clock()

        def merge(document):
            token_data = document.get(TOKEN_DATA_KEY) or dict()
            tokens = list(token_data.get("tokens") or [])
            for index, existing in enumerate(tokens):
                if existing.get("symbol") == record.symbol:
                    tokens[index] = record.to_json()
                    break
            else:
                tokens.append(record.to_json())
            document[TOKEN_DATA_KEY] = {
                "network": network,
                "tokens": tokens,
                "timestamp": timestamp,
            }
            return document

        return self.update(network, merge)

    def get_token_data(self, network: str) -> Optional[NetworkTokenData]:
        document = self._read(network)
        if not document or not document.get(TOKEN_DATA_KEY):
            return None
        return self._token_data(network, document[TOKEN_DATA_KEY])

    @staticmethod
    def _token_data(network: str, token_data: Dict[str, Any]) -> NetworkTokenData:
        tokens = [TokenRecord.from_json(token) for token in token_data.get("tokens") or []]
        return NetworkTokenData(
            network=network,
            tokens=tokens,
            timestamp=token_data.get("timestamp"),
        )

    def list_networks(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(filepath.stem for filepath in self.directory.glob("*.json"))

    def list_all_networks_with_token_data(self) -> List[NetworkTokenData]:
        """
        Collects the token data of every network file in the store.
        Unreadable files are reported and skipped.
        """
        results = list()
        for network in self.list_networks():
            try:
                document = self._read(network)
                if not document or not document.get(TOKEN_DATA_KEY):
                    continue
                results.append(self._token_data(network, document[TOKEN_DATA_KEY]))
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                click.secho(f"⚠ Could not read token data for {network}: {e}", fg="yellow")
        return results
