"""UTxO lookups against the indexing service."""

import asyncio
import logging
from typing import Any, Iterable, List, Mapping, Sequence, Tuple, Union

from pycardano import Address
from pycardano.exception import PyCardanoException

from u5c.decoding import decode_utxo, decode_utxos, to_bytes
from u5c.errors import InvalidLookupKey, MalformedRecord, NotFound
from u5c.types import POLICY_ID_HEX_LENGTH, Credential, OutputReference, UTxO
from .client import ChainQueryClient

logger = logging.getLogger(__name__)

CREDENTIAL_KINDS = ("Key", "Script")
CREDENTIAL_HASH_BYTES = 28
TX_HASH_BYTES = 32

AddressOrCredential = Union[str, Address, Credential]
OutRefLike = Union[OutputReference, Tuple[str, int], Mapping[str, Any]]


def _hex_bytes(value: Any, size: int, what: str) -> bytes:
    if not isinstance(value, str):
        raise InvalidLookupKey(f"{what} must be a hex string, got {type(value).__name__}")
    try:
        raw = bytes.fromhex(value)
    except ValueError:
        raise InvalidLookupKey(f"{what} is not valid hex: {value[:16]!r}")
    if len(raw) != size:
        raise InvalidLookupKey(f"{what} must be {size} bytes, got {len(raw)}")
    return raw


def address_bytes(address: Union[str, Address]) -> bytes:
    """Raw address bytes from a bech32 string or pycardano Address."""
    if isinstance(address, Address):
        return address.to_primitive()
    try:
        return Address.from_primitive(address).to_primitive()
    except (PyCardanoException, ValueError, TypeError, IndexError) as e:
        raise InvalidLookupKey(f"Invalid address {address[:20]!r}: {e}") from e


def credential_bytes(credential: Credential) -> bytes:
    if credential.kind not in CREDENTIAL_KINDS:
        raise InvalidLookupKey(f"Invalid credential kind {credential.kind!r}")
    return _hex_bytes(credential.hash, CREDENTIAL_HASH_BYTES, "Credential hash")


def unit_bytes(unit: str) -> bytes:
    """Policy id + asset name bytes for a unit; lovelace is not an asset."""
    if not isinstance(unit, str) or len(unit) < POLICY_ID_HEX_LENGTH or len(unit) % 2:
        raise InvalidLookupKey(f"Invalid unit {unit!r}")
    try:
        return bytes.fromhex(unit)
    except ValueError:
        raise InvalidLookupKey(f"Unit is not valid hex: {unit[:16]!r}")


def to_out_ref(ref: OutRefLike) -> OutputReference:
    """Accept OutputReference, (tx_hash, index) or {"txHash": ..., "outputIndex": ...}."""
    if isinstance(ref, OutputReference):
        tx_hash, index = ref.tx_hash, ref.output_index
    elif isinstance(ref, Mapping):
        tx_hash, index = ref.get("txHash"), ref.get("outputIndex")
    elif isinstance(ref, (tuple, list)) and len(ref) == 2:
        tx_hash, index = ref
    else:
        raise InvalidLookupKey(f"Invalid output reference {ref!r}")
    _hex_bytes(tx_hash, TX_HASH_BYTES, "Transaction hash")
    if not isinstance(index, int) or isinstance(index, bool) or index < 0:
        raise InvalidLookupKey(f"Invalid output index {index!r}")
    return OutputReference(tx_hash.lower(), index)


def record_out_ref(record: Mapping[str, Any]) -> OutputReference:
    ref = record.get("txoRef") or {}
    try:
        tx_hash = to_bytes(ref.get("hash"), "txoRef.hash").hex()
    except MalformedRecord:
        tx_hash = ""
    return OutputReference(tx_hash, ref.get("index"))


def merge_by_out_ref(*result_sets: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Concatenate result sets keeping the first record seen for each output reference."""
    unique = {}
    for results in result_sets:
        for record in results:
            unique.setdefault(record_out_ref(record), record)
    return list(unique.values())


class UtxoResolver:
    """Resolves UTxOs by address, credential, unit or output reference."""

    def __init__(self, client: ChainQueryClient):
        self.client = client

    async def get_utxos(self, address_or_credential: AddressOrCredential) -> List[UTxO]:
        """UTxOs at an address, or under a credential in either address role."""
        return await self._search(address_or_credential, asset=None)

    async def get_utxos_with_unit(self, address_or_credential: AddressOrCredential, unit: str) -> List[UTxO]:
        """Like get_utxos, filtered server-side to outputs holding unit."""
        return await self._search(address_or_credential, asset=unit_bytes(unit))

    async def _search(self, key: AddressOrCredential, asset) -> List[UTxO]:
        if isinstance(key, Credential):
            credential = credential_bytes(key)
            queries = [
                asyncio.ensure_future(self.client.search_utxos_by_payment_part(credential, asset)),
                asyncio.ensure_future(self.client.search_utxos_by_delegation_part(credential, asset)),
            ]
            try:
                payment, delegation = await asyncio.gather(*queries)
            except Exception:
                # cancel whichever query is still in flight
                for query in queries:
                    query.cancel()
                await asyncio.gather(*queries, return_exceptions=True)
                raise
            merged = merge_by_out_ref(payment, delegation)
            logger.debug(
                f"Credential {key.hash[:16]}..: {len(payment)} payment + {len(delegation)} "
                f"delegation records, {len(merged)} unique"
            )
            return decode_utxos(merged)

        if isinstance(key, (str, Address)):
            return decode_utxos(await self.client.search_utxos_by_address(address_bytes(key), asset))

        raise InvalidLookupKey(f"Invalid address or credential: {type(key).__name__}")

    async def get_utxo_by_unit(self, unit: str) -> UTxO:
        """
        The UTxO holding unit.

        Assumes the unit is an NFT held by at most one unspent output. If the
        service returns several, only the first is used.
        """
        records = await self.client.search_utxos_by_asset(unit_bytes(unit))
        if not records:
            logger.debug(f"No UTxO found for unit {unit[:24]}..")
            raise NotFound(f"No UTxO found for the given unit: {unit}")
        if len(records) > 1:
            logger.warning(f"Unit {unit[:24]}.. held by {len(records)} UTxOs; using the first")
        return decode_utxo(records[0])

    async def get_utxos_by_out_ref(self, out_refs: Sequence[OutRefLike]) -> List[UTxO]:
        """UTxOs for output references; spent or unknown references are absent."""
        refs = [to_out_ref(ref) for ref in out_refs]
        if not refs:
            return []
        records = await self.client.read_utxos([(bytes.fromhex(r.tx_hash), r.output_index) for r in refs])
        return decode_utxos(records)
