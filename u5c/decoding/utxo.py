"""
Wire record -> canonical UTxO.

A record looks like (byte fields as bytes or hex strings):

    {"txoRef": {"hash": ..., "index": 0},
     "parsedValued": {"address": ..., "coin": "5000000",
                      "assets": [{"policyId": ..., "assets": [{"name": ..., "outputCoin": "1"}]}],
                      "datum": {"hash": ..., "originalCbor": ...},
                      "script": {"script": {"case": "plutusV2", "value": ...}}}}

The parsed output may also sit under "cardano" (records built from the gRPC
messages, or protobuf JSON) or directly on the record.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional

from pycardano import (
    Address,
    InvalidBefore,
    InvalidHereAfter,
    NativeScript,
    ScriptAll,
    ScriptAny,
    ScriptNofK,
    ScriptPubkey,
    VerificationKeyHash,
)
from pycardano.exception import PyCardanoException

from u5c.errors import MalformedRecord, UnsupportedScriptKind
from u5c.types import Assets, ScriptKind, ScriptRef, UTxO

logger = logging.getLogger(__name__)

SCRIPT_KINDS = {
    "native": ScriptKind.NATIVE,
    "plutusV1": ScriptKind.PLUTUS_V1,
    "plutusV2": ScriptKind.PLUTUS_V2,
    "plutusV3": ScriptKind.PLUTUS_V3,
}

_OUTPUT_KEYS = ("parsedValued", "cardano")


def to_bytes(value: Any, name: str) -> bytes:
    """Accept bytes or hex; None stays empty."""
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return bytes.fromhex(value)
        except ValueError:
            raise MalformedRecord(f"{name} is not valid hex: {value[:16]!r}")
    if isinstance(value, list) and all(isinstance(b, int) for b in value):
        return bytes(value)
    raise MalformedRecord(f"{name} has unexpected type {type(value).__name__}")


def to_int(value: Any, name: str) -> int:
    """Integer from int, decimal string or BigInt wrapper ({"int": ...} / {"bigUInt": bytes})."""
    if isinstance(value, bool):
        raise MalformedRecord(f"{name} is not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise MalformedRecord(f"{name} is not an integer: {value!r}")
    if isinstance(value, Mapping):
        if "int" in value:
            return to_int(value["int"], name)
        if "bigUInt" in value:
            return int.from_bytes(to_bytes(value["bigUInt"], name), "big")
        if "bigNInt" in value:
            return -1 - int.from_bytes(to_bytes(value["bigNInt"], name), "big")
    raise MalformedRecord(f"{name} is not an integer: {value!r}")


def _output_of(record: Mapping[str, Any]) -> Mapping[str, Any]:
    for key in _OUTPUT_KEYS:
        output = record.get(key)
        if isinstance(output, Mapping):
            return output
    return record


def _decode_address(raw: Any) -> str:
    address_bytes = to_bytes(raw, "address")
    if not address_bytes:
        raise MalformedRecord("Invalid UTxO: missing address")
    try:
        return Address.from_primitive(address_bytes).encode()
    except (PyCardanoException, ValueError, IndexError, TypeError) as e:
        raise MalformedRecord(f"Invalid UTxO: undecodable address {address_bytes.hex()[:16]}..: {e}") from e


def _decode_assets(output: Mapping[str, Any]) -> Assets:
    coin = output.get("coin")
    lovelace = 0 if coin is None else to_int(coin, "coin")
    if lovelace < 0:
        raise MalformedRecord(f"Invalid UTxO: negative coin {lovelace}")
    assets = Assets({"": lovelace})

    for group in output.get("assets") or []:
        if not isinstance(group, Mapping) or not group.get("policyId"):
            continue
        policy_id = to_bytes(group["policyId"], "policyId").hex()
        for sub in group.get("assets") or []:
            name = sub.get("name") if isinstance(sub, Mapping) else None
            amount = sub.get("outputCoin") if isinstance(sub, Mapping) else None
            if not name or amount is None:
                logger.debug(f"Skipping sub-asset without name or amount under policy {policy_id[:16]}..")
                continue
            quantity = to_int(amount, "outputCoin")
            if quantity < 0:
                raise MalformedRecord(f"Invalid UTxO: negative amount for policy {policy_id}")
            assets[f"{policy_id}{to_bytes(name, 'asset name').hex()}"] = quantity
    return assets


def _native_children(value: Any, key: str, case: str) -> List[NativeScript]:
    children = value.get(key) if isinstance(value, Mapping) else None
    if not isinstance(children, list):
        raise MalformedRecord(f"Invalid UTxO: native {case} has no {key} list")
    return [native_script(child) for child in children]


def native_script(raw: Mapping[str, Any]) -> NativeScript:
    """
    Structured native script -> pycardano NativeScript.

    Accepts the keyed form ({"scriptPubkey": ...}, {"scriptAll": {"items": [...]}},
    {"scriptNOfK": {"k": 2, "scripts": [...]}}, {"invalidBefore": slot}, ...)
    and the SDK form {"nativeScript": {"case": ..., "value": ...}}.
    """
    if not isinstance(raw, Mapping):
        raise MalformedRecord(f"Invalid UTxO: native script has unexpected type {type(raw).__name__}")
    tagged = raw.get("nativeScript")
    if isinstance(tagged, Mapping) and "case" in tagged:
        case, value = tagged.get("case"), tagged.get("value")
    elif len(raw) == 1:
        (case, value), = raw.items()
    else:
        raise MalformedRecord(f"Invalid UTxO: ambiguous native script {sorted(raw)}")

    if case == "scriptPubkey":
        key_hash = to_bytes(value, "scriptPubkey")
        if len(key_hash) != VerificationKeyHash.MAX_SIZE:
            raise MalformedRecord(f"Invalid UTxO: scriptPubkey is {len(key_hash)} bytes")
        return ScriptPubkey(VerificationKeyHash(key_hash))
    if case == "scriptAll":
        return ScriptAll(_native_children(value, "items", case))
    if case == "scriptAny":
        return ScriptAny(_native_children(value, "items", case))
    if case == "scriptNOfK":
        k = to_int(value.get("k", 0) if isinstance(value, Mapping) else value, "scriptNOfK.k")
        return ScriptNofK(k, _native_children(value, "scripts", case))
    if case == "invalidBefore":
        return InvalidBefore(to_int(value, case))
    if case == "invalidHereafter":
        return InvalidHereAfter(to_int(value, case))
    raise UnsupportedScriptKind(f"native/{case}")


def _decode_script(raw: Any) -> Optional[ScriptRef]:
    if not raw:
        return None
    if not isinstance(raw, Mapping):
        raise MalformedRecord(f"Invalid UTxO: script has unexpected type {type(raw).__name__}")

    tagged = raw.get("script")
    if isinstance(tagged, Mapping) and "case" in tagged:
        case, value = tagged.get("case"), tagged.get("value")
        if case is None:
            return None
    elif len(raw) == 1:
        (case, value), = raw.items()
    else:
        raise MalformedRecord(f"Invalid UTxO: ambiguous script reference {sorted(raw)}")

    kind = SCRIPT_KINDS.get(case)
    if kind is None:
        raise UnsupportedScriptKind(case)
    if kind is ScriptKind.NATIVE and isinstance(value, Mapping):
        return ScriptRef(kind=kind, script=native_script(value).to_cbor().hex())
    return ScriptRef(kind=kind, script=to_bytes(value, f"{case} script").hex())


def decode_utxo(record: Mapping[str, Any]) -> UTxO:
    """Decode one wire record. Raises MalformedRecord / UnsupportedScriptKind."""
    if not isinstance(record, Mapping):
        raise MalformedRecord(f"Invalid UTxO: record has unexpected type {type(record).__name__}")

    ref = record.get("txoRef") or {}
    tx_hash = to_bytes(ref.get("hash"), "txoRef.hash")
    if not tx_hash:
        raise MalformedRecord("Invalid UTxO: missing transaction hash")

    index = ref.get("index")
    if not isinstance(index, int) or isinstance(index, bool) or index < 0:
        raise MalformedRecord(f"Invalid UTxO: missing or invalid output index {index!r}")

    output = _output_of(record)
    address = _decode_address(output.get("address"))
    assets = _decode_assets(output)

    datum = datum_hash = None
    raw_datum = output.get("datum")
    if isinstance(raw_datum, Mapping):
        cbor = to_bytes(raw_datum.get("originalCbor"), "datum.originalCbor")
        digest = to_bytes(raw_datum.get("hash"), "datum.hash")
        if cbor:
            datum = cbor.hex()
        elif digest:
            datum_hash = digest.hex()

    return UTxO(
        tx_hash=tx_hash.hex(),
        output_index=index,
        address=address,
        assets=assets,
        datum_hash=datum_hash,
        datum=datum,
        script_ref=_decode_script(output.get("script")),
    )


def decode_utxos(records: Iterable[Mapping[str, Any]]) -> List[UTxO]:
    """Decode a batch; one bad record fails the whole batch."""
    return [decode_utxo(record) for record in records]
