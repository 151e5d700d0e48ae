"""
Canonical types returned by the provider.

Every UTxO is a fresh snapshot built from one wire record; nothing here is
cached or mutated after construction. Uses pycardano for ledger serialisation.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, FrozenSet, Optional, Tuple

from pycardano import (
    Address,
    DatumHash,
    MultiAsset,
    NativeScript,
    PlutusV1Script,
    PlutusV2Script,
    PlutusV3Script,
    ScriptHash,
    TransactionInput,
    TransactionOutput,
    Value,
    VerificationKeyHash,
)
from pycardano import UTxO as PyUTxO
from pycardano.serialization import RawCBOR

LOVELACE = "lovelace"
POLICY_ID_HEX_LENGTH = 56


@dataclass(frozen=True)
class Token:
    """
    A native token identified by policy id and asset name.

    ADA is represented with empty policy_id and name, so its unit is "".
    Name is stored as hex (not decoded).
    """
    policy_id: str
    name: str  # hex encoded

    @property
    def is_ada(self) -> bool:
        return self.policy_id == "" and self.name == ""

    @property
    def unit(self) -> str:
        return f"{self.policy_id}{self.name}"

    @classmethod
    def ada(cls) -> "Token":
        return cls(policy_id="", name="")

    @classmethod
    def from_unit(cls, unit: str) -> "Token":
        """
        Split a unit (policy_id + name) into its parts.
        Policy ID is always 56 hex chars (28 bytes).
        """
        if not unit or unit == LOVELACE:
            return cls.ada()
        return cls(policy_id=unit[:POLICY_ID_HEX_LENGTH], name=unit[POLICY_ID_HEX_LENGTH:])

    def __str__(self) -> str:
        if self.is_ada:
            return "ADA"
        try:
            decoded = bytes.fromhex(self.name).decode("utf-8")
            return f"{self.policy_id[:8]}..{decoded}"
        except (ValueError, UnicodeDecodeError):
            return f"{self.policy_id[:8]}..{self.name[:8]}"


class Assets(dict):
    """
    Value bundle: unit -> amount.

    Lovelace is always present and stored under "", with "lovelace" accepted
    as an alias.
    """

    def __init__(self, *args, **kwargs):
        super().__init__()
        super().__setitem__("", 0)
        for unit, amount in dict(*args, **kwargs).items():
            self[unit] = amount

    @staticmethod
    def _key(unit: str) -> str:
        return "" if unit == LOVELACE else unit

    def __getitem__(self, unit: str) -> int:
        return super().__getitem__(self._key(unit))

    def __setitem__(self, unit: str, amount: int) -> None:
        super().__setitem__(self._key(unit), amount)

    def __contains__(self, unit: object) -> bool:
        return super().__contains__(self._key(unit) if isinstance(unit, str) else unit)

    def __delitem__(self, unit: str) -> None:
        key = self._key(unit)
        if key == "":
            raise KeyError("lovelace cannot be removed")
        super().__delitem__(key)

    def get(self, unit: str, default: Optional[int] = None) -> Optional[int]:
        return super().get(self._key(unit), default)

    def update(self, *args, **kwargs) -> None:
        for unit, amount in dict(*args, **kwargs).items():
            self[unit] = amount

    def setdefault(self, unit: str, default: int = 0) -> int:
        return super().setdefault(self._key(unit), default)

    def pop(self, unit: str, *default):
        key = self._key(unit)
        if key == "":
            raise KeyError("lovelace cannot be removed")
        return super().pop(key, *default)

    def popitem(self):
        if len(self) == 1:
            raise KeyError("popitem(): no tokens left")
        unit = next(reversed(list(self.keys())))
        return unit, super().pop(unit)

    def clear(self) -> None:
        super().clear()
        super().__setitem__("", 0)

    def copy(self) -> "Assets":
        return Assets(self)

    @property
    def lovelace(self) -> int:
        return super().__getitem__("")

    def tokens(self) -> Dict[Token, int]:
        """Non-ADA entries keyed by Token."""
        return {Token.from_unit(unit): amount for unit, amount in self.items() if unit != ""}

    def to_value(self) -> Value:
        multi: Dict[bytes, Dict[bytes, int]] = {}
        for token, amount in self.tokens().items():
            multi.setdefault(bytes.fromhex(token.policy_id), {})[bytes.fromhex(token.name)] = amount
        return Value(self.lovelace, MultiAsset.from_primitive(multi))


@dataclass(frozen=True)
class OutputReference:
    """Transaction output identity: (tx hash hex, output index)."""
    tx_hash: str
    output_index: int

    def __str__(self) -> str:
        return f"{self.tx_hash}#{self.output_index}"


@dataclass(frozen=True)
class Credential:
    """Payment or stake credential: kind is "Key" or "Script", hash is 28 bytes hex."""
    kind: str
    hash: str

    @classmethod
    def from_pycardano(cls, part) -> "Credential":
        if isinstance(part, ScriptHash):
            return cls(kind="Script", hash=part.payload.hex())
        if isinstance(part, VerificationKeyHash):
            return cls(kind="Key", hash=part.payload.hex())
        raise TypeError(f"Not a credential hash: {type(part).__name__}")


class ScriptKind(str, Enum):
    NATIVE = "Native"
    PLUTUS_V1 = "PlutusV1"
    PLUTUS_V2 = "PlutusV2"
    PLUTUS_V3 = "PlutusV3"


@dataclass(frozen=True)
class ScriptRef:
    """Reference script attached to an output (script bytes as hex)."""
    kind: ScriptKind
    script: str

    def to_pycardano(self):
        raw = bytes.fromhex(self.script)
        if self.kind is ScriptKind.NATIVE:
            return NativeScript.from_cbor(raw)
        if self.kind is ScriptKind.PLUTUS_V1:
            return PlutusV1Script(raw)
        if self.kind is ScriptKind.PLUTUS_V2:
            return PlutusV2Script(raw)
        return PlutusV3Script(raw)


@dataclass(frozen=True)
class UTxO:
    """
    Unspent output snapshot.

    datum (inline CBOR hex) and datum_hash are never both set.
    """
    tx_hash: str
    output_index: int
    address: str  # bech32
    assets: Assets
    datum_hash: Optional[str] = None
    datum: Optional[str] = None
    script_ref: Optional[ScriptRef] = None

    @property
    def out_ref(self) -> OutputReference:
        return OutputReference(self.tx_hash, self.output_index)

    def __hash__(self) -> int:
        # assets is a mutable mapping; equal snapshots share an output reference
        return hash(self.out_ref)

    def to_pycardano(self) -> PyUTxO:
        """Convert to a pycardano UTxO (input + output) for transaction building."""
        tx_in = TransactionInput.from_primitive([bytes.fromhex(self.tx_hash), self.output_index])
        tx_out = TransactionOutput(
            address=Address.from_primitive(self.address),
            amount=self.assets.to_value() if len(self.assets) > 1 else self.assets.lovelace,
            datum_hash=DatumHash(bytes.fromhex(self.datum_hash)) if self.datum_hash else None,
            datum=RawCBOR(bytes.fromhex(self.datum)) if self.datum else None,
            script=self.script_ref.to_pycardano() if self.script_ref else None,
        )
        return PyUTxO(tx_in, tx_out)

    def __repr__(self) -> str:
        return f"UTxO({self.tx_hash[:8]}..#{self.output_index}, {self.assets.lovelace} lovelace)"


@dataclass(frozen=True)
class ProtocolParameters:
    """
    Protocol parameter snapshot.

    cost_models is keyed by Plutus version (1, 2, 3). defaulted_fields names
    every field that was filled from a documented default because the service
    did not report it.
    """
    min_fee_a: int
    min_fee_b: int
    max_tx_size: int
    max_val_size: int
    max_block_size: int
    max_block_header_size: int
    key_deposit: int
    pool_deposit: int
    drep_deposit: int
    gov_action_deposit: int
    min_pool_cost: int
    price_mem: float
    price_step: float
    max_tx_ex_mem: int
    max_tx_ex_steps: int
    coins_per_utxo_byte: int
    collateral_percentage: int
    max_collateral_inputs: int
    min_fee_ref_script_cost_per_byte: float
    protocol_version: Tuple[int, int]
    cost_models: Dict[int, Dict[str, int]] = field(default_factory=dict)
    defaulted_fields: FrozenSet[str] = frozenset()


class RedeemerTag(str, Enum):
    SPEND = "spend"
    MINT = "mint"
    PUBLISH = "publish"
    WITHDRAW = "withdraw"
    VOTE = "vote"
    PROPOSE = "propose"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class EvalRedeemer:
    """Execution units measured for one redeemer."""
    redeemer_index: int
    redeemer_tag: RedeemerTag
    mem: int
    steps: int


class TxStage(IntEnum):
    """Stages reported by the transaction status stream."""
    UNSPECIFIED = 0
    ACKNOWLEDGED = 1
    MEMPOOL = 2
    NETWORK = 3
    CONFIRMED = 4


class ConfirmationOutcome(Enum):
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed_out"

    def __bool__(self) -> bool:
        return self is ConfirmationOutcome.CONFIRMED
