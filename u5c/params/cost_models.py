"""
Plutus cost models: positional arrays -> named parameter tables.

The service reports each cost model as an ordered array of integers. Each
Plutus version fixes the parameter names for those positions; the tables
below are built from per-builtin layouts so the ordering stays auditable.

Plutus V3 additionally carries PLUTUS_V3_PATCHES: parameters added to V3
after the 251-entry layout (bitwise byte-string ops, bit counting,
RIPEMD-160) that some service versions leave out of the array. They are
overlaid with literal values after positional mapping.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from u5c.decoding import to_int
from u5c.errors import MalformedRecord

logger = logging.getLogger(__name__)

# Suffix groups shared by builtins with the same costing function shape
_LINEAR = (
    "cpu-arguments-intercept",
    "cpu-arguments-slope",
    "memory-arguments-intercept",
    "memory-arguments-slope",
)
_CONSTANT = ("cpu-arguments", "memory-arguments")
_CPU_LINEAR = ("cpu-arguments-intercept", "cpu-arguments-slope", "memory-arguments")
_CPU_ON_DIAGONAL = (
    "cpu-arguments-constant",
    "cpu-arguments-intercept",
    "cpu-arguments-slope",
    "memory-arguments",
)
_CEK = ("exBudgetCPU", "exBudgetMemory")
_DIVISION = (
    "cpu-arguments-constant",
    "cpu-arguments-model-arguments-intercept",
    "cpu-arguments-model-arguments-slope",
    "memory-arguments-intercept",
    "memory-arguments-minimum",
    "memory-arguments-slope",
)
# V3 switched the division builtins to a quadratic cpu model (c00..c20)
_DIVISION_CPU_V3 = (
    "cpu-arguments-constant",
    "cpu-arguments-model-arguments-c00",
    "cpu-arguments-model-arguments-c01",
    "cpu-arguments-model-arguments-c02",
    "cpu-arguments-model-arguments-c10",
    "cpu-arguments-model-arguments-c11",
    "cpu-arguments-model-arguments-c20",
    "cpu-arguments-model-arguments-minimum",
)
_DIVISION_V3 = _DIVISION_CPU_V3 + (
    "memory-arguments-intercept",
    "memory-arguments-minimum",
    "memory-arguments-slope",
)
_MODULO_V3 = _DIVISION_CPU_V3 + ("memory-arguments-intercept", "memory-arguments-slope")
_QUADRATIC = (
    "cpu-arguments-c0",
    "cpu-arguments-c1",
    "cpu-arguments-c2",
    "memory-arguments-intercept",
    "memory-arguments-slope",
)

Layout = Tuple[Tuple[str, Tuple[str, ...]], ...]

_CEK_MACHINE: Layout = tuple(
    (f"cek{step}Cost", _CEK)
    for step in ("Apply", "Builtin", "Const", "Delay", "Force", "Lam", "Startup", "Var")
)

_CONSTANT_BUILTINS_A: Layout = tuple(
    (name, _CONSTANT)
    for name in ("fstPair", "headList", "iData", "ifThenElse", "indexByteString", "lengthOfByteString")
)
_COMPARISONS: Layout = tuple(
    (name, _CPU_LINEAR)
    for name in ("lessThanByteString", "lessThanEqualsByteString", "lessThanEqualsInteger", "lessThanInteger")
)
_CONSTANT_BUILTINS_B: Layout = tuple(
    (name, _CONSTANT)
    for name in ("listData", "mapData", "mkCons", "mkNilData", "mkNilPairData", "mkPairData")
)
_CONSTANT_BUILTINS_C: Layout = tuple(
    (name, _CONSTANT)
    for name in ("tailList", "trace", "unBData", "unConstrData", "unIData", "unListData", "unMapData")
)


def _plutus_v1_v2_layout(v2: bool) -> Layout:
    return (
        ("addInteger", _LINEAR),
        ("appendByteString", _LINEAR),
        ("appendString", _LINEAR),
        ("bData", _CONSTANT),
        ("blake2b_256", _CPU_LINEAR),
        *_CEK_MACHINE,
        ("chooseData", _CONSTANT),
        ("chooseList", _CONSTANT),
        ("chooseUnit", _CONSTANT),
        ("consByteString", _LINEAR),
        ("constrData", _CONSTANT),
        ("decodeUtf8", _LINEAR),
        ("divideInteger", _DIVISION),
        ("encodeUtf8", _LINEAR),
        ("equalsByteString", _CPU_ON_DIAGONAL),
        ("equalsData", _CPU_LINEAR),
        ("equalsInteger", _CPU_LINEAR),
        ("equalsString", _CPU_ON_DIAGONAL),
        *_CONSTANT_BUILTINS_A,
        *_COMPARISONS,
        *_CONSTANT_BUILTINS_B,
        ("modInteger", _DIVISION),
        ("multiplyInteger", _LINEAR),
        ("nullList", _CONSTANT),
        ("quotientInteger", _DIVISION),
        ("remainderInteger", _DIVISION),
        *((("serialiseData", _LINEAR),) if v2 else ()),
        ("sha2_256", _CPU_LINEAR),
        ("sha3_256", _CPU_LINEAR),
        ("sliceByteString", _LINEAR),
        ("sndPair", _CONSTANT),
        ("subtractInteger", _LINEAR),
        *_CONSTANT_BUILTINS_C,
        *((("verifyEcdsaSecp256k1Signature", _CONSTANT),) if v2 else ()),
        ("verifyEd25519Signature", _CPU_LINEAR),
        *((("verifySchnorrSecp256k1Signature", _CPU_LINEAR),) if v2 else ()),
    )


def _bls_group(group: str) -> Layout:
    return (
        (f"bls12_381_{group}_add", _CONSTANT),
        (f"bls12_381_{group}_compress", _CONSTANT),
        (f"bls12_381_{group}_equal", _CONSTANT),
        (f"bls12_381_{group}_hashToGroup", _CPU_LINEAR),
        (f"bls12_381_{group}_neg", _CONSTANT),
        (f"bls12_381_{group}_scalarMul", _CPU_LINEAR),
        (f"bls12_381_{group}_uncompress", _CONSTANT),
    )


_PLUTUS_V3_LAYOUT: Layout = (
    ("addInteger", _LINEAR),
    ("appendByteString", _LINEAR),
    ("appendString", _LINEAR),
    ("bData", _CONSTANT),
    ("blake2b_256", _CPU_LINEAR),
    *_CEK_MACHINE,
    ("chooseData", _CONSTANT),
    ("chooseList", _CONSTANT),
    ("chooseUnit", _CONSTANT),
    ("consByteString", _LINEAR),
    ("constrData", _CONSTANT),
    ("decodeUtf8", _LINEAR),
    ("divideInteger", _DIVISION_V3),
    ("encodeUtf8", _LINEAR),
    ("equalsByteString", _CPU_ON_DIAGONAL),
    ("equalsData", _CPU_LINEAR),
    ("equalsInteger", _CPU_LINEAR),
    ("equalsString", _CPU_ON_DIAGONAL),
    *_CONSTANT_BUILTINS_A,
    *_COMPARISONS,
    *_CONSTANT_BUILTINS_B,
    ("modInteger", _MODULO_V3),
    ("multiplyInteger", _LINEAR),
    ("nullList", _CONSTANT),
    ("quotientInteger", _DIVISION_V3),
    ("remainderInteger", _MODULO_V3),
    ("serialiseData", _LINEAR),
    ("sha2_256", _CPU_LINEAR),
    ("sha3_256", _CPU_LINEAR),
    ("sliceByteString", _LINEAR),
    ("sndPair", _CONSTANT),
    ("subtractInteger", _LINEAR),
    *_CONSTANT_BUILTINS_C,
    ("verifyEcdsaSecp256k1Signature", _CONSTANT),
    ("verifyEd25519Signature", _CPU_LINEAR),
    ("verifySchnorrSecp256k1Signature", _CPU_LINEAR),
    ("cekConstrCost", _CEK),
    ("cekCaseCost", _CEK),
    *_bls_group("G1"),
    *_bls_group("G2"),
    ("bls12_381_finalVerify", _CONSTANT),
    ("bls12_381_millerLoop", _CONSTANT),
    ("bls12_381_mulMlResult", _CONSTANT),
    ("keccak_256", _CPU_LINEAR),
    ("blake2b_224", _CPU_LINEAR),
    ("integerToByteString", _QUADRATIC),
    ("byteStringToInteger", _QUADRATIC),
)


def _expand(layout: Layout) -> Tuple[str, ...]:
    return tuple(f"{builtin}-{suffix}" for builtin, suffixes in layout for suffix in suffixes)


PLUTUS_V1_NAMES = _expand(_plutus_v1_v2_layout(v2=False))
PLUTUS_V2_NAMES = _expand(_plutus_v1_v2_layout(v2=True))
PLUTUS_V3_NAMES = _expand(_PLUTUS_V3_LAYOUT)

# Mainnet values after the Plomin hard fork (protocol version 10).
# Revalidate on every protocol upgrade that touches the V3 cost model.
PLUTUS_V3_PATCHES_REVISION = "plomin-pv10"
PLUTUS_V3_PATCHES: Dict[str, int] = {
    "andByteString-cpu-arguments-intercept": 100181,
    "andByteString-cpu-arguments-slope1": 726,
    "andByteString-cpu-arguments-slope2": 719,
    "andByteString-memory-arguments-intercept": 0,
    "andByteString-memory-arguments-slope": 1,
    "orByteString-cpu-arguments-intercept": 100181,
    "orByteString-cpu-arguments-slope1": 726,
    "orByteString-cpu-arguments-slope2": 719,
    "orByteString-memory-arguments-intercept": 0,
    "orByteString-memory-arguments-slope": 1,
    "xorByteString-cpu-arguments-intercept": 100181,
    "xorByteString-cpu-arguments-slope1": 726,
    "xorByteString-cpu-arguments-slope2": 719,
    "xorByteString-memory-arguments-intercept": 0,
    "xorByteString-memory-arguments-slope": 1,
    "complementByteString-cpu-arguments-intercept": 107878,
    "complementByteString-cpu-arguments-slope": 680,
    "complementByteString-memory-arguments-intercept": 0,
    "complementByteString-memory-arguments-slope": 1,
    "readBit-cpu-arguments": 95336,
    "readBit-memory-arguments": 1,
    "writeBits-cpu-arguments-intercept": 281145,
    "writeBits-cpu-arguments-slope": 18848,
    "writeBits-memory-arguments-intercept": 0,
    "writeBits-memory-arguments-slope": 1,
    "replicateByte-cpu-arguments-intercept": 180194,
    "replicateByte-cpu-arguments-slope": 159,
    "replicateByte-memory-arguments-intercept": 1,
    "replicateByte-memory-arguments-slope": 1,
    "shiftByteString-cpu-arguments-intercept": 158519,
    "shiftByteString-cpu-arguments-slope": 8942,
    "shiftByteString-memory-arguments-intercept": 0,
    "shiftByteString-memory-arguments-slope": 1,
    "rotateByteString-cpu-arguments-intercept": 159378,
    "rotateByteString-cpu-arguments-slope": 8813,
    "rotateByteString-memory-arguments-intercept": 0,
    "rotateByteString-memory-arguments-slope": 1,
    "countSetBits-cpu-arguments-intercept": 107490,
    "countSetBits-cpu-arguments-slope": 3298,
    "countSetBits-memory-arguments": 1,
    "findFirstSetBit-cpu-arguments-intercept": 106057,
    "findFirstSetBit-cpu-arguments-slope": 655,
    "findFirstSetBit-memory-arguments": 1,
    "ripemd_160-cpu-arguments-intercept": 1964219,
    "ripemd_160-cpu-arguments-slope": 24520,
    "ripemd_160-memory-arguments": 3,
}


@dataclass(frozen=True)
class CostModelSchema:
    version: int
    wire_key: str
    names: Tuple[str, ...]
    patches: Mapping[str, int] = field(default_factory=dict)

    @property
    def all_names(self) -> Tuple[str, ...]:
        return self.names + tuple(n for n in self.patches if n not in self.names)


COST_MODEL_SCHEMAS: Dict[int, CostModelSchema] = {
    1: CostModelSchema(1, "plutusV1", PLUTUS_V1_NAMES),
    2: CostModelSchema(2, "plutusV2", PLUTUS_V2_NAMES),
    3: CostModelSchema(3, "plutusV3", PLUTUS_V3_NAMES, PLUTUS_V3_PATCHES),
}


def normalize_cost_model(values: Optional[Sequence[Any]], version: int) -> Dict[str, int]:
    """
    Map a positional cost-model array onto the version's parameter names.

    A short array maps only its prefix. Values past the end of the name list
    are not mapped (logged). Anything that is not a sequence gives {}.
    """
    schema = COST_MODEL_SCHEMAS.get(version)
    if schema is None:
        raise ValueError(f"Unknown Plutus version: {version}")
    if values is None or isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        return {}

    if len(values) > len(schema.names):
        logger.warning(
            f"PlutusV{version} cost model has {len(values)} values but only {len(schema.names)} "
            f"known names; trailing {len(values) - len(schema.names)} values not mapped"
        )
    mapped = {name: to_int(value, name) for name, value in zip(schema.names, values)}
    mapped.update(schema.patches)
    return mapped


def _values_of(container: Any) -> Any:
    if isinstance(container, Mapping):
        return container.get("values")
    return container


def normalize_cost_models(container: Optional[Mapping[str, Any]]) -> Dict[int, Dict[str, int]]:
    """Normalize every Plutus version independently; one bad version yields {} for that version only."""
    container = container or {}
    models: Dict[int, Dict[str, int]] = {}
    for version, schema in COST_MODEL_SCHEMAS.items():
        try:
            models[version] = normalize_cost_model(_values_of(container.get(schema.wire_key)), version)
        except (MalformedRecord, TypeError, ValueError) as e:
            logger.warning(f"Dropping PlutusV{version} cost model: {e}")
            models[version] = {}
    return models


def expected_names(version: int) -> Iterable[str]:
    """Every key a full-length cost model of this version maps to."""
    return COST_MODEL_SCHEMAS[version].all_names
