"""Raw protocol parameter snapshot -> ProtocolParameters."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Set, Tuple, Union

from u5c.decoding import to_int
from u5c.errors import MalformedRecord, MissingParameterSnapshot
from u5c.params.cost_models import normalize_cost_models
from u5c.types import ProtocolParameters

logger = logging.getLogger(__name__)

Number = Union[int, float]


@dataclass(frozen=True)
class ParameterDefault:
    """Literal used when the service omits a field it does not expose yet."""
    field: str
    wire_key: str
    value: Number
    rational: bool = False


# Mainnet values at the time of writing. Drop an entry once the service
# reports the field; until then every use is logged and marked on the result.
PARAMETER_DEFAULTS: Tuple[ParameterDefault, ...] = (
    ParameterDefault("drep_deposit", "drepDeposit", 500_000_000),
    ParameterDefault("gov_action_deposit", "governanceActionDeposit", 100_000_000_000),
    ParameterDefault("min_fee_ref_script_cost_per_byte", "minFeeScriptRefCostPerByte", 15, rational=True),
    ParameterDefault("coins_per_utxo_byte", "coinsPerUtxoByte", 4310),
)


def _int(raw: Mapping[str, Any], key: str) -> int:
    # proto3 JSON omits zero values
    value = raw.get(key)
    return 0 if value is None else to_int(value, key)


def _ratio(value: Any, name: str) -> float:
    if not isinstance(value, Mapping):
        raise MalformedRecord(f"Protocol parameter {name} is not a rational: {value!r}")
    numerator = to_int(value.get("numerator", 0), f"{name}.numerator")
    denominator = to_int(value.get("denominator", 0), f"{name}.denominator")
    if denominator == 0:
        raise MalformedRecord(f"Protocol parameter {name} has zero denominator")
    return numerator / denominator


def _with_default(raw: Mapping[str, Any], default: ParameterDefault, defaulted: Set[str]) -> Number:
    value = raw.get(default.wire_key)
    if value is None:
        logger.warning(
            f"Service did not report {default.wire_key}; using default {default.field}={default.value}"
        )
        defaulted.add(default.field)
        return default.value
    convert: Callable[[Any, str], Number] = _ratio if default.rational else to_int
    return convert(value, default.wire_key)


def map_protocol_parameters(raw: Optional[Mapping[str, Any]]) -> ProtocolParameters:
    """
    Build the canonical snapshot from a raw readParams result.

    Raises MissingParameterSnapshot if the service returned nothing and
    MalformedRecord if execution prices are missing or invalid.
    """
    if not raw:
        raise MissingParameterSnapshot("Error fetching protocol parameters: empty response")

    defaulted: Set[str] = set()
    defaults = {d.field: _with_default(raw, d, defaulted) for d in PARAMETER_DEFAULTS}

    prices = raw.get("prices")
    if not isinstance(prices, Mapping):
        raise MalformedRecord("Protocol parameters are missing execution prices")
    max_tx_units = raw.get("maxExecutionUnitsPerTransaction") or {}
    version = raw.get("protocolVersion") or {}

    return ProtocolParameters(
        min_fee_a=_int(raw, "minFeeCoefficient"),
        min_fee_b=_int(raw, "minFeeConstant"),
        max_tx_size=_int(raw, "maxTxSize"),
        max_val_size=_int(raw, "maxValueSize"),
        max_block_size=_int(raw, "maxBlockBodySize"),
        max_block_header_size=_int(raw, "maxBlockHeaderSize"),
        key_deposit=_int(raw, "stakeKeyDeposit"),
        pool_deposit=_int(raw, "poolDeposit"),
        drep_deposit=defaults["drep_deposit"],
        gov_action_deposit=defaults["gov_action_deposit"],
        min_pool_cost=_int(raw, "minPoolCost"),
        price_mem=_ratio(prices.get("memory"), "prices.memory"),
        price_step=_ratio(prices.get("steps"), "prices.steps"),
        max_tx_ex_mem=_int(max_tx_units, "memory"),
        max_tx_ex_steps=_int(max_tx_units, "steps"),
        coins_per_utxo_byte=defaults["coins_per_utxo_byte"],
        collateral_percentage=_int(raw, "collateralPercentage"),
        max_collateral_inputs=_int(raw, "maxCollateralInputs"),
        min_fee_ref_script_cost_per_byte=defaults["min_fee_ref_script_cost_per_byte"],
        protocol_version=(_int(version, "major"), _int(version, "minor")),
        cost_models=normalize_cost_models(raw.get("costModels")),
        defaulted_fields=frozenset(defaulted),
    )
