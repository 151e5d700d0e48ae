"""Protocol parameters and Plutus cost models."""

from .cost_models import (
    COST_MODEL_SCHEMAS,
    PLUTUS_V1_NAMES,
    PLUTUS_V2_NAMES,
    PLUTUS_V3_NAMES,
    PLUTUS_V3_PATCHES,
    PLUTUS_V3_PATCHES_REVISION,
    CostModelSchema,
    expected_names,
    normalize_cost_model,
    normalize_cost_models,
)
from .mapper import PARAMETER_DEFAULTS, ParameterDefault, map_protocol_parameters

__all__ = [
    "COST_MODEL_SCHEMAS", "PLUTUS_V1_NAMES", "PLUTUS_V2_NAMES", "PLUTUS_V3_NAMES",
    "PLUTUS_V3_PATCHES", "PLUTUS_V3_PATCHES_REVISION", "CostModelSchema",
    "expected_names", "normalize_cost_model", "normalize_cost_models",
    "PARAMETER_DEFAULTS", "ParameterDefault", "map_protocol_parameters",
]
