"""
UTxO RPC chain-data provider for Cardano transaction builders.

Structure:
    u5c/
    ├── types.py          # UTxO, Assets, Credential, ProtocolParameters, ...
    ├── errors.py         # Error taxonomy
    ├── blockchain/       # gRPC client (utxorpc v1alpha)
    ├── decoding/         # Wire record -> UTxO
    ├── params/           # Protocol parameters, cost models
    ├── fetching/         # UTxO resolver
    ├── submit/           # Submission, confirmation, evaluation
    └── provider.py       # U5CProvider facade

Usage:
    from u5c import U5CProvider, Credential
    async with U5CProvider("http://localhost:50051") as provider:
        utxos = await provider.get_utxos("addr_test1...")
"""

from .errors import (
    InvalidLookupKey,
    MalformedRecord,
    MissingParameterSnapshot,
    NotFound,
    RpcError,
    SubmissionRejected,
    TransportFailure,
    U5CError,
    UnsupportedScriptKind,
)
from .provider import U5CProvider
from .types import (
    Assets,
    ConfirmationOutcome,
    Credential,
    EvalRedeemer,
    OutputReference,
    ProtocolParameters,
    RedeemerTag,
    ScriptKind,
    ScriptRef,
    Token,
    TxStage,
    UTxO,
)

__all__ = [
    # Provider
    "U5CProvider",
    # Types
    "Assets", "ConfirmationOutcome", "Credential", "EvalRedeemer", "OutputReference",
    "ProtocolParameters", "RedeemerTag", "ScriptKind", "ScriptRef", "Token", "TxStage", "UTxO",
    # Errors
    "U5CError", "MalformedRecord", "UnsupportedScriptKind", "InvalidLookupKey", "NotFound",
    "MissingParameterSnapshot", "SubmissionRejected", "TransportFailure", "RpcError",
]
