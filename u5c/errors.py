"""Errors raised by the UTxO RPC provider."""

from typing import Any, Optional


class U5CError(Exception):
    """Base exception for provider errors."""


class MalformedRecord(U5CError):
    """A wire record is missing a required field or carries an invalid one."""


class UnsupportedScriptKind(U5CError):
    """A script reference carries a kind tag this provider does not know."""

    def __init__(self, kind: Any):
        self.kind = kind
        super().__init__(f"Unsupported script kind: {kind!r}")


class InvalidLookupKey(U5CError, ValueError):
    """An address, credential, unit or output reference cannot be used as a lookup key."""


class NotFound(U5CError, LookupError):
    """A single-item lookup matched nothing."""


class MissingParameterSnapshot(U5CError):
    """The service returned no protocol parameters."""


class SubmissionRejected(U5CError):
    """The network refused a submitted transaction."""

    def __init__(self, error: Any):
        self.error = error
        super().__init__(f"Transaction rejected: {error}")


class TransportFailure(U5CError):
    """Network-level failure talking to the service."""


class RpcError(TransportFailure):
    """The service answered a request with an error status."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        self.message = message
        self.code = code
        self.data = data
        super().__init__(f"RPC error {code}: {message}" if code is not None else f"RPC error: {message}")
