"""Chain query client protocol for the UTxO RPC indexing service."""

from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Sequence, Tuple


class ChainQueryClient(Protocol):
    """
    Interface for the remote indexing service (UTxO RPC).

    Query methods return raw UTxO records as decoded by u5c.decoding:
        {"txoRef": {"hash": ..., "index": int}, "cardano": {...}}
    ("parsedValued" in place of "cardano" is accepted too.)
    Byte arguments are raw bytes; asset filters are policy id + asset name bytes,
    and a bare policy id matches every asset under it.
    """

    async def search_utxos_by_address(self, address: bytes, asset: Optional[bytes] = None) -> List[dict]:
        """UTxOs at an exact address, optionally holding an asset."""
        ...

    async def search_utxos_by_payment_part(self, credential: bytes, asset: Optional[bytes] = None) -> List[dict]:
        """UTxOs whose address payment part matches the credential hash."""
        ...

    async def search_utxos_by_delegation_part(self, credential: bytes, asset: Optional[bytes] = None) -> List[dict]:
        """UTxOs whose address delegation part matches the credential hash."""
        ...

    async def search_utxos_by_asset(self, asset: bytes) -> List[dict]:
        """UTxOs holding an asset, anywhere."""
        ...

    async def read_utxos(self, refs: Sequence[Tuple[bytes, int]]) -> List[dict]:
        """UTxOs for (tx hash, output index) pairs; unknown references are simply absent."""
        ...

    async def read_params(self) -> Optional[Dict[str, Any]]:
        ...

    async def submit_tx(self, tx: bytes) -> bytes:
        """Submit a signed transaction; returns its hash."""
        ...

    def wait_for_tx(self, tx_hash: bytes) -> AsyncIterator[Any]:
        """Stream status stages for a transaction until the server ends the stream."""
        ...

    async def evaluate_tx(self, tx: bytes) -> Dict[str, Any]:
        ...
