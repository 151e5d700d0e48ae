"""Transaction submission and bounded confirmation waits."""

import asyncio
import logging
from typing import Any, Optional, Union

from u5c.errors import RpcError, SubmissionRejected
from u5c.fetching.client import ChainQueryClient
from u5c.types import ConfirmationOutcome, TxStage

logger = logging.getLogger(__name__)


def tx_bytes(tx: Union[bytes, str]) -> bytes:
    """Transaction CBOR from bytes or hex. Raises ValueError for bad hex."""
    if isinstance(tx, (bytes, bytearray)):
        return bytes(tx)
    return bytes.fromhex(tx)


def parse_stage(stage: Any) -> Optional[TxStage]:
    """Stage from its number or name ("CONFIRMED" / "STAGE_CONFIRMED"); None if unknown."""
    try:
        if isinstance(stage, int):
            return TxStage(stage)
        if isinstance(stage, str):
            name = stage.upper()
            return TxStage[name[len("STAGE_"):] if name.startswith("STAGE_") else name]
    except (KeyError, ValueError):
        pass
    logger.debug(f"Unknown transaction stage {stage!r}")
    return None


class SubmissionController:
    """
    Submitted -> Confirmed | TimedOut.

    A stream that ends without a confirmed stage counts as not confirmed, the
    same as a timeout.
    """

    def __init__(self, client: ChainQueryClient, confirmation_timeout: float = 120.0):
        self.client = client
        self.confirmation_timeout = confirmation_timeout

    async def submit_tx(self, tx: Union[bytes, str]) -> str:
        """Submit signed transaction CBOR; returns the transaction hash (hex)."""
        raw = tx_bytes(tx)
        try:
            tx_hash = await self.client.submit_tx(raw)
        except RpcError as e:
            logger.warning(f"Transaction rejected: {e.message}")
            raise SubmissionRejected(e.data if e.data is not None else e.message) from e
        tx_hash = tx_hash.hex() if isinstance(tx_hash, (bytes, bytearray)) else str(tx_hash)
        logger.info(f"Submitted transaction {tx_hash}")
        return tx_hash

    async def _watch(self, tx_hash: bytes) -> bool:
        stream = self.client.wait_for_tx(tx_hash)
        try:
            async for stage in stream:
                if parse_stage(stage) is TxStage.CONFIRMED:
                    return True
            return False
        finally:
            await stream.aclose()

    async def await_confirmation(self, tx_hash: str, timeout: Optional[float] = None) -> ConfirmationOutcome:
        """Wait up to timeout seconds for the confirmed stage; the stream is closed either way."""
        timeout = self.confirmation_timeout if timeout is None else timeout
        try:
            confirmed = await asyncio.wait_for(self._watch(bytes.fromhex(tx_hash)), timeout=timeout)
        except asyncio.TimeoutError:
            logger.info(f"Transaction {tx_hash[:16]}.. not confirmed within {timeout}s")
            return ConfirmationOutcome.TIMED_OUT
        if not confirmed:
            logger.info(f"Status stream for {tx_hash[:16]}.. ended without confirmation")
            return ConfirmationOutcome.TIMED_OUT
        return ConfirmationOutcome.CONFIRMED

    async def await_tx(self, tx_hash: str, timeout: Optional[float] = None) -> bool:
        return bool(await self.await_confirmation(tx_hash, timeout))
