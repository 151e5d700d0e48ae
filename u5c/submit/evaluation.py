"""
Script evaluation.

Outputs the indexer cannot see yet (built but unsubmitted) are appended to the
transaction body before evaluation, so the evaluator can resolve them.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

from pycardano import Transaction

from u5c.decoding import to_int
from u5c.fetching.client import ChainQueryClient
from u5c.types import EvalRedeemer, RedeemerTag, UTxO
from .controller import tx_bytes

logger = logging.getLogger(__name__)

PURPOSE_TAGS = {
    0: RedeemerTag.SPEND,
    1: RedeemerTag.MINT,
    2: RedeemerTag.PUBLISH,
    3: RedeemerTag.WITHDRAW,
    4: RedeemerTag.VOTE,
    5: RedeemerTag.PROPOSE,
}

# v1alpha enum names that differ from the tag names
PURPOSE_ALIASES = {
    "cert": RedeemerTag.PUBLISH,
    "reward": RedeemerTag.WITHDRAW,
}


def purpose_to_tag(code: Any) -> RedeemerTag:
    """Purpose code (number, or enum name as in protobuf JSON) -> tag; UNKNOWN if unrecognized."""
    tag = None
    if isinstance(code, int) and not isinstance(code, bool):
        tag = PURPOSE_TAGS.get(code)
    elif isinstance(code, str):
        name = code.lower()
        name = name[len("redeemer_purpose_"):] if name.startswith("redeemer_purpose_") else name
        tag = PURPOSE_ALIASES.get(name) or next((t for t in PURPOSE_TAGS.values() if t.value == name), None)
    if tag is None:
        logger.error(f"Unknown redeemer purpose {code!r} in evaluation report")
        return RedeemerTag.UNKNOWN
    return tag


def merge_additional_utxos(tx: Union[bytes, str], utxos: Iterable[UTxO]) -> bytes:
    """Append each UTxO's input and output to the transaction body."""
    transaction = Transaction.from_cbor(tx_bytes(tx))
    body = transaction.transaction_body
    for utxo in utxos:
        converted = utxo.to_pycardano()
        body.inputs.append(converted.input)
        body.outputs.append(converted.output)
    return transaction.to_cbor()


def _redeemers_of(report: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    # {"report": [{"chain": {"value": ...}}]} (SDK), {"report": {"cardano": ...}} (gRPC) or flat
    chain: Any = report.get("report", report)
    if isinstance(chain, list):
        chain = chain[0] if chain else {}
    if isinstance(chain, Mapping):
        chain = chain.get("chain", chain)
    if isinstance(chain, Mapping):
        chain = chain.get("value") or chain.get("cardano") or chain
    redeemers = chain.get("redeemers") if isinstance(chain, Mapping) else None
    return redeemers if isinstance(redeemers, list) else []


def map_eval_report(report: Optional[Mapping[str, Any]]) -> List[EvalRedeemer]:
    """Per-redeemer execution units from an evalTx report."""
    results = []
    for redeemer in _redeemers_of(report or {}):
        ex_units = redeemer.get("exUnits") or {}
        results.append(EvalRedeemer(
            redeemer_index=to_int(redeemer.get("index", 0), "index"),
            redeemer_tag=purpose_to_tag(redeemer.get("purpose", 0)),
            mem=to_int(ex_units.get("memory", 0), "exUnits.memory"),
            steps=to_int(ex_units.get("steps", 0), "exUnits.steps"),
        ))
    return results


class Evaluator:
    """Estimates script execution units through the service."""

    def __init__(self, client: ChainQueryClient):
        self.client = client

    async def evaluate_tx(self, tx: Union[bytes, str], additional_utxos: Optional[Iterable[UTxO]] = None) -> List[EvalRedeemer]:
        raw = merge_additional_utxos(tx, additional_utxos) if additional_utxos else tx_bytes(tx)
        redeemers = map_eval_report(await self.client.evaluate_tx(raw))
        for r in redeemers:
            logger.debug(f"Redeemer {r.redeemer_tag.value}[{r.redeemer_index}]: mem={r.mem} steps={r.steps}")
        return redeemers
