"""Transaction submission, confirmation and evaluation."""

from .controller import SubmissionController, parse_stage, tx_bytes
from .evaluation import Evaluator, map_eval_report, merge_additional_utxos, purpose_to_tag

__all__ = [
    "SubmissionController", "parse_stage", "tx_bytes",
    "Evaluator", "map_eval_report", "merge_additional_utxos", "purpose_to_tag",
]
