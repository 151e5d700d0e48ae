"""Chain data fetching."""

from .client import ChainQueryClient
from .resolver import UtxoResolver, merge_by_out_ref, to_out_ref

__all__ = ["ChainQueryClient", "UtxoResolver", "merge_by_out_ref", "to_out_ref"]
