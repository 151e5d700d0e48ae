"""Wire record decoding."""

from .utxo import SCRIPT_KINDS, decode_utxo, decode_utxos, native_script, to_bytes, to_int

__all__ = ["SCRIPT_KINDS", "decode_utxo", "decode_utxos", "native_script", "to_bytes", "to_int"]
