"""UTxO RPC transport."""

from .records import message_to_record
from .u5c_client import U5CClient

__all__ = ["U5CClient", "message_to_record"]
