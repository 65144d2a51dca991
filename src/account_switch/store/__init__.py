"""Key-value store access for the host's state database."""

from account_switch.store.codec import decode_value, encode_value
from account_switch.store.kv_store import TABLE_NAME, KeyValueStore

__all__ = [
    "KeyValueStore",
    "TABLE_NAME",
    "decode_value",
    "encode_value",
]
