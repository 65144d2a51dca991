from __future__ import annotations

import pytest

from account_switch.errors import SerializationError
from account_switch.store.codec import decode_value, encode_value


@pytest.mark.parametrize(
    "value",
    [
        {"a": [1, 2, {"b": None}]},
        [1, "two", 3.5],
        42,
        True,
        "plain words",
        "",
        "null",
        '"quoted"',
        b"\x00\xffbinary",
        b"",
    ],
)
def test_decode_inverts_encode(value: object) -> None:
    assert decode_value(encode_value(value)) == value


def test_bytearray_and_memoryview_decode_as_bytes() -> None:
    assert decode_value(encode_value(bytearray(b"ab"))) == b"ab"
    assert decode_value(encode_value(memoryview(b"cd"))) == b"cd"


def test_unstorable_value_raises() -> None:
    with pytest.raises(SerializationError):
        encode_value(object())


def test_decode_blob_column() -> None:
    assert decode_value(b'{"x": 1}') == {"x": 1}


def test_decode_tag_with_extra_keys_is_left_alone() -> None:
    value = {"kind": "bytes", "data": [1], "extra": 1}
    assert decode_value(encode_value(value)) == value


def test_decode_tag_with_out_of_range_items_is_left_alone() -> None:
    assert decode_value('{"kind": "bytes", "data": [300]}') == {"kind": "bytes", "data": [300]}


def test_decode_none() -> None:
    assert decode_value(None) is None


@pytest.mark.parametrize(
    "value",
    [
        {"kind": "bytes", "data": [1, 2]},
        {"type": "Buffer", "data": []},
        {"kind": "bytes", "data": (104, 105)},
    ],
)
def test_mapping_shaped_like_bytes_tag_is_rejected(value: dict) -> None:
    with pytest.raises(SerializationError, match="bytes tag"):
        encode_value(value)
