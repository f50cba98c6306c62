import struct

import pytest

from ff7scene.errors import SceneDecodeError
from ff7scene.reader import Reader


def test_reads_little_endian_fields_in_order():
    r = Reader(struct.pack("<BHhI", 7, 0xBEEF, -2, 0x12345678))
    assert r.u8() == 7
    assert r.u16() == 0xBEEF
    assert r.i16() == -2
    assert r.u32() == 0x12345678
    assert r.tell() == len(r)


def test_eof_raises_decode_error():
    r = Reader(b"\x01\x02\x03")
    with pytest.raises(SceneDecodeError):
        r.u32()


def test_seek_out_of_range():
    r = Reader(b"\x00" * 4)
    r.seek(4)
    with pytest.raises(SceneDecodeError):
        r.seek(5)


def test_peek_does_not_move():
    r = Reader(struct.pack("<II", 1, 0x10))
    assert r.peek_u32(4) == 0x10
    assert r.tell() == 0
    with pytest.raises(SceneDecodeError):
        r.peek_u32(6)


def test_view_is_zero_copy_slice():
    data = bytearray(b"abcdef")
    r = Reader(data)
    r.skip(2)
    v = r.view(3)
    assert bytes(v) == b"cde"
    data[2] = ord("X")
    assert bytes(v) == b"Xde"
    assert r.tell() == 5
