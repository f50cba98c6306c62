from __future__ import annotations

import struct
from typing import Union

from .errors import SceneDecodeError

Buffer = Union[bytes, bytearray, memoryview]


class Reader:
    def __init__(self, data: Buffer, base: int = 0):
        self.data = data
        self.ofs = base

    def __len__(self) -> int:
        return len(self.data)

    def tell(self) -> int:
        return self.ofs

    def seek(self, ofs: int) -> None:
        if not (0 <= ofs <= len(self.data)):
            raise SceneDecodeError(f"seek out of range: {ofs:#x}")
        self.ofs = ofs

    def skip(self, n: int) -> None:
        self.seek(self.ofs + n)

    def _need(self, n: int) -> None:
        if self.ofs + n > len(self.data):
            raise SceneDecodeError(f"unexpected EOF at {self.ofs:#x} (need {n} bytes)")

    def u8(self) -> int:
        self._need(1)
        v = self.data[self.ofs]
        self.ofs += 1
        return v

    def u16(self) -> int:
        self._need(2)
        v = struct.unpack_from("<H", self.data, self.ofs)[0]
        self.ofs += 2
        return v

    def i16(self) -> int:
        self._need(2)
        v = struct.unpack_from("<h", self.data, self.ofs)[0]
        self.ofs += 2
        return v

    def u32(self) -> int:
        self._need(4)
        v = struct.unpack_from("<I", self.data, self.ofs)[0]
        self.ofs += 4
        return v

    def peek_u32(self, ofs: int) -> int:
        if not (0 <= ofs and ofs + 4 <= len(self.data)):
            raise SceneDecodeError(f"peek out of range: {ofs:#x}")
        return struct.unpack_from("<I", self.data, ofs)[0]

    def bytes(self, n: int) -> bytes:
        if n < 0:
            raise SceneDecodeError(f"negative length: {n}")
        self._need(n)
        b = bytes(self.data[self.ofs : self.ofs + n])
        self.ofs += n
        return b

    def view(self, n: int) -> memoryview:
        """Zero-copy slice of the underlying buffer."""
        if n < 0:
            raise SceneDecodeError(f"negative length: {n}")
        self._need(n)
        v = memoryview(self.data)[self.ofs : self.ofs + n]
        self.ofs += n
        return v
