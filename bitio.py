"""
Побитовый ввод/вывод поверх файлов и буферов в памяти.
Биты читаются и пишутся начиная со старшего.
"""

import io
from typing import BinaryIO, Optional, Union


EOF = -1
MAX_WRITE_BITS = 32


class BitInputStream:
    def __init__(self, source: Union[str, bytes, bytearray, BinaryIO]):
        self._owns_file = False

        if isinstance(source, (bytes, bytearray)):
            self.stream = io.BytesIO(bytes(source))
        elif isinstance(source, str):
            self.stream = open(source, 'rb')
            self._owns_file = True
        else:
            self.stream = source

        # начало логического потока, сюда возвращает reset()
        self.start = self.stream.tell() if self._seekable() else None

        self.buffer = 0
        self.bit_count = 0
        self.bits_read = 0

    def read_bits(self, n: int) -> int:
        value = 0
        needed = n

        while needed > 0:
            if self.bit_count == 0:
                byte = self.stream.read(1)
                if not byte:
                    return EOF
                self.buffer = byte[0]
                self.bit_count = 8

            take = min(needed, self.bit_count)
            shift = self.bit_count - take
            value = (value << take) | ((self.buffer >> shift) & ((1 << take) - 1))
            self.bit_count -= take
            needed -= take

        self.bits_read += n
        return value

    def read_bit(self) -> int:
        return self.read_bits(1)

    def _seekable(self) -> bool:
        seekable = getattr(self.stream, 'seekable', None)
        return seekable is not None and seekable()

    def reset(self):
        if self.start is None:
            raise ValueError("Input stream cannot be rewound")

        self.stream.seek(self.start)
        self.buffer = 0
        self.bit_count = 0

    def close(self):
        if self._owns_file:
            self.stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class BitOutputStream:
    def __init__(self, sink: Union[str, BinaryIO, None] = None):
        self._owns_file = False

        if sink is None:
            self.stream = io.BytesIO()
        elif isinstance(sink, str):
            self.stream = open(sink, 'wb')
            self._owns_file = True
        else:
            self.stream = sink

        self.buffer = 0
        self.bit_count = 0
        self.bits_written = 0
        self.closed = False

    def write_bits(self, n: int, value: int):
        if self.closed:
            raise ValueError("Write to closed bit stream")
        if n < 1 or n > MAX_WRITE_BITS:
            raise ValueError(f"Bit count must be in 1..{MAX_WRITE_BITS}, got {n}")

        value &= (1 << n) - 1
        self.buffer = (self.buffer << n) | value
        self.bit_count += n
        self.bits_written += n

        if self.bit_count >= 8:
            out = bytearray()
            while self.bit_count >= 8:
                self.bit_count -= 8
                out.append((self.buffer >> self.bit_count) & 0xff)
            self.buffer &= (1 << self.bit_count) - 1
            self.stream.write(bytes(out))

    def getvalue(self) -> bytes:
        return self.stream.getvalue()

    def close(self):
        if self.closed:
            return

        if self.bit_count > 0:
            padding = 8 - self.bit_count
            self.stream.write(bytes([(self.buffer << padding) & 0xff]))
            self.buffer = 0
            self.bit_count = 0

        self.stream.flush()
        if self._owns_file:
            self.stream.close()
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
