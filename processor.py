"""
Сжатие и распаковка потока целиком: подсчёт частот, дерево, заголовок, тело.
Выходной поток закрывается при любом исходе.
"""

import sys
from dataclasses import dataclass

from bitio import BitInputStream, BitOutputStream, EOF
from format import BITS_PER_INT, DEBUG_HIGH, DEBUG_LOW, HUFF_TREE, FormatError
from huffman import (
    leaves, make_codings_from_tree, make_tree_from_counts, read_compressed_bits,
    read_for_counts, read_tree_header, write_compressed_bits, write_header,
)


@dataclass
class ProcessStats:
    bits_read: int
    bits_written: int
    leaf_count: int


class HuffProcessor:
    def __init__(self, debug_level: int = 0):
        self.debug_level = debug_level

    def _debug(self, level: int, message: str):
        if self.debug_level >= level:
            print(message, file=sys.stderr)

    def compress(self, bit_in: BitInputStream, bit_out: BitOutputStream) -> ProcessStats:
        try:
            counts = read_for_counts(bit_in)
            # второй проход по тем же данным не считаем
            bits_read = bit_in.bits_read
            root = make_tree_from_counts(counts)
            codings = make_codings_from_tree(root)

            if self.debug_level >= DEBUG_HIGH:
                for symbol, count in enumerate(counts):
                    if count:
                        self._debug(DEBUG_HIGH, f"count {symbol}: {count} code {codings[symbol]}")

            bit_out.write_bits(BITS_PER_INT, HUFF_TREE)
            write_header(root, bit_out)

            bit_in.reset()
            write_compressed_bits(codings, bit_in, bit_out)
        finally:
            bit_out.close()

        stats = ProcessStats(bits_read=bits_read,
                             bits_written=bit_out.bits_written,
                             leaf_count=sum(1 for code in codings if code))
        self._debug(DEBUG_LOW, f"compress: read {stats.bits_read} bits, "
                               f"wrote {stats.bits_written} bits, {stats.leaf_count} leaves")
        return stats

    def decompress(self, bit_in: BitInputStream, bit_out: BitOutputStream) -> ProcessStats:
        try:
            magic = bit_in.read_bits(BITS_PER_INT)
            if magic != HUFF_TREE:
                if magic == EOF:
                    raise FormatError("Input too short for magic number")
                raise FormatError(f"Illegal header starts with {magic:#010x}")

            root = read_tree_header(bit_in)
            symbols = leaves(root)
            self._debug(DEBUG_HIGH, f"header leaves: {symbols}")

            read_compressed_bits(root, bit_in, bit_out)
        finally:
            bit_out.close()

        stats = ProcessStats(bits_read=bit_in.bits_read,
                             bits_written=bit_out.bits_written,
                             leaf_count=len(symbols))
        self._debug(DEBUG_LOW, f"decompress: read {stats.bits_read} bits, "
                               f"wrote {stats.bits_written} bits, {stats.leaf_count} leaves")
        return stats
