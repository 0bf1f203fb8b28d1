"""
Главный класс для сжатия и распаковки файлов.
"""

import io
import os
from dataclasses import dataclass
from typing import List, Optional

from bitio import BitInputStream, BitOutputStream
from format import BITS_PER_INT, HUFF_TREE, FormatError, calculate_crc32
from huffman import leaves, read_tree_header, tree_depth
from processor import HuffProcessor


COMPRESSED_SUFFIX = '.hf'
RESTORED_SUFFIX = '.unhf'


@dataclass
class FileStats:
    source: str
    output: str
    original_size: int
    compressed_size: int

    @property
    def ratio(self) -> float:
        return (self.compressed_size / self.original_size * 100) if self.original_size > 0 else 0


class HuffArchiver:
    def __init__(self, debug_level: int = 0):
        self.processor = HuffProcessor(debug_level=debug_level)

    def compress_bytes(self, data: bytes) -> bytes:
        sink = io.BytesIO()
        self.processor.compress(BitInputStream(data), BitOutputStream(sink))
        return sink.getvalue()

    def decompress_bytes(self, data: bytes) -> bytes:
        sink = io.BytesIO()
        self.processor.decompress(BitInputStream(data), BitOutputStream(sink))
        return sink.getvalue()

    def _run(self, method, file_path: str, output_path: str):
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"{file_path} not found")
        if os.path.abspath(output_path) == os.path.abspath(file_path):
            raise ValueError(f"Output path {output_path} would overwrite the input")

        try:
            with BitInputStream(file_path) as bit_in:
                method(bit_in, BitOutputStream(output_path))
        except Exception:
            # недописанный файл не оставляем
            if os.path.exists(output_path):
                os.remove(output_path)
            raise

    def compress_file(self, file_path: str, output_path: Optional[str] = None) -> FileStats:
        if output_path is None:
            output_path = file_path + COMPRESSED_SUFFIX

        print(f"Compressing {file_path}...", end=" ")
        self._run(self.processor.compress, file_path, output_path)

        stats = FileStats(source=file_path, output=output_path,
                          original_size=os.path.getsize(file_path),
                          compressed_size=os.path.getsize(output_path))
        print(f"OK ({stats.ratio:.1f}%)")
        return stats

    def decompress_file(self, file_path: str, output_path: Optional[str] = None) -> FileStats:
        if output_path is None:
            if file_path.endswith(COMPRESSED_SUFFIX):
                output_path = file_path[:-len(COMPRESSED_SUFFIX)]
            else:
                output_path = file_path + RESTORED_SUFFIX

        print(f"Decompressing {file_path}...", end=" ")
        self._run(self.processor.decompress, file_path, output_path)

        stats = FileStats(source=file_path, output=output_path,
                          original_size=os.path.getsize(output_path),
                          compressed_size=os.path.getsize(file_path))
        print("OK")
        return stats

    def verify_file(self, file_path: str) -> bool:
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"{file_path} not found")

        with open(file_path, 'rb') as f:
            data = f.read()

        compressed = self.compress_bytes(data)
        restored = self.decompress_bytes(compressed)

        ok = len(restored) == len(data) and calculate_crc32(restored) == calculate_crc32(data)
        ratio = (len(compressed) / len(data) * 100) if data else 0
        status = "OK" if ok else "FAILED"
        print(f"{file_path:<40} {len(data):>12} {len(compressed):>12} {ratio:>7.1f}% {status}")
        return ok

    def verify_files(self, file_paths: List[str]) -> bool:
        print(f"{'Filename':<40} {'Original':>12} {'Compressed':>12} {'Ratio':>8}")
        print("-" * 80)

        results = []
        for file_path in file_paths:
            if not os.path.isfile(file_path):
                print(f"Warning: {file_path} not found, skipping")
                continue
            results.append(self.verify_file(file_path))

        return bool(results) and all(results)

    def info(self, file_path: str) -> dict:
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"{file_path} not found")

        with BitInputStream(file_path) as bit_in:
            magic = bit_in.read_bits(BITS_PER_INT)
            if magic != HUFF_TREE:
                raise FormatError(f"{file_path} is not a compressed stream")
            root = read_tree_header(bit_in)
            header_bits = bit_in.bits_read

        details = {
            'magic': magic,
            'leaf_count': len(leaves(root)),
            'tree_depth': tree_depth(root),
            'header_bits': header_bits,
            'compressed_size': os.path.getsize(file_path),
        }

        print(f"File:            {file_path}")
        print(f"Magic:           {magic:#010x}")
        print(f"Leaves:          {details['leaf_count']}")
        print(f"Tree depth:      {details['tree_depth']}")
        print(f"Header bits:     {header_bits}")
        print(f"Compressed size: {details['compressed_size']} bytes")
        return details
