"""
Реализует кодирование Хаффмана для побайтового сжатия потока.
Дерево кодов записывается в заголовок целиком, поэтому распаковка
не зависит от того, как при сжатии разрешались равные веса.
"""

import heapq
from typing import List, Optional, Tuple

from bitio import BitInputStream, BitOutputStream, EOF, MAX_WRITE_BITS
from format import (
    ALPH_SIZE, BITS_PER_WORD, LEAF_VALUE_BITS, PSEUDO_EOF,
    FormatError, MissingCodeError, TruncatedBodyError, TruncatedHeaderError,
)


class HuffmanNode:
    def __init__(self, value: int = -1, weight: int = 0,
                 left: Optional['HuffmanNode'] = None,
                 right: Optional['HuffmanNode'] = None):
        self.value = value
        self.weight = weight
        self.left = left
        self.right = right

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __lt__(self, other):
        return self.weight < other.weight

    def __repr__(self):
        if self.is_leaf:
            return f"Leaf({self.value}, w={self.weight})"
        return f"Node(w={self.weight})"


def read_for_counts(bit_in: BitInputStream) -> List[int]:
    counts = [0] * (ALPH_SIZE + 1)

    while True:
        value = bit_in.read_bits(BITS_PER_WORD)
        if value == EOF:
            break
        counts[value] += 1

    counts[PSEUDO_EOF] = 1
    return counts


def make_tree_from_counts(counts: List[int]) -> HuffmanNode:
    heap = [HuffmanNode(value=symbol, weight=count)
            for symbol, count in enumerate(counts) if count > 0]
    if not heap:
        raise ValueError("Frequency table has no nonzero entries")

    heapq.heapify(heap)

    while len(heap) > 1:
        left = heapq.heappop(heap)
        right = heapq.heappop(heap)

        parent = HuffmanNode(weight=left.weight + right.weight,
                             left=left, right=right)
        heapq.heappush(heap, parent)

    return heap[0]


def make_codings_from_tree(root: HuffmanNode) -> List[Optional[str]]:
    codings: List[Optional[str]] = [None] * (ALPH_SIZE + 1)

    # единственный лист получает код из одного бита
    if root.is_leaf:
        codings[root.value] = '0'
        return codings

    def traverse(node: HuffmanNode, path: str):
        if node.is_leaf:
            codings[node.value] = path
            return

        traverse(node.left, path + '0')
        traverse(node.right, path + '1')

    traverse(root, '')
    return codings


def write_header(root: HuffmanNode, bit_out: BitOutputStream):
    if root.is_leaf:
        bit_out.write_bits(1, 1)
        bit_out.write_bits(LEAF_VALUE_BITS, root.value)
    else:
        bit_out.write_bits(1, 0)
        write_header(root.left, bit_out)
        write_header(root.right, bit_out)


def read_tree_header(bit_in: BitInputStream, depth: int = 0) -> HuffmanNode:
    # дерево из 257 листьев не бывает глубже 256
    if depth > ALPH_SIZE:
        raise FormatError(f"Tree header nested deeper than {ALPH_SIZE} levels")

    bit = bit_in.read_bit()
    if bit == EOF:
        raise TruncatedHeaderError("Input ended while reading tree header")

    if bit == 0:
        left = read_tree_header(bit_in, depth + 1)
        right = read_tree_header(bit_in, depth + 1)
        return HuffmanNode(left=left, right=right)

    value = bit_in.read_bits(LEAF_VALUE_BITS)
    if value == EOF:
        raise TruncatedHeaderError("Input ended while reading leaf value")
    if value > PSEUDO_EOF:
        raise FormatError(f"Illegal leaf value in tree header: {value}")

    return HuffmanNode(value=value)


def _code_chunks(code: str) -> List[Tuple[int, int]]:
    chunks = []
    for start in range(0, len(code), MAX_WRITE_BITS):
        part = code[start:start + MAX_WRITE_BITS]
        chunks.append((len(part), int(part, 2)))
    return chunks


def write_compressed_bits(codings: List[Optional[str]],
                          bit_in: BitInputStream,
                          bit_out: BitOutputStream):
    chunks: List[Optional[List[Tuple[int, int]]]] = [
        _code_chunks(code) if code else None for code in codings
    ]

    def emit(symbol: int):
        parts = chunks[symbol]
        if parts is None:
            raise MissingCodeError(f"No code for symbol {symbol}")
        for length, value in parts:
            bit_out.write_bits(length, value)

    while True:
        value = bit_in.read_bits(BITS_PER_WORD)
        if value == EOF:
            break
        emit(value)

    emit(PSEUDO_EOF)


def read_compressed_bits(root: HuffmanNode,
                         bit_in: BitInputStream,
                         bit_out: BitOutputStream) -> int:
    current = root
    emitted = 0

    while True:
        bit = bit_in.read_bit()
        if bit == EOF:
            raise TruncatedBodyError("Bad input, no PSEUDO_EOF before end of stream")

        if not root.is_leaf:
            current = current.right if bit else current.left

        if current.is_leaf:
            if current.value == PSEUDO_EOF:
                return emitted
            bit_out.write_bits(BITS_PER_WORD, current.value)
            emitted += 1
            current = root


def leaves(root: HuffmanNode) -> List[int]:
    if root.is_leaf:
        return [root.value]
    return leaves(root.left) + leaves(root.right)


def tree_depth(root: HuffmanNode) -> int:
    if root.is_leaf:
        return 0
    return 1 + max(tree_depth(root.left), tree_depth(root.right))
