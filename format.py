"""
Определяет константы формата сжатого потока, уровни отладки и ошибки.
"""

import zlib


BITS_PER_WORD = 8
BITS_PER_INT = 32
ALPH_SIZE = 1 << BITS_PER_WORD
PSEUDO_EOF = ALPH_SIZE
LEAF_VALUE_BITS = BITS_PER_WORD + 1

HUFF_NUMBER = 0xface8200
HUFF_TREE = HUFF_NUMBER | 1

DEBUG_LOW = 1
DEBUG_HIGH = 4


class HuffException(Exception):
    pass


class FormatError(HuffException):
    """Поток не начинается с ожидаемого магического числа или заголовок некорректен."""


class TruncatedHeaderError(HuffException):
    """Входные данные закончились во время чтения дерева."""


class TruncatedBodyError(HuffException):
    """Входные данные закончились раньше кода PSEUDO_EOF."""


class MissingCodeError(HuffException):
    """Для прочитанного байта нет кода в таблице."""


def calculate_crc32(data: bytes) -> int:
    return zlib.crc32(data) & 0xffffffff
