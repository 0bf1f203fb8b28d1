import contextlib
import io
import os
import random
import shutil
import sys
import tempfile
import unittest

from bitio import BitInputStream, BitOutputStream, EOF
from format import (
    DEBUG_HIGH, DEBUG_LOW, HUFF_TREE, PSEUDO_EOF,
    FormatError, MissingCodeError, TruncatedBodyError, TruncatedHeaderError,
    calculate_crc32,
)
from huffman import (
    HuffmanNode, leaves, make_codings_from_tree, make_tree_from_counts,
    read_compressed_bits, read_for_counts, read_tree_header, tree_depth,
    write_compressed_bits, write_header,
)
from processor import HuffProcessor
from archiver import HuffArchiver
from main import main


def counts_from(pairs):
    counts = [0] * (PSEUDO_EOF + 1)
    for symbol, count in pairs.items():
        counts[symbol] = count
    return counts


def same_shape(a, b):
    if a.is_leaf or b.is_leaf:
        return a.is_leaf and b.is_leaf and a.value == b.value
    return same_shape(a.left, b.left) and same_shape(a.right, b.right)


def internal_weight_sum(node):
    if node.is_leaf:
        return 0
    return node.weight + internal_weight_sum(node.left) + internal_weight_sum(node.right)


class NonSeekable:
    def __init__(self, data):
        self.data = io.BytesIO(data)

    def read(self, n):
        return self.data.read(n)


class TestBitIO(unittest.TestCase):
    def test_write_packs_msb_first(self):
        out = BitOutputStream()
        out.write_bits(3, 0b101)
        out.write_bits(5, 0b00011)
        out.close()
        self.assertEqual(out.getvalue(), b'\xa3')

    def test_close_pads_partial_byte(self):
        out = BitOutputStream()
        out.write_bits(1, 1)
        out.close()
        self.assertEqual(out.getvalue(), b'\x80')
        self.assertEqual(out.bits_written, 1)

    def test_write_uses_low_bits_only(self):
        out = BitOutputStream()
        out.write_bits(4, 0xff3)
        out.write_bits(4, 0)
        out.close()
        self.assertEqual(out.getvalue(), b'\x30')

    def test_close_twice(self):
        out = BitOutputStream()
        out.write_bits(9, 0x1ff)
        out.close()
        out.close()
        self.assertEqual(out.getvalue(), b'\xff\x80')

    def test_invalid_width(self):
        out = BitOutputStream()
        with self.assertRaises(ValueError):
            out.write_bits(0, 0)
        with self.assertRaises(ValueError):
            out.write_bits(33, 0)

    def test_write_after_close(self):
        out = BitOutputStream()
        out.close()
        with self.assertRaises(ValueError):
            out.write_bits(1, 1)

    def test_read_across_bytes(self):
        bit_in = BitInputStream(b'\xa3\xff')
        self.assertEqual(bit_in.read_bits(3), 0b101)
        self.assertEqual(bit_in.read_bits(9), 0b000111111)
        self.assertEqual(bit_in.read_bits(4), 0b1111)
        self.assertEqual(bit_in.read_bit(), EOF)
        self.assertEqual(bit_in.bits_read, 16)

    def test_read_past_end(self):
        bit_in = BitInputStream(b'\x01')
        self.assertEqual(bit_in.read_bits(32), EOF)

    def test_reset(self):
        bit_in = BitInputStream(b'\xa3\x10')
        bit_in.read_bits(5)
        bit_in.reset()
        self.assertEqual(bit_in.read_bits(8), 0xa3)
        self.assertEqual(bit_in.read_bits(8), 0x10)

    def test_reset_returns_to_initial_position(self):
        handle = io.BytesIO(b'PREFIX\xa3\x10')
        handle.read(6)
        bit_in = BitInputStream(handle)
        self.assertEqual(bit_in.read_bits(8), 0xa3)
        bit_in.reset()
        self.assertEqual(bit_in.read_bits(8), 0xa3)
        self.assertEqual(bit_in.read_bits(8), 0x10)
        self.assertEqual(bit_in.read_bits(8), EOF)

    def test_reset_requires_seekable(self):
        bit_in = BitInputStream(NonSeekable(b'abc'))
        self.assertEqual(bit_in.read_bits(8), ord('a'))
        with self.assertRaises(ValueError):
            bit_in.reset()


class TestCodeTree(unittest.TestCase):
    def test_counts_include_eof(self):
        counts = read_for_counts(BitInputStream(b'aab'))
        self.assertEqual(len(counts), PSEUDO_EOF + 1)
        self.assertEqual(counts[ord('a')], 2)
        self.assertEqual(counts[ord('b')], 1)
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertEqual(sum(counts), 4)

    def test_counts_empty_input(self):
        counts = read_for_counts(BitInputStream(b''))
        self.assertEqual(sum(counts), 1)
        self.assertEqual(counts[PSEUDO_EOF], 1)

    def test_single_leaf_tree(self):
        root = make_tree_from_counts(counts_from({PSEUDO_EOF: 1}))
        self.assertTrue(root.is_leaf)
        codings = make_codings_from_tree(root)
        self.assertEqual(codings[PSEUDO_EOF], '0')
        self.assertEqual(sum(1 for c in codings if c), 1)

    def test_empty_table_rejected(self):
        with self.assertRaises(ValueError):
            make_tree_from_counts([0] * (PSEUDO_EOF + 1))

    def test_repeated_byte_codes(self):
        root = make_tree_from_counts(counts_from({0x41: 1000, PSEUDO_EOF: 1}))
        codings = make_codings_from_tree(root)
        self.assertEqual({codings[0x41], codings[PSEUDO_EOF]}, {'0', '1'})
        self.assertEqual(root.weight, 1001)

    def test_prefix_free(self):
        random.seed(7)
        data = bytes(random.choice(b'abcdefghij \n') for _ in range(2000))
        root = make_tree_from_counts(read_for_counts(BitInputStream(data)))
        codes = [c for c in make_codings_from_tree(root) if c]
        for a in codes:
            for b in codes:
                if a is not b:
                    self.assertFalse(b.startswith(a), f"{a} is a prefix of {b}")

    def test_optimal_cost(self):
        counts = counts_from({0: 45, 1: 13, 2: 12, 3: 16, 4: 9, 5: 5})
        root = make_tree_from_counts(counts)
        codings = make_codings_from_tree(root)
        total = sum(counts[s] * len(codings[s]) for s in range(6))
        self.assertEqual(total, 224)
        self.assertEqual(total, internal_weight_sum(root))

    def test_all_symbols_have_codes(self):
        counts = read_for_counts(BitInputStream(bytes(range(256))))
        root = make_tree_from_counts(counts)
        codings = make_codings_from_tree(root)
        self.assertEqual(len(leaves(root)), 257)
        self.assertTrue(all(codings[s] and len(codings[s]) >= 1 for s in range(257)))


class TestHeaderCodec(unittest.TestCase):
    def roundtrip(self, root):
        out = BitOutputStream()
        write_header(root, out)
        out.close()
        return read_tree_header(BitInputStream(out.getvalue()))

    def test_header_roundtrip(self):
        data = b"The quick brown fox jumps over the lazy dog"
        root = make_tree_from_counts(read_for_counts(BitInputStream(data)))
        restored = self.roundtrip(root)
        self.assertTrue(same_shape(root, restored))
        self.assertEqual(leaves(root), leaves(restored))

    def test_single_leaf_header(self):
        out = BitOutputStream()
        write_header(HuffmanNode(value=PSEUDO_EOF, weight=1), out)
        out.close()
        self.assertEqual(out.bits_written, 10)
        self.assertEqual(out.getvalue(), b'\xc0\x00')

    def test_truncated_header(self):
        with self.assertRaises(TruncatedHeaderError):
            read_tree_header(BitInputStream(b''))
        with self.assertRaises(TruncatedHeaderError):
            read_tree_header(BitInputStream(b'\x00'))
        with self.assertRaises(TruncatedHeaderError):
            read_tree_header(BitInputStream(b'\x80'))

    def test_illegal_leaf_value(self):
        with self.assertRaises(FormatError):
            read_tree_header(BitInputStream(b'\xff\xc0'))

    def test_nesting_limit(self):
        with self.assertRaises(FormatError):
            read_tree_header(BitInputStream(b'\x00' * 40))


class TestStreamCodec(unittest.TestCase):
    def encode(self, codings, data):
        out = BitOutputStream()
        write_compressed_bits(codings, BitInputStream(data), out)
        out.close()
        return out.getvalue()

    def test_encode_decode_body(self):
        data = b"abracadabra"
        root = make_tree_from_counts(read_for_counts(BitInputStream(data)))
        body = self.encode(make_codings_from_tree(root), data)

        out = BitOutputStream()
        emitted = read_compressed_bits(root, BitInputStream(body), out)
        out.close()
        self.assertEqual(emitted, len(data))
        self.assertEqual(out.getvalue(), data)

    def test_missing_code(self):
        with self.assertRaises(MissingCodeError):
            self.encode([None] * (PSEUDO_EOF + 1), b'A')

    def test_codes_longer_than_write_width(self):
        pairs = {i: 2 ** i for i in range(40)}
        pairs[PSEUDO_EOF] = 1
        root = make_tree_from_counts(counts_from(pairs))
        codings = make_codings_from_tree(root)
        self.assertGreater(max(len(c) for c in codings if c), 32)
        self.assertEqual(tree_depth(root), 40)

        data = bytes(range(40)) + bytes([0, 39, 1])
        body = self.encode(codings, data)
        out = BitOutputStream()
        read_compressed_bits(root, BitInputStream(body), out)
        out.close()
        self.assertEqual(out.getvalue(), data)

    def test_body_without_eof(self):
        root = make_tree_from_counts(counts_from({ord('x'): 10, PSEUDO_EOF: 1}))
        codings = make_codings_from_tree(root)
        body = bytes([0xff]) if codings[ord('x')] == '1' else bytes([0x00])
        with self.assertRaises(TruncatedBodyError):
            read_compressed_bits(root, BitInputStream(body), BitOutputStream())

    def test_single_leaf_decode(self):
        root = HuffmanNode(value=PSEUDO_EOF)
        out = BitOutputStream()
        self.assertEqual(read_compressed_bits(root, BitInputStream(b'\x00'), out), 0)
        with self.assertRaises(TruncatedBodyError):
            read_compressed_bits(root, BitInputStream(b''), BitOutputStream())


class TestProcessor(unittest.TestCase):
    def setUp(self):
        self.archiver = HuffArchiver()

    def test_empty_input(self):
        compressed = self.archiver.compress_bytes(b'')
        self.assertEqual(compressed, b'\xfa\xce\x82\x01\xc0\x00')
        self.assertEqual(self.archiver.decompress_bytes(compressed), b'')

    def test_repeated_byte(self):
        data = b'\x41' * 1000
        compressed = self.archiver.compress_bytes(data)
        # 32 + 21 бит заголовка + 1001 бит тела
        self.assertEqual(len(compressed), 132)
        self.assertEqual(self.archiver.decompress_bytes(compressed), data)

    def test_all_byte_values(self):
        data = bytes(range(256))
        compressed = self.archiver.compress_bytes(data)
        self.assertEqual(self.archiver.decompress_bytes(compressed), data)

    def test_random_data(self):
        random.seed(42)
        for n in (1, 2, 3, 100, 5000):
            data = bytes(random.getrandbits(8) for _ in range(n))
            compressed = self.archiver.compress_bytes(data)
            self.assertEqual(self.archiver.decompress_bytes(compressed), data)

    def test_text_compresses(self):
        data = b"Lorem ipsum dolor sit amet " * 200
        compressed = self.archiver.compress_bytes(data)
        self.assertLess(len(compressed), len(data))
        self.assertEqual(self.archiver.decompress_bytes(compressed), data)

    def test_deterministic_output(self):
        data = b"mississippi river banks"
        first = self.archiver.compress_bytes(data)
        second = HuffArchiver().compress_bytes(data)
        self.assertEqual(first, second)
        self.assertEqual(self.archiver.decompress_bytes(second), data)

    def test_compress_handle_after_prefix(self):
        for prefix in (b'aaa', b'PREFIX'):
            handle = io.BytesIO(prefix + b'abab')
            handle.read(len(prefix))
            sink = io.BytesIO()
            HuffProcessor().compress(BitInputStream(handle), BitOutputStream(sink))
            self.assertEqual(self.archiver.decompress_bytes(sink.getvalue()), b'abab')

    def test_decode_uses_tree_from_stream(self):
        data = b'abcabcab'
        built = make_tree_from_counts(read_for_counts(BitInputStream(data)))

        # перекошенное дерево над теми же символами
        skewed = HuffmanNode(left=HuffmanNode(value=ord('a')),
                             right=HuffmanNode(left=HuffmanNode(value=ord('b')),
                                               right=HuffmanNode(left=HuffmanNode(value=ord('c')),
                                                                 right=HuffmanNode(value=PSEUDO_EOF))))
        self.assertFalse(same_shape(built, skewed))

        out = BitOutputStream()
        out.write_bits(32, HUFF_TREE)
        write_header(skewed, out)
        write_compressed_bits(make_codings_from_tree(skewed), BitInputStream(data), out)
        out.close()

        self.assertNotEqual(out.getvalue(), self.archiver.compress_bytes(data))
        restored = BitOutputStream()
        HuffProcessor().decompress(BitInputStream(out.getvalue()), restored)
        self.assertEqual(restored.getvalue(), data)

    def test_flipped_magic(self):
        compressed = bytearray(self.archiver.compress_bytes(b"hello"))
        compressed[3] ^= 1
        with self.assertRaises(FormatError):
            self.archiver.decompress_bytes(bytes(compressed))

    def test_short_input(self):
        with self.assertRaises(FormatError):
            self.archiver.decompress_bytes(b'\xfa')
        with self.assertRaises(TruncatedHeaderError):
            self.archiver.decompress_bytes(HUFF_TREE.to_bytes(4, 'big'))

    def test_truncated_body(self):
        compressed = self.archiver.compress_bytes(b'This is a test' * 100)
        with self.assertRaises(TruncatedBodyError):
            self.archiver.decompress_bytes(compressed[:-3])

    def test_output_closed_on_error(self):
        out = BitOutputStream()
        with self.assertRaises(FormatError):
            HuffProcessor().decompress(BitInputStream(b'\x00\x00\x00\x00\x00'), out)
        self.assertTrue(out.closed)

    def test_compress_requires_rewind(self):
        out = BitOutputStream()
        with self.assertRaises(ValueError):
            HuffProcessor().compress(BitInputStream(NonSeekable(b'abc')), out)
        self.assertTrue(out.closed)

    def test_stats(self):
        stats = HuffProcessor().compress(BitInputStream(b''), BitOutputStream())
        self.assertEqual(stats.bits_written, 43)
        self.assertEqual(stats.leaf_count, 1)

        stats = HuffProcessor().compress(BitInputStream(b'ab'), BitOutputStream())
        self.assertEqual(stats.bits_read, 16)
        self.assertEqual(stats.leaf_count, 3)

    def test_debug_output(self):
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            HuffProcessor(debug_level=DEBUG_HIGH).compress(BitInputStream(b'ab'), BitOutputStream())
        self.assertIn("compress: read", err.getvalue())
        self.assertIn("count 97: 1 code", err.getvalue())

        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            HuffProcessor(debug_level=DEBUG_LOW).compress(BitInputStream(b'ab'), BitOutputStream())
        self.assertNotIn("count 97", err.getvalue())

        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            HuffProcessor().compress(BitInputStream(b'ab'), BitOutputStream())
        self.assertEqual(err.getvalue(), "")


class TestArchiver(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.archiver = HuffArchiver()

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def write(self, name, data):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def test_compress_decompress_file(self):
        data = b"Hello World! " * 100
        path = self.write("test.txt", data)

        stats = self.archiver.compress_file(path)
        self.assertEqual(stats.output, path + '.hf')
        self.assertEqual(stats.original_size, len(data))
        self.assertLess(stats.compressed_size, stats.original_size)

        os.remove(path)
        self.archiver.decompress_file(path + '.hf')
        with open(path, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_explicit_output_paths(self):
        path = self.write("data.bin", bytes(range(256)) * 4)
        packed = os.path.join(self.temp_dir, "packed")
        restored = os.path.join(self.temp_dir, "restored")

        self.archiver.compress_file(path, packed)
        stats = self.archiver.decompress_file(packed, restored)
        self.assertEqual(stats.output, restored)
        with open(restored, 'rb') as f:
            self.assertEqual(calculate_crc32(f.read()), calculate_crc32(bytes(range(256)) * 4))

    def test_default_restore_name(self):
        path = self.write("packed", self.archiver.compress_bytes(b"abc"))
        self.archiver.decompress_file(path)
        self.assertTrue(os.path.isfile(path + '.unhf'))

    def test_corrupt_file_leaves_no_output(self):
        path = self.write("bad.hf", b"not a compressed file")
        with self.assertRaises(FormatError):
            self.archiver.decompress_file(path)
        self.assertFalse(os.path.exists(os.path.join(self.temp_dir, "bad")))

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            self.archiver.compress_file(os.path.join(self.temp_dir, "nope"))

    def test_output_same_as_input(self):
        data = b"keep me intact"
        path = self.write("same.txt", data)
        with self.assertRaises(ValueError):
            self.archiver.compress_file(path, path)
        with self.assertRaises(ValueError):
            self.archiver.decompress_file(path, os.path.join(self.temp_dir, ".", "same.txt"))
        with open(path, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_verify(self):
        path = self.write("v.txt", b"verify me " * 50)
        self.assertTrue(self.archiver.verify_files([path]))
        self.assertFalse(self.archiver.verify_files([os.path.join(self.temp_dir, "nope")]))

    def test_info(self):
        path = self.write("i.txt", b"aab")
        self.archiver.compress_file(path)
        details = self.archiver.info(path + '.hf')
        self.assertEqual(details['magic'], HUFF_TREE)
        self.assertEqual(details['leaf_count'], 3)
        self.assertEqual(details['tree_depth'], 2)
        self.assertEqual(details['header_bits'], 32 + 2 + 3 * 10)

    def test_info_rejects_plain_file(self):
        path = self.write("plain.txt", b"plain text")
        with self.assertRaises(FormatError):
            self.archiver.info(path)


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_compress_and_decompress(self):
        path = os.path.join(self.temp_dir, "cli.txt")
        restored = os.path.join(self.temp_dir, "cli.out")
        with open(path, 'wb') as f:
            f.write(b"command line " * 20)

        self.assertEqual(main(['compress', path]), 0)
        self.assertEqual(main(['--debug', '1', 'decompress', path + '.hf', '-o', restored]), 0)
        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), b"command line " * 20)

    def test_errors_return_nonzero(self):
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            code = main(['decompress', os.path.join(self.temp_dir, "missing.hf")])
        self.assertEqual(code, 1)
        self.assertIn("Error:", err.getvalue())

    def test_no_command(self):
        with contextlib.redirect_stdout(io.StringIO()):
            self.assertEqual(main([]), 0)


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestBitIO))
    suite.addTests(loader.loadTestsFromTestCase(TestCodeTree))
    suite.addTests(loader.loadTestsFromTestCase(TestHeaderCodec))
    suite.addTests(loader.loadTestsFromTestCase(TestStreamCodec))
    suite.addTests(loader.loadTestsFromTestCase(TestProcessor))
    suite.addTests(loader.loadTestsFromTestCase(TestArchiver))
    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
