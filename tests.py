import unittest
import tempfile
import os
import sys
import io
import random
import shutil
from contextlib import redirect_stdout, redirect_stderr

from bitstream import BitInputStream, BitOutputStream, EOF
from format import (GrinHeader, MAGIC_NUMBER, BadMagicNumber, MalformedTree,
                    TruncatedStream, GrinFormatError)
from huffman import HuffmanTree, HuffmanNode, EOF_SYMBOL, SYMBOL_BITS
from grin import Grin, create_frequency_map, encode_bytes, decode_bytes
from main import main


def is_full_binary(node: HuffmanNode) -> bool:
    if node.is_leaf:
        return node.left is None and node.right is None
    if node.left is None or node.right is None:
        return False
    return is_full_binary(node.left) and is_full_binary(node.right)


def count_leaves(node: HuffmanNode) -> int:
    if node.is_leaf:
        return 1
    return count_leaves(node.left) + count_leaves(node.right)


def bits_to_str(stream: BitOutputStream) -> str:
    return ''.join(str(bit) for bit in stream.bits)


class TestBitStream(unittest.TestCase):
    def test_write_int_msb_first(self):
        stream = BitOutputStream()
        stream.write_int(5, 3)
        self.assertEqual(stream.bits, [1, 0, 1])
        self.assertEqual(stream.to_bytes(), b'\xa0')

    def test_write_bits_from_code(self):
        stream = BitOutputStream()
        stream.write_bits('0110')
        stream.write_bits('1')
        self.assertEqual(len(stream), 5)
        self.assertEqual(stream.to_bytes(), b'\x68')

    def test_write_int_too_wide(self):
        stream = BitOutputStream()
        with self.assertRaises(ValueError):
            stream.write_int(512, 9)

    def test_read_back(self):
        stream = BitInputStream(b'\xa0\xff')
        self.assertEqual(stream.read_int(3), 5)
        self.assertEqual(stream.read_bit(), 0)
        self.assertEqual(stream.bits_remaining(), 12)
        self.assertEqual(stream.read_int(12), 0xff)
        self.assertEqual(stream.read_bit(), EOF)

    def test_read_int_past_end(self):
        stream = BitInputStream(b'\x01')
        stream.read_bit()
        self.assertEqual(stream.read_int(8), EOF)
        self.assertEqual(stream.read_bit(), EOF)

    def test_empty_input(self):
        stream = BitInputStream(b'')
        self.assertEqual(stream.read_bit(), EOF)
        self.assertEqual(stream.read_int(32), EOF)
        self.assertEqual(BitOutputStream().to_bytes(), b'')


class TestHuffmanTree(unittest.TestCase):
    def test_sentinel_always_present(self):
        tree = HuffmanTree().build({97: 5, 98: 2})
        self.assertIn(EOF_SYMBOL, tree.codes)
        self.assertEqual(set(tree.codes), {97, 98, EOF_SYMBOL})

    def test_empty_table(self):
        tree = HuffmanTree().build({})
        self.assertTrue(tree.root.is_leaf)
        self.assertEqual(tree.root.symbol, EOF_SYMBOL)
        self.assertEqual(tree.codes, {EOF_SYMBOL: ''})

    def test_single_symbol(self):
        tree = HuffmanTree().build({0x41: 1000})
        self.assertEqual(count_leaves(tree.root), 2)
        self.assertEqual(tree.codes, {EOF_SYMBOL: '0', 0x41: '1'})

    def test_tie_break_is_fifo(self):
        tree = HuffmanTree().build({98: 1, 97: 1})
        self.assertEqual(tree.codes, {EOF_SYMBOL: '0', 97: '10', 98: '11'})

    def test_build_ignores_table_order(self):
        first = HuffmanTree().build({98: 3, 97: 3, 99: 1, 100: 7})
        second = HuffmanTree().build({100: 7, 99: 1, 97: 3, 98: 3})
        self.assertEqual(first.codes, second.codes)

    def test_frequent_symbols_get_short_codes(self):
        tree = HuffmanTree().build({97: 100, 98: 10, 99: 1})
        self.assertLess(len(tree.codes[97]), len(tree.codes[99]))

    def test_prefix_free_and_full_binary(self):
        random.seed(7)
        for _ in range(20):
            frequencies = {random.randint(0, 255): random.randint(0, 500)
                           for _ in range(random.randint(0, 60))}
            tree = HuffmanTree().build(frequencies)

            self.assertTrue(is_full_binary(tree.root))
            codes = list(tree.codes.values())
            for i, a in enumerate(codes):
                for j, b in enumerate(codes):
                    if i != j:
                        self.assertFalse(b.startswith(a), f"{a} is a prefix of {b}")

    def test_zero_frequencies(self):
        tree = HuffmanTree().build({1: 0, 2: 0})
        self.assertEqual(set(tree.codes), {1, 2, EOF_SYMBOL})
        self.assertTrue(is_full_binary(tree.root))


class TestTreeSerialization(unittest.TestCase):
    def roundtrip(self, tree: HuffmanTree) -> HuffmanTree:
        out = BitOutputStream()
        tree.serialize(out)
        return HuffmanTree.deserialize(BitInputStream(out.to_bytes()))

    def test_serialized_layout(self):
        tree = HuffmanTree().build({0x41: 3})
        out = BitOutputStream()
        tree.serialize(out)
        expected = '1' + '0' + format(EOF_SYMBOL, '09b') + '0' + format(0x41, '09b')
        self.assertEqual(bits_to_str(out), expected)

    def test_roundtrip_keeps_codes(self):
        frequencies = create_frequency_map(b"The quick brown fox jumps over the lazy dog")
        tree = HuffmanTree().build(frequencies)
        restored = self.roundtrip(tree)
        self.assertEqual(restored.codes, tree.codes)
        self.assertTrue(is_full_binary(restored.root))

    def test_roundtrip_all_symbols(self):
        tree = HuffmanTree().build({i: i + 1 for i in range(256)})
        restored = self.roundtrip(tree)
        self.assertEqual(len(restored.codes), 257)
        self.assertEqual(restored.codes, tree.codes)

    def test_roundtrip_sentinel_only(self):
        restored = self.roundtrip(HuffmanTree().build({}))
        self.assertEqual(restored.codes, {EOF_SYMBOL: ''})

    def test_truncated_tree(self):
        tree = HuffmanTree().build({97: 1, 98: 2, 99: 3})
        out = BitOutputStream()
        tree.serialize(out)
        data = out.to_bytes()
        with self.assertRaises(MalformedTree):
            HuffmanTree.deserialize(BitInputStream(data[:1]))

    def test_empty_tree_data(self):
        with self.assertRaises(MalformedTree):
            HuffmanTree.deserialize(BitInputStream(b''))

    def test_symbol_out_of_range(self):
        out = BitOutputStream()
        out.write_bit(0)
        out.write_int(300, SYMBOL_BITS)
        with self.assertRaises(MalformedTree):
            HuffmanTree.deserialize(BitInputStream(out.to_bytes()))

    def test_too_deep(self):
        with self.assertRaises(MalformedTree):
            HuffmanTree.deserialize(BitInputStream(b'\xff' * 100))


class TestHuffmanCoding(unittest.TestCase):
    def encode(self, tree: HuffmanTree, data: bytes) -> BitOutputStream:
        out = BitOutputStream()
        tree.encode(data, out)
        return out

    def test_payload_ends_with_sentinel(self):
        data = b"abracadabra"
        tree = HuffmanTree().build(create_frequency_map(data))
        out = self.encode(tree, data)

        expected = ''.join(tree.codes[b] for b in data) + tree.codes[EOF_SYMBOL]
        self.assertEqual(bits_to_str(out), expected)

    def test_decode_stops_at_sentinel(self):
        data = b"mississippi"
        tree = HuffmanTree().build(create_frequency_map(data))
        out = self.encode(tree, data)
        # мусор после EOF не должен попасть в результат
        out.write_bits(tree.codes[ord('s')] * 5)

        decoded = tree.decode(BitInputStream(out.to_bytes()))
        self.assertEqual(decoded, data)

    def test_unknown_byte(self):
        tree = HuffmanTree().build({97: 1})
        with self.assertRaises(LookupError):
            self.encode(tree, b"ab")

    def test_truncated_payload(self):
        data = b"hello world"
        tree = HuffmanTree().build(create_frequency_map(data))
        out = self.encode(tree, data)
        cut = (len(out) - len(tree.codes[EOF_SYMBOL])) // 8

        with self.assertRaises(TruncatedStream):
            tree.decode(BitInputStream(out.to_bytes()[:cut]))

    def test_sentinel_only_tree_decodes_nothing(self):
        tree = HuffmanTree().build({})
        self.assertEqual(tree.decode(BitInputStream(b'')), b'')

    def test_single_leaf_without_sentinel(self):
        tree = HuffmanTree(HuffmanNode(symbol=65))
        with self.assertRaises(MalformedTree):
            tree.decode(BitInputStream(b'\x00'))


class TestGrinFormat(unittest.TestCase):
    def test_magic_number_written_first(self):
        self.assertEqual(encode_bytes(b"x")[:4], MAGIC_NUMBER.to_bytes(4, 'big'))

    def test_header_roundtrip(self):
        out = BitOutputStream()
        GrinHeader().write(out)
        header = GrinHeader.read(BitInputStream(out.to_bytes()))
        self.assertEqual(header.magic, MAGIC_NUMBER)

    def test_bad_magic(self):
        data = bytearray(encode_bytes(b"some data"))
        data[3] ^= 0xff
        with self.assertRaises(BadMagicNumber):
            decode_bytes(bytes(data))

    def test_bad_magic_before_tree(self):
        with self.assertRaises(BadMagicNumber):
            decode_bytes(b'\x00\x00\x00\x00' + b'\xff' * 10)

    def test_short_header(self):
        with self.assertRaises(BadMagicNumber):
            decode_bytes(b'\x00\x00')
        with self.assertRaises(BadMagicNumber):
            decode_bytes(b'')

    def test_errors_are_value_errors(self):
        for error in (BadMagicNumber, MalformedTree, TruncatedStream):
            self.assertTrue(issubclass(error, GrinFormatError))
            self.assertTrue(issubclass(error, ValueError))

    def test_truncated_tree_in_file(self):
        data = encode_bytes(b"The quick brown fox")
        with self.assertRaises(MalformedTree):
            decode_bytes(data[:5])

    def test_truncated_file(self):
        data = b"Lorem ipsum dolor sit amet " * 20
        tree = HuffmanTree().build(create_frequency_map(data))
        out = BitOutputStream()
        GrinHeader().write(out)
        tree.serialize(out)
        tree.encode(data, out)
        cut = (len(out) - len(tree.codes[EOF_SYMBOL])) // 8

        with self.assertRaises(TruncatedStream):
            decode_bytes(encode_bytes(data)[:cut])


class TestRoundTrip(unittest.TestCase):
    def check(self, data: bytes):
        self.assertEqual(decode_bytes(encode_bytes(data)), data)

    def test_empty(self):
        encoded = encode_bytes(b"")
        # 32 бита заголовка + 10 бит дерева
        self.assertEqual(len(encoded), 6)
        self.assertEqual(decode_bytes(encoded), b"")

    def test_single_byte(self):
        self.check(b"A")

    def test_repeated_byte(self):
        data = b"\x41" * 1000
        encoded = encode_bytes(data)
        self.assertEqual(len(encoded), 132)
        self.assertEqual(decode_bytes(encoded), data)

    def test_text(self):
        self.check(b"The quick brown fox jumps over the lazy dog")

    def test_all_bytes(self):
        self.check(bytes(range(256)) * 3)

    def test_random_data(self):
        random.seed(42)
        self.check(bytes(random.randint(0, 255) for _ in range(5000)))

    def test_skewed_data(self):
        self.check(b"a" * 5000 + b"b" * 50 + b"\x00\xff")

    def test_deterministic_output(self):
        data = b"abcabcabd" * 30
        self.assertEqual(encode_bytes(data), encode_bytes(bytes(data)))

    def test_compression_benefit(self):
        data = b"Lorem ipsum dolor sit amet " * 200
        self.assertLess(len(encode_bytes(data)), len(data))


class TestGrinFiles(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.grin = Grin(verbose=False)

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def path(self, name: str) -> str:
        return os.path.join(self.temp_dir, name)

    def write(self, name: str, data: bytes) -> str:
        with open(self.path(name), 'wb') as f:
            f.write(data)
        return self.path(name)

    def read(self, name: str) -> bytes:
        with open(self.path(name), 'rb') as f:
            return f.read()

    def test_encode_decode_file(self):
        data = b"Hello World! " * 100
        source = self.write("test.txt", data)

        stats = self.grin.encode_file(source, self.path("test.grin"))
        self.assertEqual(stats.original_size, len(data))
        self.assertLess(stats.compressed_size, stats.original_size)
        self.assertLess(stats.ratio, 100)

        self.grin.decode_file(self.path("test.grin"), self.path("restored.txt"))
        self.assertEqual(self.read("restored.txt"), data)

    def test_empty_file(self):
        source = self.write("empty.txt", b"")
        stats = self.grin.encode_file(source, self.path("empty.grin"))
        self.assertEqual(stats.ratio, 0.0)

        self.grin.decode_file(self.path("empty.grin"), self.path("restored.txt"))
        self.assertEqual(self.read("restored.txt"), b"")

    def test_bad_file_leaves_no_output(self):
        source = self.write("bad.grin", b"not a grin file")
        with self.assertRaises(BadMagicNumber):
            self.grin.decode_file(source, self.path("out.txt"))
        self.assertFalse(os.path.exists(self.path("out.txt")))

    def test_missing_file(self):
        with self.assertRaises(OSError):
            self.grin.encode_file(self.path("missing.txt"), self.path("out.grin"))

    def test_verbose_output(self):
        source = self.write("note.txt", b"abc" * 10)
        output = io.StringIO()
        with redirect_stdout(output):
            Grin().encode_file(source, self.path("note.grin"))
        self.assertIn("Encoding note.txt... OK", output.getvalue())


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def run_main(self, argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            main(argv)
        return stdout.getvalue(), stderr.getvalue()

    def test_encode_decode(self):
        source = os.path.join(self.temp_dir, "in.txt")
        encoded = os.path.join(self.temp_dir, "in.grin")
        restored = os.path.join(self.temp_dir, "out.txt")
        with open(source, 'wb') as f:
            f.write(b"Content of file\n" * 50)

        self.run_main(['encode', source, encoded])
        self.run_main(['-q', 'decode', encoded, restored])

        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), b"Content of file\n" * 50)

    def test_no_command(self):
        stdout, _ = self.run_main([])
        self.assertIn("usage", stdout)

    def test_unknown_command(self):
        with self.assertRaises(SystemExit) as ctx:
            self.run_main(['compress', 'a', 'b'])
        self.assertEqual(ctx.exception.code, 2)

    def test_wrong_argument_count(self):
        outfile = os.path.join(self.temp_dir, "never.grin")
        with self.assertRaises(SystemExit) as ctx:
            self.run_main(['encode', outfile])
        self.assertEqual(ctx.exception.code, 2)
        self.assertFalse(os.path.exists(outfile))

    def test_format_error_exit_code(self):
        source = os.path.join(self.temp_dir, "bad.grin")
        with open(source, 'wb') as f:
            f.write(b"\x00" * 16)

        stderr = io.StringIO()
        with self.assertRaises(SystemExit) as ctx:
            with redirect_stdout(io.StringIO()), redirect_stderr(stderr):
                main(['decode', source, os.path.join(self.temp_dir, "out")])
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("Error: Incorrect magic number", stderr.getvalue())


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestBitStream))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanTree))
    suite.addTests(loader.loadTestsFromTestCase(TestTreeSerialization))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanCoding))
    suite.addTests(loader.loadTestsFromTestCase(TestGrinFormat))
    suite.addTests(loader.loadTestsFromTestCase(TestRoundTrip))
    suite.addTests(loader.loadTestsFromTestCase(TestGrinFiles))
    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
