"""
Реализует дерево Хаффмана для формата grin.
Частые байты кодируются короче, конец данных отмечается
отдельным символом EOF_SYMBOL (256), поэтому символ занимает 9 бит.
"""

import heapq
from typing import Dict, Optional

from bitstream import BitInputStream, BitOutputStream, EOF
from format import MalformedTree, TruncatedStream


EOF_SYMBOL = 256
SYMBOL_BITS = 9
MAX_TREE_DEPTH = 256


class HuffmanNode:
    def __init__(self, symbol: Optional[int] = None, freq: int = 0,
                 left: Optional['HuffmanNode'] = None,
                 right: Optional['HuffmanNode'] = None,
                 order: int = 0):
        self.symbol = symbol
        self.freq = freq
        self.left = left
        self.right = right
        self.order = order

    @property
    def is_leaf(self) -> bool:
        return self.symbol is not None

    def __lt__(self, other):
        # при равной частоте раньше извлекается узел, созданный раньше
        return (self.freq, self.order) < (other.freq, other.order)

    def __repr__(self):
        if self.is_leaf:
            return f"Leaf({self.symbol}, freq={self.freq})"
        return f"Internal(freq={self.freq})"


class HuffmanTree:
    def __init__(self, root: Optional[HuffmanNode] = None):
        self.root = root
        self.codes: Dict[int, str] = {}

        if root is not None:
            self._generate_codes()

    def build(self, frequencies: Dict[int, int]) -> 'HuffmanTree':
        """Builds the tree from byte frequencies, adding the EOF symbol."""
        heap = []
        order = 0

        for symbol in sorted(frequencies):
            heap.append(HuffmanNode(symbol=symbol, freq=frequencies[symbol], order=order))
            order += 1

        heap.append(HuffmanNode(symbol=EOF_SYMBOL, freq=1, order=order))
        order += 1

        heapq.heapify(heap)

        while len(heap) > 1:
            left = heapq.heappop(heap)
            right = heapq.heappop(heap)

            parent = HuffmanNode(freq=left.freq + right.freq,
                                 left=left, right=right, order=order)
            order += 1
            heapq.heappush(heap, parent)

        self.root = heap[0]
        self._generate_codes()
        return self

    def _generate_codes(self):
        self.codes.clear()

        def traverse(node: HuffmanNode, code: str):
            if node.is_leaf:
                self.codes[node.symbol] = code
                return

            traverse(node.left, code + '0')
            traverse(node.right, code + '1')

        traverse(self.root, '')

    def serialize(self, stream: BitOutputStream):
        def write_node(node: HuffmanNode):
            if node.is_leaf:
                stream.write_bit(0)
                stream.write_int(node.symbol, SYMBOL_BITS)
            else:
                stream.write_bit(1)
                write_node(node.left)
                write_node(node.right)

        write_node(self.root)

    @staticmethod
    def deserialize(stream: BitInputStream) -> 'HuffmanTree':
        def read_node(depth: int) -> HuffmanNode:
            if depth > MAX_TREE_DEPTH:
                raise MalformedTree(f"Tree deeper than {MAX_TREE_DEPTH} levels")

            bit = stream.read_bit()
            if bit == EOF:
                raise MalformedTree("Unexpected end of data while reading tree")

            if bit == 0:
                symbol = stream.read_int(SYMBOL_BITS)
                if symbol == EOF:
                    raise MalformedTree("Unexpected end of data while reading leaf symbol")
                if symbol > EOF_SYMBOL:
                    raise MalformedTree(f"Invalid leaf symbol: {symbol}")
                return HuffmanNode(symbol=symbol)

            left = read_node(depth + 1)
            right = read_node(depth + 1)
            return HuffmanNode(left=left, right=right)

        return HuffmanTree(read_node(0))

    def encode(self, data: bytes, stream: BitOutputStream):
        for byte in data:
            code = self.codes.get(byte)
            if code is None:
                raise LookupError(f"No Huffman code for byte {byte:#04x}")
            stream.write_bits(code)

        stream.write_bits(self.codes[EOF_SYMBOL])

    def decode(self, stream: BitInputStream) -> bytes:
        output = bytearray()

        # дерево из одного листа бывает только у пустого файла
        if self.root.is_leaf:
            if self.root.symbol != EOF_SYMBOL:
                raise MalformedTree("Single-leaf tree without EOF symbol")
            return bytes(output)

        node = self.root

        while True:
            bit = stream.read_bit()
            if bit == EOF:
                raise TruncatedStream(
                    f"Data ended before EOF symbol after {len(output)} bytes")

            node = node.right if bit else node.left

            if node.is_leaf:
                if node.symbol == EOF_SYMBOL:
                    return bytes(output)

                output.append(node.symbol)
                node = self.root
