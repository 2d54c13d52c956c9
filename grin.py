"""
Главный класс для сжатия и разжатия файлов в формате grin.
"""

from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from bitstream import BitInputStream, BitOutputStream
from format import GrinHeader
from huffman import HuffmanTree


@dataclass
class GrinStats:
    original_size: int
    compressed_size: int

    @property
    def ratio(self) -> float:
        if self.original_size == 0:
            return 0.0
        return self.compressed_size / self.original_size * 100


def create_frequency_map(data: bytes) -> Dict[int, int]:
    return dict(Counter(data))


def encode_bytes(data: bytes) -> bytes:
    tree = HuffmanTree().build(create_frequency_map(data))

    stream = BitOutputStream()
    GrinHeader().write(stream)
    tree.serialize(stream)
    tree.encode(data, stream)

    return stream.to_bytes()


def decode_bytes(data: bytes) -> bytes:
    stream = BitInputStream(data)
    GrinHeader.read(stream)
    tree = HuffmanTree.deserialize(stream)
    return tree.decode(stream)


class Grin:
    def __init__(self, verbose: bool = True):
        self.verbose = verbose

    def _report(self, message: str, end: str = "\n"):
        if self.verbose:
            print(message, end=end)

    def encode_file(self, infile: str, outfile: str) -> GrinStats:
        with open(infile, 'rb') as f:
            data = f.read()

        self._report(f"Encoding {Path(infile).name}...", end=" ")
        encoded = encode_bytes(data)

        with open(outfile, 'wb') as f:
            f.write(encoded)

        stats = GrinStats(original_size=len(data), compressed_size=len(encoded))
        self._report(f"OK ({stats.ratio:.1f}%)")
        self._report(f"{stats.original_size} -> {stats.compressed_size} bytes written to {outfile}")

        return stats

    def decode_file(self, infile: str, outfile: str) -> GrinStats:
        with open(infile, 'rb') as f:
            data = f.read()

        self._report(f"Decoding {Path(infile).name}...", end=" ")
        decoded = decode_bytes(data)

        # выходной файл пишется только после успешного декодирования
        with open(outfile, 'wb') as f:
            f.write(decoded)

        stats = GrinStats(original_size=len(decoded), compressed_size=len(data))
        self._report("OK")
        self._report(f"{stats.compressed_size} -> {stats.original_size} bytes written to {outfile}")

        return stats
