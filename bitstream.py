"""
Побитовый ввод/вывод поверх байтовых данных.
Биты внутри байта идут от старшего к младшему.
"""

import io
import struct
from typing import List


EOF = -1


class BitOutputStream:
    def __init__(self):
        self.bits: List[int] = []

    def __len__(self):
        return len(self.bits)

    def write_bit(self, bit: int):
        self.bits.append(1 if bit else 0)

    def write_bits(self, code: str):
        for bit in code:
            self.write_bit(bit == '1')

    def write_int(self, value: int, width: int):
        if value < 0 or value >= (1 << width):
            raise ValueError(f"Value {value} does not fit in {width} bits")

        for shift in range(width - 1, -1, -1):
            self.write_bit((value >> shift) & 1)

    def to_bytes(self) -> bytes:
        padding = (8 - len(self.bits) % 8) % 8
        bits = self.bits + [0] * padding

        output = io.BytesIO()

        for i in range(0, len(bits), 8):
            byte = 0
            for j in range(8):
                byte = (byte << 1) | bits[i + j]
            output.write(struct.pack('B', byte))

        return output.getvalue()


class BitInputStream:
    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def bits_remaining(self) -> int:
        return len(self.data) * 8 - self.pos

    def read_bit(self) -> int:
        if self.pos >= len(self.data) * 8:
            return EOF

        byte = self.data[self.pos // 8]
        bit = (byte >> (7 - self.pos % 8)) & 1
        self.pos += 1
        return bit

    def read_int(self, width: int) -> int:
        # неполное значение в конце потока считается концом потока
        if self.bits_remaining() < width:
            self.pos = len(self.data) * 8
            return EOF

        value = 0
        for _ in range(width):
            value = (value << 1) | self.read_bit()

        return value
