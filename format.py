"""
Определяет заголовок .grin файла и ошибки формата.
"""

from bitstream import BitInputStream, BitOutputStream, EOF


MAGIC_NUMBER = 1846
MAGIC_BITS = 32


class GrinFormatError(ValueError):
    pass


class BadMagicNumber(GrinFormatError):
    pass


class MalformedTree(GrinFormatError):
    pass


class TruncatedStream(GrinFormatError):
    pass


class GrinHeader:
    def __init__(self):
        self.magic = MAGIC_NUMBER

    def write(self, stream: BitOutputStream):
        stream.write_int(self.magic, MAGIC_BITS)

    @staticmethod
    def read(stream: BitInputStream) -> 'GrinHeader':
        magic = stream.read_int(MAGIC_BITS)

        if magic == EOF:
            raise BadMagicNumber("File too short for a grin header")

        if magic != MAGIC_NUMBER:
            raise BadMagicNumber(f"Incorrect magic number: {magic:#010x}")

        return GrinHeader()
