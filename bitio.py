from typing import Tuple

from huffman import FormatError


class BitWriter:
    """Packs bits MSB-first into bytes"""

    def __init__(self):
        self._out = bytearray()
        self._acc = 0
        self._acc_bits = 0

    def write_bit(self, bit: int) -> None:
        self._acc = (self._acc << 1) | (1 if bit else 0)
        self._acc_bits += 1
        if self._acc_bits == 8:
            self._out.append(self._acc & 0xFF)
            self._acc = 0
            self._acc_bits = 0

    def write_bits(self, bits: str) -> None: # bits: string of '0'/'1'
        for ch in bits:
            self.write_bit(ch == '1')

    def getvalue(self) -> Tuple[bytes, int]:
        """
        Returns (packed_bytes, pad_bits) where pad_bits is the number of 0
        bits added to fill the last byte. The writer can keep going afterwards.
        """
        if self._acc_bits == 0:
            return bytes(self._out), 0
        pad_bits = 8 - self._acc_bits
        return bytes(self._out) + bytes(((self._acc << pad_bits) & 0xFF,)), pad_bits


class BitReader:
    """Reads bits MSB-first, stopping before the padding of the last byte"""

    def __init__(self, packed: bytes, pad_bits: int = 0):
        if not 0 <= pad_bits <= 7:
            raise FormatError(f"pad bit count {pad_bits} outside 0..7")
        if pad_bits and not packed:
            raise FormatError(f"{pad_bits} pad bits declared for an empty payload")
        self._packed = packed
        self._total_bits = len(packed) * 8 - pad_bits
        self._bit_index = 0

    def has_next_bit(self) -> bool:
        return self._bit_index < self._total_bits

    def next_bit(self) -> int:
        if self._bit_index >= self._total_bits:
            raise EOFError("no bits left")
        byte = self._packed[self._bit_index >> 3]
        bit = (byte >> (7 - (self._bit_index & 7))) & 1
        self._bit_index += 1
        return bit

    @property
    def bits_remaining(self) -> int:
        return self._total_bits - self._bit_index


# Compressed file layout: one header byte with the pad bit count, then the payload

def pack_payload(packed: bytes, pad_bits: int) -> bytes:
    if not packed:
        return b""
    return bytes((pad_bits,)) + packed


def unpack_payload(data: bytes) -> BitReader:
    if not data:
        return BitReader(b"")
    return BitReader(data[1:], data[0])
