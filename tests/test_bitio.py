import pytest

from bitio import BitReader, BitWriter, pack_payload, unpack_payload
from huffman import FormatError


def _read_all(reader):
    bits = []
    while reader.has_next_bit():
        bits.append(reader.next_bit())
    return bits


def test_writer_packs_msb_first():
    writer = BitWriter()
    writer.write_bits("10110")
    assert writer.getvalue() == (bytes([0b10110000]), 3)


def test_writer_full_bytes_have_no_padding():
    writer = BitWriter()
    writer.write_bits("1111000010101010")
    assert writer.getvalue() == (b"\xf0\xaa", 0)


def test_writer_empty():
    assert BitWriter().getvalue() == (b"", 0)


def test_reader_stops_before_padding():
    reader = BitReader(bytes([0b10110000]), 3)
    assert _read_all(reader) == [1, 0, 1, 1, 0]
    with pytest.raises(EOFError):
        reader.next_bit()


def test_reader_bits_remaining():
    reader = BitReader(b"\xff\x00", 4)
    assert reader.bits_remaining == 12
    reader.next_bit()
    assert reader.bits_remaining == 11


@pytest.mark.parametrize("packed, pad_bits", [(b"\x00", 8), (b"\x00", -1), (b"", 2)])
def test_reader_rejects_bad_padding(packed, pad_bits):
    with pytest.raises(FormatError):
        BitReader(packed, pad_bits)


def test_payload_header():
    writer = BitWriter()
    writer.write_bits("0110011")
    payload = pack_payload(*writer.getvalue())
    assert payload == bytes([1, 0b01100110])
    assert _read_all(unpack_payload(payload)) == [0, 1, 1, 0, 0, 1, 1]


def test_empty_payload():
    assert pack_payload(b"", 0) == b""
    assert not unpack_payload(b"").has_next_bit()


def test_truncated_payload_header():
    with pytest.raises(FormatError):
        unpack_payload(bytes([5]))
