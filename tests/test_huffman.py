import io
import random

import pytest

import huffman as huff
from bitio import BitReader, BitWriter


CLASSIC = {ord('a'): 5, ord('b'): 9, ord('c'): 12, ord('d'): 13, ord('e'): 16, ord('f'): 45}


def _encode(data, root):
    writer = BitWriter()
    huff.huffman_encode(data, huff.generate_huffman_codes(root), writer)
    return BitReader(*writer.getvalue())


def _decode(root, reader):
    out = bytearray()
    huff.translate(root, reader, out)
    return bytes(out)


def _reader(bits):
    writer = BitWriter()
    writer.write_bits(bits)
    return BitReader(*writer.getvalue())


# Construction from frequencies

def test_classic_example_weighted_length():
    root = huff.build_huffman_tree(CLASSIC)
    codes = huff.generate_huffman_codes(root)
    assert huff.weighted_code_length(CLASSIC, codes) == 224


def test_classic_example_table_order():
    root = huff.build_huffman_tree(CLASSIC)
    assert huff.save_code_table(root) == [
        (ord('f'), "0"),
        (ord('c'), "100"),
        (ord('d'), "101"),
        (ord('a'), "1100"),
        (ord('b'), "1101"),
        (ord('e'), "111"),
    ]


@pytest.mark.parametrize("counts, expected", [
    ([1, 1, 2, 3, 5, 8], 45),
    ([1, 1, 1, 1], 8),
    ([3, 3], 6),
    ([1, 2, 4, 8, 16], 1 * 4 + 2 * 4 + 4 * 3 + 8 * 2 + 16 * 1),
    ([10, 10, 10, 10, 10, 10, 10, 10], 240),
])
def test_optimal_total_code_length(counts, expected):
    ft = {symbol: count for symbol, count in enumerate(counts)}
    codes = huff.generate_huffman_codes(huff.build_huffman_tree(ft))
    assert huff.weighted_code_length(ft, codes) == expected


def test_accepts_sequence_of_256_counts():
    counts = [0] * 256
    for symbol, count in CLASSIC.items():
        counts[symbol] = count
    from_list = huff.save_code_table(huff.build_huffman_tree(counts))
    from_dict = huff.save_code_table(huff.build_huffman_tree(CLASSIC))
    assert from_list == from_dict


def test_zero_counts_are_not_leaves():
    ft = {0: 0, 1: 4, 2: 0, 3: 7}
    codes = huff.generate_huffman_codes(huff.build_huffman_tree(ft))
    assert set(codes) == {1, 3}


def test_ties_follow_arrival_order():
    root = huff.build_huffman_tree({7: 1, 3: 1})
    assert huff.save_code_table(root) == [(3, "0"), (7, "1")]


def test_merged_node_frequency_is_sum():
    root = huff.build_huffman_tree(CLASSIC)
    assert root.frequency == sum(CLASSIC.values())
    assert root.symbol is None
    assert not root.is_leaf()


def test_prefix_free():
    rng = random.Random(5)
    ft = {s: rng.randint(1, 1000) for s in rng.sample(range(256), 60)}
    codes = list(huff.generate_huffman_codes(huff.build_huffman_tree(ft)).values())
    for i, a in enumerate(codes):
        for j, b in enumerate(codes):
            if i != j:
                assert not b.startswith(a)


def test_single_symbol_is_leaf_root():
    root = huff.build_huffman_tree({65: 12})
    assert root.is_leaf()
    assert root.symbol == 65
    assert huff.save_code_table(root) == [(65, "")]


def test_empty_input():
    assert huff.build_huffman_tree({}) is None
    assert huff.build_huffman_tree([0] * 256) is None
    assert huff.save_code_table(None) == []
    out = io.StringIO()
    assert huff.write_code_table(None, out) == 0
    assert out.getvalue() == ""


@pytest.mark.parametrize("ft", [{256: 1}, {-1: 1}, {4: -2}])
def test_bad_frequencies_rejected(ft):
    with pytest.raises(ValueError):
        huff.build_huffman_tree(ft)


def test_skewed_tree_does_not_recurse():
    ft = {s: 2 ** s for s in range(256)}
    root = huff.build_huffman_tree(ft)
    table = huff.save_code_table(root)
    assert max(len(code) for _, code in table) == 255
    rebuilt = huff.build_tree_from_table(line for pair in table for line in (str(pair[0]), pair[1]))
    assert huff.save_code_table(rebuilt) == table


# Code table save / reload

def _table_lines(root):
    out = io.StringIO()
    huff.write_code_table(root, out)
    return out.getvalue()


def test_write_code_table_format():
    root = huff.build_huffman_tree({ord('x'): 1, ord('y'): 3})
    assert _table_lines(root) == "120\n0\n121\n1\n"


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_table_round_trip(seed):
    rng = random.Random(seed)
    ft = {s: rng.randint(1, 500) for s in rng.sample(range(256), rng.randint(2, 256))}
    root = huff.build_huffman_tree(ft)
    rebuilt = huff.read_code_table(io.StringIO(_table_lines(root)))
    assert huff.generate_huffman_codes(rebuilt) == huff.generate_huffman_codes(root)
    assert huff.save_code_table(rebuilt) == huff.save_code_table(root)


def test_single_symbol_table_round_trip():
    text = _table_lines(huff.build_huffman_tree({10: 3}))
    assert text == "10\n\n"
    rebuilt = huff.read_code_table(io.StringIO(text))
    assert rebuilt.is_leaf()
    assert rebuilt.symbol == 10


def test_read_handles_crlf():
    rebuilt = huff.read_code_table(io.StringIO("65\r\n0\r\n66\r\n1\r\n"))
    assert huff.save_code_table(rebuilt) == [(65, "0"), (66, "1")]


def test_empty_table_is_empty_tree():
    assert huff.read_code_table(io.StringIO("")) is None


@pytest.mark.parametrize("lines", [
    ["65"],                              # odd number of lines
    ["A", "0"],                          # symbol not an integer
    ["", "0"],
    ["-1", "0"],
    ["256", "0"],
    ["65", "02"],                        # bad bit character
    ["65", "0 "],
    ["65", "0", "66", "0"],              # same code twice
    ["65", "0", "66", "01"],             # runs through a leaf
    ["65", "01", "66", "0"],             # ends on an internal node
    ["65", "", "66", "1"],               # empty code with other entries
    ["65", "0", "65", "1"],              # duplicate symbol
])
def test_malformed_table(lines):
    with pytest.raises(huff.FormatError):
        huff.build_tree_from_table(lines)


def test_format_error_is_value_error():
    assert issubclass(huff.FormatError, ValueError)


# Translate

def test_encode_then_translate():
    data = b"abcdef" * 3 + b"ffffeeeab"
    root = huff.build_huffman_tree(huff.freq_table(data))
    assert _decode(root, _encode(data, root)) == data


def test_translate_with_reloaded_tree():
    rng = random.Random(9)
    data = bytes(rng.randrange(0, 40) for _ in range(3000))
    root = huff.build_huffman_tree(huff.freq_table(data))
    rebuilt = huff.read_code_table(io.StringIO(_table_lines(root)))
    assert _decode(rebuilt, _encode(data, root)) == data


def test_translate_flushes_last_symbol():
    root = huff.build_huffman_tree(CLASSIC)
    assert _decode(root, _reader("0")) == b"f"
    assert _decode(root, _reader("0111")) == b"fe"


def test_translate_writes_to_binary_stream():
    root = huff.build_huffman_tree(CLASSIC)
    out = io.BytesIO()
    n = huff.translate(root, _reader("1001011100"), out)
    assert n == 3
    assert out.getvalue() == b"cda"


def test_translate_single_symbol():
    root = huff.build_tree_from_table(["65", ""])
    assert _decode(root, _encode(b"AAAA", root)) == b"AAAA"
    with pytest.raises(huff.FormatError):
        _decode(root, _reader("01"))


def test_translate_empty_tree():
    assert _decode(None, BitReader(b"")) == b""
    with pytest.raises(huff.FormatError):
        _decode(None, _reader("0"))


def test_translate_incomplete_final_code():
    root = huff.build_huffman_tree(CLASSIC)
    with pytest.raises(huff.FormatError):
        _decode(root, _reader("0110"))


def test_translate_missing_branch():
    root = huff.build_tree_from_table(["65", "0"])
    assert _decode(root, _reader("00")) == b"AA"
    with pytest.raises(huff.FormatError):
        _decode(root, _reader("1"))


def test_encode_unknown_symbol():
    root = huff.build_huffman_tree({1: 1, 2: 1})
    with pytest.raises(ValueError):
        huff.huffman_encode(b"\x03", huff.generate_huffman_codes(root), BitWriter())


def test_encode_bit_count():
    root = huff.build_huffman_tree(CLASSIC)
    codes = huff.generate_huffman_codes(root)
    writer = BitWriter()
    assert huff.huffman_encode(b"fab", codes, writer) == 1 + 4 + 4
