import random
from concurrent.futures import ThreadPoolExecutor

import pytest

import huffman as huff
from huffman import Internal, Leaf


SAMPLE = b"AABCBAD"
A, B, C, D = (ord(ch) for ch in "ABCD")


def random_bytes(size, alphabet=256, seed=0):
    rng = random.Random(seed)
    return bytes(rng.randrange(alphabet) for _ in range(size))


# Frequency counting and ranking

def test_count_frequencies_sample():
    assert huff.count_frequencies(SAMPLE) == {A: 3, B: 2, C: 1, D: 1}


def test_count_frequencies_has_no_zero_entries():
    table = huff.count_frequencies(b"\x00\x00\xff")
    assert set(table) == {0, 255}
    assert all(count > 0 for count in table.values())


def test_count_frequencies_is_order_independent():
    data = random_bytes(500, alphabet=20, seed=3)
    shuffled = bytearray(data)
    random.Random(4).shuffle(shuffled)
    assert huff.count_frequencies(data) == huff.count_frequencies(bytes(shuffled))


def test_count_frequencies_accepts_text():
    assert huff.count_frequencies("AABCBAD") == huff.count_frequencies(SAMPLE)


def test_count_frequencies_empty():
    assert huff.count_frequencies(b"") == {}


@pytest.mark.parametrize("chunk_size", [1, 3, 7, 64, 10_000])
def test_chunked_counting_matches_serial(chunk_size):
    data = random_bytes(1000, alphabet=40, seed=chunk_size)
    assert huff.count_frequencies_chunked(data, chunk_size=chunk_size) == huff.count_frequencies(data)


def test_chunked_counting_with_executor():
    data = random_bytes(5000, seed=11)
    with ThreadPoolExecutor(max_workers=4) as pool:
        table = huff.count_frequencies_chunked(data, chunk_size=512, executor=pool)
    assert table == huff.count_frequencies(data)


def test_chunked_counting_rejects_bad_chunk_size():
    with pytest.raises(ValueError):
        huff.count_frequencies_chunked(SAMPLE, chunk_size=0)


def test_rank_frequencies_sample():
    table = {D: 1, C: 1, B: 2, A: 3}
    assert huff.rank_frequencies(table) == [(A, 3), (B, 2), (C, 1), (D, 1)]


def test_rank_frequencies_ties_by_lowest_symbol():
    table = {200: 5, 10: 5, 99: 5, 1: 2}
    assert huff.rank_frequencies(table) == [(10, 5), (99, 5), (200, 5), (1, 2)]


# Tree

def sample_tree():
    return Internal(
        7,
        Internal(4, Leaf(B, 2), Internal(2, Leaf(C, 1), Leaf(D, 1))),
        Leaf(A, 3),
    )


def test_build_tree_sample_shape():
    tree = huff.build_huffman_tree([(A, 3), (B, 2), (C, 1), (D, 1)])
    assert tree == sample_tree()


def test_build_tree_leaf_wins_tie():
    tree = huff.build_huffman_tree([(A, 1), (B, 1)])
    assert tree == Internal(2, Leaf(A, 1), Leaf(B, 1))


def test_build_tree_heavier_subtree_goes_left():
    tree = huff.build_huffman_tree([(A, 2), (B, 2), (C, 1)])
    # B(2) + C(1) = 3 outweighs A(2)
    assert tree == Internal(5, Internal(3, Leaf(B, 2), Leaf(C, 1)), Leaf(A, 2))


def test_build_tree_single_entry_is_leaf():
    assert huff.build_huffman_tree([(A, 9)]) == Leaf(A, 9)


def test_build_tree_rejects_empty_list():
    with pytest.raises(ValueError):
        huff.build_huffman_tree([])


def test_build_tree_rejects_non_byte_symbol():
    with pytest.raises(ValueError):
        huff.build_huffman_tree([(300, 1)])


def test_internal_weights_are_sums():
    data = random_bytes(2000, alphabet=60, seed=5)
    tree = huff.build_huffman_tree(huff.rank_frequencies(huff.count_frequencies(data)))

    def check(node):
        if node.is_leaf:
            return node.weight
        assert node.weight == check(node.left) + check(node.right)
        return node.weight

    assert check(tree) == len(data)


def test_build_tree_is_deterministic():
    data = random_bytes(3000, alphabet=30, seed=8)
    ranked = huff.rank_frequencies(huff.count_frequencies(data))
    assert huff.build_huffman_tree(ranked) == huff.build_huffman_tree(list(ranked))


# Codes

def test_codes_sample():
    assert huff.generate_huffman_codes(sample_tree()) == {A: "1", B: "00", C: "010", D: "011"}


def test_codes_single_leaf_is_one():
    assert huff.generate_huffman_codes(Leaf(A, 4)) == {A: "1"}


def test_codes_empty_tree():
    assert huff.generate_huffman_codes(None) == {}


def test_invert_codes():
    codes = {A: "1", B: "00"}
    assert huff.invert_codes(codes) == {"1": A, "00": B}


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_codes_are_prefix_free(seed):
    data = random_bytes(4000, alphabet=90, seed=seed)
    codes = huff.huffman_encode(data).codes
    assert set(codes) == set(data)
    values = list(codes.values())
    assert all(values)
    for i, first in enumerate(values):
        for second in values[i + 1:]:
            assert not first.startswith(second)
            assert not second.startswith(first)


# Packing

def test_encode_bits_sample():
    codes = {A: "1", B: "00", C: "010", D: "011"}
    assert huff.encode_bits(SAMPLE, codes) == [1, 1, 0, 0, 0, 1, 0, 0, 0, 1, 0, 1, 1]


def test_encode_bits_missing_code():
    with pytest.raises(huff.CodeLookupError) as excinfo:
        huff.encode_bits(b"AZ", {A: "1"})
    assert excinfo.value.symbol == ord("Z")
    assert isinstance(excinfo.value, KeyError)
    assert "90" in str(excinfo.value)


def test_pack_bits_trailing_group_keeps_its_value():
    assert huff.pack_bits([1, 0, 1, 1]) == (bytes([0b00001011]), 4)


def test_pack_bits_full_bytes():
    assert huff.pack_bits([1, 1, 0, 0, 0, 1, 0, 0]) == (bytes([0b11000100]), 0)


def test_pack_bits_empty():
    assert huff.pack_bits([]) == (b"", 0)


def test_unpack_bits():
    assert huff.unpack_bits(bytes([0b11000100, 0b00001011]), 13) == [1, 1, 0, 0, 0, 1, 0, 0, 0, 1, 0, 1, 1]
    assert huff.unpack_bits(bytes([0b10000001])) == [1, 0, 0, 0, 0, 0, 0, 1]


def test_unpack_bits_errors():
    with pytest.raises(ValueError):
        huff.unpack_bits(b"\x01", -1)
    with pytest.raises(huff.AmbiguousTerminationError):
        huff.unpack_bits(b"\x01", 9)
    with pytest.raises(huff.MalformedStreamError):
        huff.unpack_bits(b"\xff", 4)


# Encode

def test_encode_sample():
    encoded = huff.huffman_encode(SAMPLE)
    assert encoded.data == bytes([0b11000100, 0b00001011])
    assert encoded.codes == {A: "1", B: "00", C: "010", D: "011"}
    assert encoded.decode_table == {"1": A, "00": B, "010": C, "011": D}
    assert encoded.tree == sample_tree()
    assert encoded.bit_length == 13
    assert encoded.pad_bits == 3
    assert encoded.symbol_count == 7


def test_encode_text_matches_bytes():
    assert huff.huffman_encode("AABCBAD") == huff.huffman_encode(SAMPLE)


def test_encode_empty():
    encoded = huff.huffman_encode(b"")
    assert encoded.data == b""
    assert encoded.codes == {}
    assert encoded.tree is None
    assert encoded.bit_length == 0
    assert encoded.decode() == b""


@pytest.mark.parametrize("size", [1, 7, 8, 9, 100])
def test_encode_single_symbol(size):
    encoded = huff.huffman_encode(b"x" * size)
    assert encoded.codes == {ord("x"): "1"}
    assert len(encoded.data) == (size + 7) // 8
    assert encoded.decode() == b"x" * size


def test_encode_with_incomplete_frequency_table():
    with pytest.raises(huff.CodeLookupError):
        huff.huffman_encode(b"AB", frequency_table={A: 1})


def test_encode_with_empty_frequency_table():
    with pytest.raises(huff.CodeLookupError) as excinfo:
        huff.huffman_encode(b"ABC", frequency_table={})
    assert excinfo.value.symbol == A


@pytest.mark.parametrize("count", [0, -2])
def test_encode_rejects_non_positive_counts(count):
    with pytest.raises(ValueError):
        huff.huffman_encode(b"AB", frequency_table={A: 1, B: count})


def test_encode_is_deterministic():
    data = random_bytes(2000, alphabet=50, seed=21)
    assert huff.huffman_encode(data) == huff.huffman_encode(bytes(data))


# Decode

def test_decode_sample_with_tree_and_table():
    encoded = huff.huffman_encode(SAMPLE)
    assert huff.huffman_decode(encoded.data, encoded.tree, bit_length=13) == SAMPLE
    assert huff.huffman_decode(encoded.data, encoded.decode_table, bit_length=13) == SAMPLE
    assert huff.huffman_decode(encoded.data, encoded.tree, bit_length=13, symbol_count=7) == SAMPLE


def test_decode_sample_by_count_alone_is_ambiguous():
    # a 4-bit tail (...CCAA) and a 5-bit tail (...BAD) both decode to 7 symbols
    encoded = huff.huffman_encode(SAMPLE)
    with pytest.raises(huff.AmbiguousTerminationError):
        huff.huffman_decode(encoded.data, encoded.tree, symbol_count=7)


def test_decode_by_count_single_symbol():
    encoded = huff.huffman_encode(b"A" * 10)
    assert encoded.data == bytes([0xFF, 0b11])
    assert huff.huffman_decode(encoded.data, encoded.tree, symbol_count=10) == b"A" * 10
    assert huff.huffman_decode(encoded.data, encoded.decode_table, symbol_count=10) == b"A" * 10


def test_decode_by_count_byte_aligned():
    encoded = huff.huffman_encode(b"A" * 8)
    assert encoded.data == b"\xff"
    assert huff.huffman_decode(encoded.data, encoded.tree, symbol_count=8) == b"A" * 8


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_round_trip_random(seed):
    data = random_bytes(3000, alphabet=random.Random(seed).randrange(2, 257), seed=seed)
    encoded = huff.huffman_encode(data)
    assert encoded.decode() == data
    assert huff.huffman_decode(encoded.data, encoded.decode_table, bit_length=encoded.bit_length) == data


def test_round_trip_every_byte_value():
    data = bytes(range(256)) * 3
    encoded = huff.huffman_encode(data)
    assert len(encoded.codes) == 256
    assert encoded.decode() == data


def test_decode_requires_terminal_condition():
    encoded = huff.huffman_encode(SAMPLE)
    with pytest.raises(ValueError):
        huff.huffman_decode(encoded.data, encoded.tree)


def test_decode_ends_mid_code():
    encoded = huff.huffman_encode(SAMPLE)
    bits = huff.encode_bits(SAMPLE, encoded.codes)[:12]
    packed, _ = huff.pack_bits(bits)
    with pytest.raises(huff.AmbiguousTerminationError):
        huff.huffman_decode(packed, encoded.tree, bit_length=12)
    with pytest.raises(huff.AmbiguousTerminationError):
        huff.huffman_decode(packed, encoded.decode_table, bit_length=12)


def test_decode_bit_length_beyond_input():
    encoded = huff.huffman_encode(SAMPLE)
    with pytest.raises(huff.AmbiguousTerminationError):
        huff.huffman_decode(encoded.data, encoded.tree, bit_length=17)


def test_decode_more_symbols_than_bits():
    encoded = huff.huffman_encode(SAMPLE)
    with pytest.raises(huff.AmbiguousTerminationError):
        huff.huffman_decode(encoded.data, encoded.tree, bit_length=13, symbol_count=8)
    with pytest.raises(huff.AmbiguousTerminationError):
        huff.huffman_decode(b"", encoded.tree, symbol_count=1)


def test_decode_leftover_bits_after_count():
    encoded = huff.huffman_encode(SAMPLE)
    with pytest.raises(huff.DecodeError):
        huff.huffman_decode(encoded.data, encoded.tree, bit_length=13, symbol_count=6)


def test_decode_malformed_bits():
    with pytest.raises(huff.MalformedStreamError):
        huff.huffman_decode(b"\x80", {"1": A}, bit_length=8)
    with pytest.raises(huff.MalformedStreamError):
        huff.huffman_decode(b"\x80", Leaf(A, 1), bit_length=8)


def test_decode_empty():
    assert huff.huffman_decode(b"", {}, symbol_count=0) == b""
    assert huff.huffman_decode(b"", None, bit_length=0) == b""


def test_decode_errors_are_value_errors():
    assert issubclass(huff.AmbiguousTerminationError, huff.DecodeError)
    assert issubclass(huff.MalformedStreamError, huff.DecodeError)
    assert issubclass(huff.DecodeError, huff.HuffmanError)
    assert issubclass(huff.HuffmanError, ValueError)
