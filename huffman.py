from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union


# Errors

class HuffmanError(ValueError):
    pass

class CodeLookupError(HuffmanError, KeyError):
    def __init__(self, symbol: int):
        super().__init__(f"no code for symbol {symbol}")
        self.symbol = symbol

    def __str__(self) -> str:  # KeyError would repr() the message
        return self.args[0]

class DecodeError(HuffmanError):
    pass

class AmbiguousTerminationError(DecodeError):
    pass

class MalformedStreamError(DecodeError):
    pass


# Tree nodes

@dataclass(frozen=True)
class Leaf: # holds one symbol and its frequency
    symbol: int
    frequency: int

    @property
    def weight(self) -> int:
        return self.frequency

    @property
    def is_leaf(self) -> bool:
        return True

@dataclass(frozen=True)
class Internal: # owns exactly two children, weight is their sum
    weight: int
    left: "HuffmanNode"
    right: "HuffmanNode"

    @property
    def is_leaf(self) -> bool:
        return False

HuffmanNode = Union[Leaf, Internal]

CodeTable = Dict[int, str]
DecodeTable = Dict[str, int]


def _as_symbols(data) -> Iterable[int]:
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


# Frequency analysis

def count_frequencies(data) -> Counter:
    """Occurrence count of every byte value present in ``data``."""
    return Counter(_as_symbols(data))

def _count_chunk(chunk: bytes) -> Counter:
    return Counter(chunk)

def count_frequencies_chunked(data, chunk_size: int = 65536, executor=None) -> Counter:
    """
    Same result as count_frequencies, computed per chunk and merged.
    Pass a concurrent.futures executor to count the chunks in parallel
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    view = memoryview(bytes(_as_symbols(data)))
    chunks = [view[i:i + chunk_size].tobytes() for i in range(0, len(view), chunk_size)]

    partials = executor.map(_count_chunk, chunks) if executor is not None else map(_count_chunk, chunks)
    total: Counter = Counter()
    for part in partials:
        total.update(part)
    return total

def rank_frequencies(frequency_table: Dict[int, int]) -> List[Tuple[int, int]]:
    # highest count first, ties by lowest symbol
    return sorted(frequency_table.items(), key=lambda item: (-item[1], item[0]))


# Tree construction

def build_huffman_tree(ranked: List[Tuple[int, int]]) -> HuffmanNode:
    """
    Fold the ranked list from the back: each entry becomes a leaf that is
    merged with the subtree built from everything ranked below it. The
    heavier side (the leaf on ties) goes left.

    This is not the priority-queue merge; the tree shape, and therefore
    every code, depends on it.
    """
    if not ranked:
        raise ValueError("cannot build a tree from an empty frequency list")

    symbol, frequency = ranked[0]
    if not 0 <= symbol <= 255:
        raise ValueError(f"symbol out of byte range: {symbol}")
    leaf = Leaf(symbol, frequency)
    if len(ranked) == 1:
        return leaf

    rest = build_huffman_tree(ranked[1:])
    if leaf.weight >= rest.weight:
        left, right = leaf, rest
    else:
        left, right = rest, leaf
    return Internal(left.weight + right.weight, left, right)


# Code derivation

def generate_huffman_codes(root: Optional[HuffmanNode]) -> CodeTable:
    codes: CodeTable = {}
    if root is None:
        return codes
    if root.is_leaf:
        # lone symbol still needs one bit per occurrence
        codes[root.symbol] = "1"
        return codes

    def generate_codes_helper(node: HuffmanNode, current_code: str):
        if node.is_leaf:
            codes[node.symbol] = current_code
            return
        generate_codes_helper(node.left, current_code + "0")
        generate_codes_helper(node.right, current_code + "1")

    generate_codes_helper(root, "")
    return codes

def invert_codes(codes: CodeTable) -> DecodeTable:
    return {code: symbol for symbol, code in codes.items()}


# Bit packing

def encode_bits(data, codes: CodeTable) -> List[int]:
    bits: List[int] = []
    for symbol in _as_symbols(data):
        code = codes.get(symbol)
        if code is None:
            raise CodeLookupError(symbol)
        bits.extend(1 if ch == "1" else 0 for ch in code)
    return bits

def pack_bits(bits: Iterable[int]) -> Tuple[bytes, int]:
    """
    Pack bits 8 per byte, first bit in the most significant position.
    A trailing group of fewer than 8 bits is stored as its own value, so the
    zero padding sits in the high bits of the last byte: 1,0,1,1 -> 0b00001011.
    Returns (packed_bytes, pad_bits) where pad_bits is number of 0 bits added
    """
    out = bytearray()
    acc = 0
    acc_bits = 0

    for bit in bits:
        acc = (acc << 1) | (1 if bit else 0)
        acc_bits += 1
        if acc_bits == 8:
            out.append(acc)
            acc = 0
            acc_bits = 0

    pad_bits = 0
    if acc_bits != 0:
        pad_bits = 8 - acc_bits
        out.append(acc)

    return bytes(out), pad_bits

def _byte_bits(byte: int, width: int = 8) -> List[int]:
    return [(byte >> i) & 1 for i in range(width - 1, -1, -1)]

def unpack_bits(packed: bytes, bit_length: Optional[int] = None) -> List[int]:
    """
    Inverse of pack_bits. Without ``bit_length`` every byte yields 8 bits.
    """
    if bit_length is None:
        return [bit for byte in packed for bit in _byte_bits(byte)]
    if bit_length < 0:
        raise ValueError("bit_length must be >= 0")
    available = len(packed) * 8
    if bit_length > available:
        raise AmbiguousTerminationError(
            f"bit_length {bit_length} exceeds the {available} bits supplied")

    full, rem = divmod(bit_length, 8)
    bits = [bit for byte in packed[:full] for bit in _byte_bits(byte)]
    if rem:
        tail = packed[full]
        if tail >> rem:
            raise MalformedStreamError(f"padding bits of byte {full} are not zero")
        bits.extend(_byte_bits(tail, rem))
    return bits


# Encode / decode

@dataclass(frozen=True)
class EncodedOutput:
    data: bytes
    codes: CodeTable
    tree: Optional[HuffmanNode]
    bit_length: int
    symbol_count: int

    @property
    def pad_bits(self) -> int:
        return len(self.data) * 8 - self.bit_length

    @property
    def decode_table(self) -> DecodeTable:
        return invert_codes(self.codes)

    def decode(self) -> bytes:
        return huffman_decode(self.data, self.tree, bit_length=self.bit_length)


def huffman_encode(data, frequency_table: Optional[Dict[int, int]] = None) -> EncodedOutput:
    """
    Encode ``data`` and return the packed bitstream with everything needed to
    decode it. ``frequency_table`` may be passed when it was already counted
    (e.g. with count_frequencies_chunked); it must cover every symbol of ``data``.
    """
    symbols = bytes(_as_symbols(data))
    if frequency_table is None:
        frequency_table = count_frequencies(symbols)
    elif any(count < 1 for count in frequency_table.values()):
        raise ValueError("frequency table counts must be >= 1")
    if not symbols:
        return EncodedOutput(b"", {}, None, 0, 0)
    if not frequency_table:
        raise CodeLookupError(symbols[0])

    tree = build_huffman_tree(rank_frequencies(frequency_table))
    codes = generate_huffman_codes(tree)
    bits = encode_bits(symbols, codes)
    packed, _ = pack_bits(bits)
    return EncodedOutput(packed, codes, tree, len(bits), len(symbols))


def _tree_stepper(root: HuffmanNode):
    def step(node: HuffmanNode, bit: int):
        if node.is_leaf:
            # single-symbol tree: the only code is "1"
            if bit != 1:
                raise MalformedStreamError("bit 0 has no edge in a single-symbol tree")
            return node, node.symbol
        node = node.right if bit else node.left
        if node.is_leaf:
            return root, node.symbol
        return node, None
    return root, step

def _table_stepper(decode_table: DecodeTable):
    longest = max(len(code) for code in decode_table)

    def step(prefix: str, bit: int):
        prefix += "1" if bit else "0"
        symbol = decode_table.get(prefix)
        if symbol is not None:
            return "", symbol
        if len(prefix) >= longest:
            raise MalformedStreamError(f"bit prefix {prefix!r} matches no code")
        return prefix, None
    return "", step

def _walk(bits: List[int], step, state, limit: Optional[int]):
    # returns (symbols, state, pending, consumed)
    symbols: List[int] = []
    pending = False
    consumed = 0
    for bit in bits:
        state, symbol = step(state, bit)
        consumed += 1
        pending = symbol is None
        if pending:
            continue
        symbols.append(symbol)
        if limit is not None and len(symbols) == limit:
            break
    return symbols, state, pending, consumed

def _decode_by_count(packed: bytes, step, start, symbol_count: int) -> bytes:
    # The last byte holds 1..8 valid bits and nothing says how many; try each
    # width whose padding is zero and keep the ones that end on a code boundary
    # with exactly symbol_count symbols.
    head, state, _, consumed = _walk(unpack_bits(packed[:-1]), step, start, symbol_count)
    if len(head) == symbol_count:
        raise DecodeError(f"{symbol_count} symbols decoded with {len(packed) * 8 - consumed} bits left over")

    remaining = symbol_count - len(head)
    tail = packed[-1]
    outcomes = set()
    for width in range(8, 0, -1):
        if tail >> width:
            break
        try:
            rest, _, pending, used = _walk(_byte_bits(tail, width), step, state, remaining)
        except MalformedStreamError:
            continue
        if len(rest) == remaining and used == width and not pending:
            outcomes.add(bytes(head + rest))

    if len(outcomes) == 1:
        return outcomes.pop()
    if not outcomes:
        raise AmbiguousTerminationError(f"bitstream does not end after {symbol_count} symbols")
    raise AmbiguousTerminationError(
        f"{len(outcomes)} different decodings of {symbol_count} symbols; pass bit_length")

def huffman_decode(packed: bytes, table: Union[HuffmanNode, DecodeTable, None], *,
                   bit_length: Optional[int] = None,
                   symbol_count: Optional[int] = None) -> bytes:
    """
    Decode a packed bitstream with either the tree or the decode table.

    The stream carries no length of its own, so the caller must say where it
    ends: ``bit_length`` (valid bits) or ``symbol_count`` (symbols to emit).
    ``bit_length`` always suffices. ``symbol_count`` alone has to guess how
    many bits of the last byte are valid and raises AmbiguousTerminationError
    when more than one guess decodes cleanly.

    Running out of bits in the middle of a code raises AmbiguousTerminationError.
    """
    if bit_length is None and symbol_count is None:
        raise ValueError("bit_length or symbol_count is required to terminate decoding")
    if symbol_count is not None and symbol_count < 0:
        raise ValueError("symbol_count must be >= 0")

    bits = unpack_bits(packed, bit_length) if bit_length is not None else None
    if symbol_count == 0 or bits == [] or (bits is None and not packed):
        if symbol_count:
            raise AmbiguousTerminationError(f"no bits to decode {symbol_count} symbols")
        if bits:
            raise DecodeError(f"{len(bits)} bits left over after 0 symbols")
        return b""
    if not table:
        raise ValueError("a tree or a non-empty decode table is required")

    if isinstance(table, dict):
        start, step = _table_stepper(table)
    else:
        start, step = _tree_stepper(table)

    if bits is None:
        return _decode_by_count(packed, step, start, symbol_count)

    decoded, _, pending, consumed = _walk(bits, step, start, symbol_count)
    if symbol_count is not None and len(decoded) == symbol_count:
        if consumed != len(bits):
            raise DecodeError(f"{symbol_count} symbols decoded after {consumed} of {len(bits)} bits")
        return bytes(decoded)
    if pending:
        raise AmbiguousTerminationError("bitstream ends in the middle of a code")
    if symbol_count is not None:
        raise AmbiguousTerminationError(
            f"bitstream exhausted after {len(decoded)} of {symbol_count} symbols")
    return bytes(decoded)
