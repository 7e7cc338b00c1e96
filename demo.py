"""
Encode a random alphanumeric string and print the result

How to run:
  python demo.py
  python demo.py --size 64 --seed 7
"""

from __future__ import annotations

import argparse
from typing import List

import huffman as huff
from experiments import gen_alphanumeric


def format_codes(codes: huff.CodeTable) -> List[str]:
    # shortest codes first
    ordered = sorted(codes.items(), key=lambda kv: (len(kv[1]), kv[1]))
    return [f"  {chr(symbol)!r}: {code}" for symbol, code in ordered]

def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Huffman-encode random alphanumeric text")
    ap.add_argument("--size", type=int, default=1024, help="Number of characters to generate")
    ap.add_argument("--seed", type=int, default=None, help="Random seed (random when omitted)")
    args = ap.parse_args(argv)

    text = gen_alphanumeric(max(0, args.size), seed=args.seed)
    encoded = huff.huffman_encode(text)

    print(f"Encoded: {list(encoded.data)}")
    print(f"Codes ({len(encoded.codes)} symbols):")
    for line in format_codes(encoded.codes):
        print(line)
    print(f"{len(text)} bytes -> {len(encoded.data)} bytes "
          f"({encoded.bit_length} bits, {encoded.pad_bits} padding)")

    ok = encoded.decode() == text
    print(f"Round trip: {'ok' if ok else 'FAILED'}")
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
