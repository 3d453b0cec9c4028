# Copyright (c) 2024 Seb Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""
Stateless helpers over ordered bit sequences.

Bit sequences are indexed in transmission order: element 0 is the first
bit on the wire, which is also the least-significant bit of the integer
the sequence was unpacked from.
"""

def _check(bits):
    for b in bits:
        if b not in (0, 1):
            raise ValueError(f"bit sequence may only contain 0 or 1, got {b!r}")
    return bits

def to_bits(value, width):
    """Unpack `value` into a tuple of `width` bits, LSB first."""
    if not isinstance(value, int):
        raise TypeError(f"expected an integer, got {type(value).__name__}")
    if value < 0 or value >= (1 << width):
        raise ValueError(f"{value} does not fit in {width} unsigned bits")
    return tuple((value >> i) & 1 for i in range(width))

def from_bits(bits):
    """Pack an LSB-first bit sequence back into an integer."""
    return sum(b << i for i, b in enumerate(_check(bits)))

def count_ones(bits):
    return sum(_check(bits))

def count_transitions(bits):
    """Number of adjacent pairs that differ, n-1 comparisons for n bits."""
    bits = _check(tuple(bits))
    return sum(a != b for a, b in zip(bits, bits[1:]))

def bit_bias(bits):
    """Ones minus zeros over the whole sequence, in [-n, +n]."""
    bits = _check(tuple(bits))
    ones = sum(bits)
    return ones - (len(bits) - ones)
