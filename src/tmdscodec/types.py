# Copyright (c) 2024 Seb Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

import enum
from dataclasses import dataclass

from amaranth import *
from amaranth.lib import data

from .bitops import bit_bias, to_bits

WORD_BITS   = 8
SYMBOL_BITS = 10


class InvertRule(str, enum.Enum):
    """
    How the DC balancer decides to invert the data bits of a symbol when
    neither the running bias nor the candidate bias is zero.
    """
    # Invert when running bias and candidate bias have opposite signs.
    OPPOSITE_SIGN = "opposite-sign"
    # Invert when they share a sign (DVI 1.0 behaviour).
    SAME_SIGN     = "same-sign"


class SymbolLayout(data.Struct):
    """
    Bit layout of a 10-bit TMDS symbol as it appears on the wire.
    `data` is transmitted first (bit 0), `inverted` last (bit 9).
    """
    data:     unsigned(8)
    use_xor:  unsigned(1)
    inverted: unsigned(1)


@dataclass(frozen=True)
class Symbol:
    """A 10-bit TMDS symbol, split into its data and control bits."""

    data: int
    use_xor: bool
    inverted: bool

    def __post_init__(self):
        if not 0 <= self.data <= 0xFF:
            raise ValueError(f"symbol data must be 8 bits, got {self.data!r}")

    @staticmethod
    def from_int(value):
        if not isinstance(value, int):
            raise TypeError(f"expected an integer symbol, got {type(value).__name__}")
        if not 0 <= value < (1 << SYMBOL_BITS):
            raise ValueError(f"{value:#x} is not a 10-bit symbol")
        return Symbol(data=value & 0xFF,
                      use_xor=bool((value >> 8) & 1),
                      inverted=bool((value >> 9) & 1))

    def as_int(self):
        return self.data | (int(self.use_xor) << 8) | (int(self.inverted) << 9)

    def __int__(self):
        return self.as_int()

    def bits(self):
        return to_bits(self.as_int(), SYMBOL_BITS)

    def bias(self):
        """Ones minus zeros over all 10 transmitted bits."""
        return bit_bias(self.bits())

    def __str__(self):
        return f"0b{self.as_int():010b}"
