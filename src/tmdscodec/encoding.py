# Copyright (c) 2024 Seb Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""
Software model of the TMDS 8b/10b data encoding.

Each 8-bit word is turned into two transition-minimized candidates
(the XOR and XNOR chains), one of them is picked by counting the ones
in the word, and the DC balancer then decides whether to invert the
picked candidate based on the running bias carried between symbols.

This model is the reference the gateware in `tmdscodec.gateware` is
simulated against.
"""

from typing import NamedTuple

from .bitops import bit_bias, count_ones, count_transitions, from_bits, to_bits
from .types import WORD_BITS, InvertRule, Symbol

# Complementing the odd bits of the XOR chain gives the XNOR chain
# q[n] = ~(q[n-1] ^ w[n]) without a second recurrence.
XNOR_MASK = 0b10101010


class Candidates(NamedTuple):
    xor: tuple
    xnor: tuple


def _word_bits(word):
    if isinstance(word, bool) or not isinstance(word, int):
        raise TypeError(f"expected an integer word, got {type(word).__name__}")
    return to_bits(word, WORD_BITS)

def candidates(word):
    """Both chained candidates for `word`, as LSB-first bit tuples."""
    w = _word_bits(word)
    xor = [w[0]]
    for n in range(1, WORD_BITS):
        xor.append(xor[n-1] ^ w[n])
    xnor = [b ^ ((XNOR_MASK >> n) & 1) for n, b in enumerate(xor)]
    return Candidates(tuple(xor), tuple(xnor))

def select(word, cands):
    """
    Pick a candidate by counting the ones in bits 1..7 of `word`.
    Returns `(candidate, use_xor)`.

    Every one in the tail forces a transition in the XOR chain and every
    zero forces one in the XNOR chain, so four or more ones means the
    XNOR chain is the quieter of the two. Seven tail bits cannot tie.
    """
    if count_ones(_word_bits(word)[1:]) >= 4:
        return cands.xnor, False
    return cands.xor, True

def select_by_transitions(word, cands):
    """
    Pick a candidate by directly counting transitions in each chain,
    preferring the XOR chain on a tie. Returns `(candidate, use_xor)`.

    Equivalent to `select()` for every word, but more expensive; kept as
    the oracle `select()` is checked against.
    """
    _word_bits(word)
    if count_transitions(cands.xnor) < count_transitions(cands.xor):
        return cands.xnor, False
    return cands.xor, True

def dc_balance(candidate, use_xor, bias, rule=InvertRule.OPPOSITE_SIGN):
    """
    Decide whether to invert `candidate`, build the final symbol, and
    return `(symbol, updated_bias)`.

    With no running bias, or a perfectly balanced candidate, the invert
    flag is the complement of the selector bit so that the two control
    bits are always `01` or `10`. Otherwise the sign relationship between
    `bias` and the candidate's own bias decides, according to `rule`.
    The running bias is then advanced by the bias of all 10 bits of the
    symbol actually transmitted.
    """
    candidate_bias = bit_bias(candidate)
    if bias == 0 or candidate_bias == 0:
        invert = not use_xor
    elif InvertRule(rule) == InvertRule.OPPOSITE_SIGN:
        invert = (bias < 0) != (candidate_bias < 0)
    else:
        invert = (bias < 0) == (candidate_bias < 0)

    data = from_bits(candidate)
    if invert:
        data ^= 0xFF
    symbol = Symbol(data=data, use_xor=bool(use_xor), inverted=invert)
    return symbol, bias + symbol.bias()


class Encoder:
    """
    Stateful TMDS encoder for a single channel.

    Owns the running bias of one channel. Words must be passed to
    `encode_next()` in transmission order, and one instance must not be
    shared between channels or used from several threads without
    external locking. Call `reset()` whenever the link leaves the data
    period (e.g. around control periods); the bias starts again from 0.
    """

    def __init__(self, bias=0, rule=InvertRule.OPPOSITE_SIGN):
        if isinstance(bias, bool) or not isinstance(bias, int):
            raise TypeError(f"running bias must be an integer, got {type(bias).__name__}")
        self.rule = InvertRule(rule)
        self._bias = bias

    @property
    def bias(self):
        return self._bias

    def reset(self):
        self._bias = 0

    def encode_next(self, word):
        cands = candidates(word)
        candidate, use_xor = select(word, cands)
        symbol, self._bias = dc_balance(candidate, use_xor, self._bias, self.rule)
        return symbol

    def encode(self, words):
        """Encode an iterable of words in order, returning a list of symbols."""
        return [self.encode_next(word) for word in words]


def decode(symbol):
    """
    Recover the 8-bit word carried by `symbol` (a `Symbol` or a 10-bit
    integer). Needs no running bias: the control bits say everything.
    """
    if not isinstance(symbol, Symbol):
        symbol = Symbol.from_int(symbol)
    candidate = symbol.data
    if symbol.inverted:
        candidate ^= 0xFF
    if not symbol.use_xor:
        candidate ^= XNOR_MASK
    c = to_bits(candidate, WORD_BITS)
    return from_bits([c[0]] + [c[n-1] ^ c[n] for n in range(1, WORD_BITS)])


class Decoder:
    """Stateless per-symbol TMDS decoder, safe to share between threads."""

    def decode(self, symbol):
        return decode(symbol)

    def decode_all(self, symbols):
        return [decode(symbol) for symbol in symbols]
