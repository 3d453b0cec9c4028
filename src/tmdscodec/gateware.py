# Copyright (c) 2024 Seb Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0
#
# The encoder structure (registered output, DC bias register, balance
# computed from a ones count) follows the Amaranth TMDS encoder inspired by:
# "Project F Library - TMDS Encoder for DVI"
#   - Original attribution:
#       Copyright Will Green
#       Open source hardware released under the MIT License
#       Learn more at https://projectf.io

"""Synthesizable TMDS data encoder and decoder."""

import logging

from amaranth import *
from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out

from .encoding import XNOR_MASK
from .types import InvertRule, SymbolLayout


class TMDSEncoder(wiring.Component):
    """
    TMDS encoder for one data channel.

    Encodes 8-bit words into 10-bit symbols bit-exactly like
    :class:`tmdscodec.encoding.Encoder`. Control period symbols are not
    generated here: while `de` is low the running bias is held at zero
    and `tmds` keeps its last value, so the transport can mux in its own
    control codes and the next data period starts from a reset channel.

    The bias register is `bias_width` bits wide and wraps on overflow.
    With `InvertRule.SAME_SIGN` 5 bits are always enough, with
    `InvertRule.OPPOSITE_SIGN` the bias can drift, so size it for the
    longest data period you expect.

    With `pipelined=True` an extra register sits between candidate
    selection and DC balancing, for ~double Fmax. Latency is then
    2 cycles instead of 1.

    This component operates in a `dvi` domain running at the pixel clock.
    """

    def __init__(self, rule=InvertRule.OPPOSITE_SIGN, bias_width=16, pipelined=False):
        if bias_width < 5:
            raise ValueError(f"bias_width must be at least 5 bits, got {bias_width}")
        self.rule       = InvertRule(rule)
        self.bias_width = bias_width
        self.pipelined  = pipelined
        super().__init__({
            "data_in": In(8),                    # Word to encode
            "de":      In(1),                    # Data enable, low resets the bias
            "tmds":    Out(10),                  # Encoded TMDS symbol
            "bias":    Out(signed(bias_width)),  # Running bias after `tmds`
        })

    def elaborate(self, platform):
        m = Module()

        logging.info(f"TMDSEncoder: rule={self.rule.value} bias_width={self.bias_width} "
                     f"pipelined={self.pipelined}")

        # Register for output
        tmds_r = Signal(SymbolLayout)
        m.d.comb += self.tmds.eq(tmds_r)

        # Register for ongoing DC bias
        bias = Signal(signed(self.bias_width), init=0)
        m.d.comb += self.bias.eq(bias)

        # Select basic encoding based on number of ones in bits 1..7
        tail_1s = Signal(3)
        use_xnor = Signal()
        m.d.comb += [
            tail_1s.eq(sum(self.data_in[1:8])),
            use_xnor.eq(tail_1s >= 4),
        ]

        # XOR chain, first bit is unmodified
        xor_bits = [self.data_in[0]]
        for i in range(1, 8):
            xor_bits.append(xor_bits[i-1] ^ self.data_in[i])
        enc_xor = Signal(8)
        m.d.comb += enc_xor.eq(Cat(*xor_bits))

        # XNOR chain is the XOR chain with odd bits flipped. Bit 8 is
        # the selector: 1 when the XOR chain was used.
        enc_qm = Signal(9)
        m.d.comb += enc_qm.eq(Cat(Mux(use_xnor, enc_xor ^ XNOR_MASK, enc_xor), ~use_xnor))

        de = self.de
        if self.pipelined:
            # ========== PIPELINE STAGE ==========
            enc_qm_r = Signal(9)
            de_r = Signal()
            m.d.dvi += [
                enc_qm_r.eq(enc_qm),
                de_r.eq(self.de),
            ]
            enc_qm = enc_qm_r
            de = de_r

        # Calculate disparity for DC balancing
        ones = Signal(signed(5))
        zeros = Signal(signed(5))
        balance = Signal(signed(5))

        m.d.comb += [
            ones.eq(sum(enc_qm[0:8])),
            zeros.eq(8 - ones),
            balance.eq(ones - zeros)
        ]

        if self.rule == InvertRule.OPPOSITE_SIGN:
            invert = ((bias > 0) & (balance < 0)) | ((bias < 0) & (balance > 0))
        else:
            invert = ((bias > 0) & (balance > 0)) | ((bias < 0) & (balance < 0))

        with m.If(~de):
            # Channel reset outside of data periods
            m.d.dvi += bias.eq(0)

        with m.Elif((bias == 0) | (balance == 0)):
            # No prior bias or disparity, control bits are 01 or 10
            with m.If(enc_qm[8] == 0):
                m.d.dvi += [
                    tmds_r.data.eq(~enc_qm[0:8]),
                    tmds_r.use_xor.eq(0),
                    tmds_r.inverted.eq(1),
                    bias.eq(bias - balance)
                ]
            with m.Else():
                m.d.dvi += [
                    tmds_r.data.eq(enc_qm[0:8]),
                    tmds_r.use_xor.eq(1),
                    tmds_r.inverted.eq(0),
                    bias.eq(bias + balance)
                ]

        with m.Elif(invert):
            m.d.dvi += [
                tmds_r.data.eq(~enc_qm[0:8]),
                tmds_r.use_xor.eq(enc_qm[8]),
                tmds_r.inverted.eq(1),
                bias.eq(bias + Cat(Const(0, 1), enc_qm[8], Const(0, 3)).as_signed() - balance)
            ]

        with m.Else():
            m.d.dvi += [
                tmds_r.data.eq(enc_qm[0:8]),
                tmds_r.use_xor.eq(enc_qm[8]),
                tmds_r.inverted.eq(0),
                bias.eq(bias - Cat(Const(0, 1), ~enc_qm[8], Const(0, 3)).as_signed() + balance)
            ]

        return m


class TMDSDecoder(wiring.Component):
    """
    TMDS decoder for one data channel, the inverse of :class:`TMDSEncoder`.

    Stateless per symbol: needs only the two control bits of each symbol.
    Control period symbols are not recognized and decode to arbitrary
    words; framing is up to the receiver. One cycle of latency in the
    `dvi` domain.
    """

    tmds:     In(10)   # Received TMDS symbol
    data_out: Out(8)   # Recovered word

    def elaborate(self, platform):
        m = Module()

        symbol = Signal(SymbolLayout)
        m.d.comb += symbol.eq(self.tmds)

        # Undo inversion, then map an XNOR chain back onto the XOR chain
        candidate = Signal(8)
        m.d.comb += candidate.eq(
            Mux(symbol.inverted, ~symbol.data, symbol.data) ^
            Mux(symbol.use_xor, 0, XNOR_MASK))

        # w[n] = c[n-1] ^ c[n], first bit is unmodified
        m.d.dvi += self.data_out.eq(Cat(
            candidate[0],
            *[candidate[n-1] ^ candidate[n] for n in range(1, 8)]
        ))

        return m
