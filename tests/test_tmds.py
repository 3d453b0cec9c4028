# Copyright (c) 2024 Seb Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

import random
import unittest
from parameterized import parameterized

from amaranth import *
from amaranth.sim import *

from tmdscodec.encoding import Encoder, decode
from tmdscodec.gateware import TMDSDecoder, TMDSEncoder
from tmdscodec.types import InvertRule

def encoder_under_test(**kwargs):
    m = Module()
    dut = TMDSEncoder(**kwargs)
    m.submodules.dut = dut
    m = DomainRenamer({"dvi": "sync"})(m)
    return m, dut

class TMDSEncoderTests(unittest.TestCase):

    @parameterized.expand([
        ["opposite_sign",           InvertRule.OPPOSITE_SIGN, False],
        ["opposite_sign_pipelined", InvertRule.OPPOSITE_SIGN, True],
        ["same_sign",               InvertRule.SAME_SIGN,     False],
        ["same_sign_pipelined",     InvertRule.SAME_SIGN,     True],
    ])
    def test_matches_model(self, name, rule, pipelined):

        m, dut = encoder_under_test(rule=rule, pipelined=pipelined)
        latency = 2 if pipelined else 1

        rng = random.Random(0)
        test_sequence = list(range(256)) + [rng.randrange(256) for _ in range(500)]

        model = Encoder(rule=rule)
        expected = []
        for word in test_sequence:
            symbol = model.encode_next(word)
            expected.append((symbol.as_int(), model.bias))

        async def testbench(ctx):
            # Start from a reset channel
            ctx.set(dut.de, 0)
            await ctx.tick().repeat(2)
            ctx.set(dut.de, 1)
            results = []
            for word in test_sequence + [0] * (latency - 1):
                ctx.set(dut.data_in, word)
                await ctx.tick()
                results.append((ctx.get(dut.tmds), ctx.get(dut.bias)))
            results = results[latency-1:]
            for i, (word, got, want) in enumerate(zip(test_sequence, results, expected)):
                self.assertEqual(got, want, f"symbol {i}, word {word:#04x}")

        sim = Simulator(m)
        sim.add_clock(1e-6)  # 1MHz clock in dvi domain
        sim.add_testbench(testbench)
        with sim.write_vcd(vcd_file=open(f"test_tmds_model_{name}.vcd", "w")):
            sim.run()

    def test_dc_balance(self):

        m, dut = encoder_under_test(rule=InvertRule.SAME_SIGN, bias_width=5)

        # Generate a sequence that would accumulate DC bias
        test_sequence = [0b11111111] * 10 + [0b00000000] * 10

        async def testbench(ctx):
            # Initialize outside a data period to reset bias
            ctx.set(dut.de, 0)
            await ctx.tick()
            # Track running disparity
            disparity = 0
            ctx.set(dut.de, 1)
            for data in test_sequence:
                ctx.set(dut.data_in, data)
                await ctx.tick()
                result = ctx.get(dut.tmds)
                ones_count = bin(result).count('1')
                zeros_count = 10 - ones_count
                new_disparity = disparity + (ones_count - zeros_count)
                # Disparity should be controlled (not growing unbounded)
                assert abs(new_disparity) <= 8, f"Disparity {new_disparity} exceeded bounds"
                assert ctx.get(dut.bias) == new_disparity, "Bias register disagrees with output"
                disparity = new_disparity

        sim = Simulator(m)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        with sim.write_vcd(vcd_file=open("test_tmds_dc_balance.vcd", "w")):
            sim.run()

    def test_mode_transitions(self):

        m, dut = encoder_under_test()

        async def testbench(ctx):
            ctx.set(dut.de, 0)
            await ctx.tick()
            assert ctx.get(dut.bias) == 0, "Bias not reset outside data period"
            # Enter data period
            ctx.set(dut.de, 1)
            ctx.set(dut.data_in, 0b10101010)
            await ctx.tick()
            data_output = ctx.get(dut.tmds)
            # Push the bias away from zero
            for data in [0x00, 0x13, 0xFF, 0x7E]:
                ctx.set(dut.data_in, data)
                await ctx.tick()
            assert ctx.get(dut.bias) != 0, "Bias should have moved"
            # Leave the data period, output holds and bias resets
            held = ctx.get(dut.tmds)
            ctx.set(dut.de, 0)
            await ctx.tick()
            assert ctx.get(dut.bias) == 0, "Bias was not reset"
            assert ctx.get(dut.tmds) == held, "Output changed outside data period"
            # Back to data with same input - should get same output after reset
            ctx.set(dut.de, 1)
            ctx.set(dut.data_in, 0b10101010)
            await ctx.tick()
            assert ctx.get(dut.tmds) == data_output, "Bias was not properly reset"

        sim = Simulator(m)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        with sim.write_vcd(vcd_file=open("test_tmds_mode_transitions.vcd", "w")):
            sim.run()

    def test_bias_width(self):
        with self.assertRaises(ValueError):
            TMDSEncoder(bias_width=4)
        TMDSEncoder(rule=InvertRule.SAME_SIGN, bias_width=5)


class TMDSDecoderTests(unittest.TestCase):

    def test_all_symbols(self):

        m = Module()
        dut = TMDSDecoder()
        m.submodules.dut = dut
        m = DomainRenamer({"dvi": "sync"})(m)

        async def testbench(ctx):
            for symbol in range(1024):
                ctx.set(dut.tmds, symbol)
                await ctx.tick()
                self.assertEqual(ctx.get(dut.data_out), decode(symbol), f"symbol {symbol:#05x}")

        sim = Simulator(m)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        with sim.write_vcd(vcd_file=open("test_tmds_decoder.vcd", "w")):
            sim.run()

    @parameterized.expand([
        ["unpipelined", False],
        ["pipelined",   True],
    ])
    def test_loopback(self, name, pipelined):

        m = Module()
        m.submodules.enc = enc = TMDSEncoder(pipelined=pipelined)
        m.submodules.dec = dec = TMDSDecoder()
        m.d.comb += dec.tmds.eq(enc.tmds)
        m = DomainRenamer({"dvi": "sync"})(m)
        latency = (2 if pipelined else 1) + 1

        rng = random.Random(1)
        test_sequence = [rng.randrange(256) for _ in range(300)]

        async def testbench(ctx):
            ctx.set(enc.de, 0)
            await ctx.tick().repeat(2)
            ctx.set(enc.de, 1)
            received = []
            for word in test_sequence + [0] * (latency - 1):
                ctx.set(enc.data_in, word)
                await ctx.tick()
                received.append(ctx.get(dec.data_out))
            self.assertEqual(received[latency-1:], test_sequence)

        sim = Simulator(m)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        with sim.write_vcd(vcd_file=open(f"test_tmds_loopback_{name}.vcd", "w")):
            sim.run()
