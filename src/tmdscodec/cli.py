# Copyright (c) 2024 Seb Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""
Command-line tool for poking at the TMDS encoding: encode and decode
streams by hand, dump code tables, and emit Verilog for the gateware.
"""
import argparse
import enum
import logging
import sys

from amaranth.back import verilog

from tmdscodec.encoding import Encoder, decode
from tmdscodec.gateware import TMDSDecoder, TMDSEncoder
from tmdscodec.types    import InvertRule, Symbol

class CliAction(str, enum.Enum):
    Encode  = "encode"
    Decode  = "decode"
    Table   = "table"
    Verilog = "verilog"

def _int_in_range(bits, what):
    def parse(s):
        try:
            value = int(s, 0)
        except ValueError:
            raise argparse.ArgumentTypeError(f"{s!r} is not an integer literal")
        if not 0 <= value < (1 << bits):
            raise argparse.ArgumentTypeError(f"{what} {s} does not fit in {bits} bits")
        return value
    return parse

def _add_rule(parser):
    parser.add_argument('--rule', type=InvertRule, default=InvertRule.OPPOSITE_SIGN,
                        choices=[r.value for r in InvertRule],
                        help="DC balance invert rule (default: opposite-sign).")

def build_parser():
    parser = argparse.ArgumentParser(prog="tmdscodec",
                                     description="TMDS 8b/10b data encoding tools.")
    parser.add_argument('--verbose', action='store_true',
                        help="Enable debug logging.")
    sub = parser.add_subparsers(dest="action", required=True)

    p = sub.add_parser(CliAction.Encode.value, help="Encode words in order on one channel.")
    p.add_argument('--bias', type=int, default=0,
                   help="Running bias to start from (default: 0).")
    _add_rule(p)
    p.add_argument('words', nargs='+', type=_int_in_range(8, "word"),
                   help="Words to encode, e.g. 0x10 0b1010 255.")

    p = sub.add_parser(CliAction.Decode.value, help="Decode 10-bit symbols.")
    p.add_argument('symbols', nargs='+', type=_int_in_range(10, "symbol"),
                   help="Symbols to decode, e.g. 0b0100000000 0x200.")

    p = sub.add_parser(CliAction.Table.value,
                       help="Print the symbol for every word from a fixed starting bias.")
    p.add_argument('--bias', type=int, default=0,
                   help="Running bias every entry starts from (default: 0).")
    _add_rule(p)

    p = sub.add_parser(CliAction.Verilog.value, help="Emit Verilog for the gateware.")
    _add_rule(p)
    p.add_argument('--bias-width', type=int, default=16,
                   help="Encoder: width of the running bias register (default: 16).")
    p.add_argument('--pipelined', action='store_true',
                   help="Encoder: add a pipeline stage before DC balancing.")
    p.add_argument('--decoder', action='store_true',
                   help="Emit the decoder instead of the encoder.")
    p.add_argument('-o', '--output', type=str, default=None,
                   help="Write to this file instead of stdout.")
    return parser

def main(argv=None):

    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging.
    logging.basicConfig(format="%(levelname)s: %(message)s")
    logging.getLogger().setLevel(logging.DEBUG if args.verbose else logging.INFO)

    if args.action == CliAction.Encode:
        encoder = Encoder(bias=args.bias, rule=args.rule)
        for word in args.words:
            symbol = encoder.encode_next(word)
            print(f"0x{word:02x} -> {symbol} bias={encoder.bias:+d}")

    elif args.action == CliAction.Decode:
        for value in args.symbols:
            symbol = Symbol.from_int(value)
            print(f"{symbol} -> 0x{decode(symbol):02x}")

    elif args.action == CliAction.Table:
        logging.debug(f"code table from bias={args.bias:+d} rule={args.rule.value}")
        for word in range(256):
            encoder = Encoder(bias=args.bias, rule=args.rule)
            symbol = encoder.encode_next(word)
            print(f"0x{word:02x} {symbol} {encoder.bias:+d}")

    elif args.action == CliAction.Verilog:
        if args.decoder:
            name, dut = "tmds_decoder", TMDSDecoder()
        else:
            try:
                dut = TMDSEncoder(rule=args.rule, bias_width=args.bias_width,
                                  pipelined=args.pipelined)
            except ValueError as e:
                parser.error(str(e))
            name = "tmds_encoder"
        text = verilog.convert(dut, name=name)
        if args.output:
            logging.info(f"Writing {name} to {args.output}")
            with open(args.output, "w") as f:
                f.write(text)
        else:
            sys.stdout.write(text)

    return 0
