# Copyright (c) 2024 Seb Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""TMDS 8b/10b data encoding, as a software model and as gateware."""

from .types    import InvertRule, Symbol, SymbolLayout
from .encoding import Encoder, Decoder, decode

__all__ = ["InvertRule", "Symbol", "SymbolLayout", "Encoder", "Decoder", "decode"]
