# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""
Pipelined correlator: one multiplier per tap followed by a registered
adder tree. Each tree level is its own set of registers, so the latency
from :py:`Correlator.window` to :py:`Correlator.corr` is fixed and does
not depend on the input values.

For the 7-tap pilot, the stages are:

    window (7) --[x PILOT]--> products (7)
               --[+]--------> level 1 (4): p0+p1, p2+p3, p4+p5, p6
               --[+]--------> level 2 (2): s0+s1, s2+s3
               --[+]--------> corr (1), held while :py:`hold` is asserted

All sums are truncated to :py:`CORR`, so overflow wraps silently.
"""

from amaranth import *
from amaranth.lib import data, wiring
from amaranth.lib.wiring import In, Out

from . import CORR, NARROW, PILOT

NARROW_MIN = -(1 << (NARROW.width - 1))
NARROW_MAX = (1 << (NARROW.width - 1)) - 1


class Correlator(wiring.Component):

    """
    Sum of products between a sample window and fixed coefficients.

    Members
    -------
    window : :py:`In(data.ArrayLayout(NARROW, 7))`
        Sample window, index 0 oldest. Multiplied element-wise with
        :py:`coefficients` (also oldest first).
    hold : :py:`In(1)`
        While asserted, :py:`corr` keeps its last value. The multiply
        and intermediate adder stages keep running regardless.
    corr : :py:`Out(CORR)`
        Registered correlation, :py:`latency` cycles behind :py:`window`.
    """

    def __init__(self, coefficients=PILOT):
        if len(coefficients) != len(PILOT):
            raise ValueError(
                f"Correlator expects {len(PILOT)} coefficients, got {len(coefficients)}")
        for c in coefficients:
            if not NARROW_MIN <= c <= NARROW_MAX:
                raise ValueError(f"coefficient {c} does not fit {NARROW}")
        self.coefficients = tuple(coefficients)
        self.n_taps = len(self.coefficients)
        # products + one register per adder level
        self.latency = 1 + (self.n_taps - 1).bit_length()
        super().__init__({
            "window": In(data.ArrayLayout(NARROW, self.n_taps)),
            "hold":   In(1),
            "corr":   Out(CORR),
        })

    def elaborate(self, platform):
        m = Module()

        products = [Signal(CORR, name=f"product{n}") for n in range(self.n_taps)]
        for n, (p, c) in enumerate(zip(products, self.coefficients)):
            m.d.sync += p.eq(self.window[n] * Const(c, NARROW))

        # Intermediate adder levels. An odd element out is carried
        # forward unchanged into the next level.
        stage = products
        level = 1
        while len(stage) > 2:
            nxt = [Signal(CORR, name=f"l{level}_sum{n}") for n in range((len(stage) + 1) // 2)]
            for n, s in enumerate(nxt):
                if 2*n + 1 < len(stage):
                    m.d.sync += s.eq(stage[2*n] + stage[2*n + 1])
                else:
                    m.d.sync += s.eq(stage[2*n])
            stage = nxt
            level += 1

        with m.If(~self.hold):
            m.d.sync += self.corr.eq(sum(stage[1:], stage[0]))

        return m
