# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Fixed-depth sample histories."""

from amaranth import *
from amaranth.lib import data, wiring
from amaranth.lib.wiring import In, Out


class ShiftHistory(wiring.Component):

    """
    Fixed-depth shift register of the most recent samples.

    On each cycle where :py:`en` is asserted, every slot moves one
    position towards index 0 (the oldest entry is dropped) and :py:`i`
    is written to the tail at index :py:`depth-1`. Otherwise the
    contents are held indefinitely. All slots reset to zero.

    The detector instantiates 2 of these with different enables: one
    that freezes on detection (correlation window) and one that never
    freezes (payload window).

    Members
    -------
    en : :py:`In(1)`
        Shift enable, usually 'a sample was accepted this cycle'.
    i : :py:`In(shape)`
        Sample written to the tail on a shift.
    o : :py:`Out(data.ArrayLayout(shape, depth))`
        Registered history, index 0 oldest.
    """

    def __init__(self, shape, depth):
        shape = Shape.cast(shape)
        if depth < 1:
            raise ValueError(f"ShiftHistory depth must be at least 1, not {depth}")
        self.shape = shape
        self.depth = depth
        super().__init__({
            "en": In(1),
            "i":  In(shape),
            "o":  Out(data.ArrayLayout(shape, depth)),
        })

    def elaborate(self, platform):
        m = Module()

        with m.If(self.en):
            for n in range(self.depth - 1):
                m.d.sync += self.o[n].eq(self.o[n + 1])
            m.d.sync += self.o[self.depth - 1].eq(self.i)

        return m
