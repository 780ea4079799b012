# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

from amaranth import *
from amaranth.lib import data, stream, wiring
from amaranth.lib.wiring import In, Out

from . import CORR, FORWARD_OFFSET, PAYLOAD_DEPTH, SAMPLE


class Detector(wiring.Component):

    """
    One-shot threshold detector.

    Starts in 'SEARCHING'. The first cycle :py:`corr` is strictly greater
    than :py:`threshold` (both signed) moves it to 'LOCKED', which is only
    left by reset. :py:`forward` is registered on the same edge and is
    likewise sticky.

    :py:`threshold` is a raw 32-bit wire and is reinterpreted as signed
    every cycle, so any bit pattern is a valid threshold.
    """

    corr:      In(CORR)
    threshold: In(unsigned(32))
    found:     Out(1)
    forward:   Out(1)

    def elaborate(self, platform):
        m = Module()

        with m.FSM(init="SEARCHING") as fsm:
            with m.State("SEARCHING"):
                with m.If(self.corr > self.threshold.as_signed()):
                    m.d.sync += self.forward.eq(1)
                    m.next = "LOCKED"
            with m.State("LOCKED"):
                pass

        m.d.comb += self.found.eq(fsm.ongoing("LOCKED"))

        return m


class Forwarder(wiring.Component):

    """
    Emits one element of the payload history per accepted sample once
    :py:`forward` is set.

    The emitted element is :py:`payload[FORWARD_OFFSET]` as it was before
    this cycle's shift, i.e. the output trails the input by 4 accepted
    samples. This offset compensates for the correlator latency: with an
    uninterrupted input stream, the first forwarded sample is the second
    sample after the matched pilot, not the one that arrives alongside
    the detection.

    :py:`o.valid` is a registered strobe. :py:`o.ready` is not looked at:
    a consumer that is not ready simply misses the sample.
    """

    en:      In(1)
    forward: In(1)
    payload: In(data.ArrayLayout(SAMPLE, PAYLOAD_DEPTH))
    o:       Out(stream.Signature(SAMPLE))

    def elaborate(self, platform):
        m = Module()

        with m.If(self.en & self.forward):
            m.d.sync += [
                self.o.payload.eq(self.payload[FORWARD_OFFSET]),
                self.o.valid.eq(1),
            ]
        with m.Else():
            m.d.sync += self.o.valid.eq(0)

        return m
