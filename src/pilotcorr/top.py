# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""
Top-level pilot detector. Build or simulate it with:

.. code-block:: bash

   # emit build/pilot_detector.v
   pilotcorr build

   # simulate a generated pilot burst, cross-checked against the model
   pilotcorr sim --seed 3 --lead 40

"""

from amaranth import *
from amaranth.lib import stream, wiring
from amaranth.lib.wiring import In, Out

from . import CORR, NARROW, NARROW_SHIFT, PAYLOAD_DEPTH, PILOT, SAMPLE
from .correlator import Correlator
from .detector import Detector, Forwarder
from .history import ShiftHistory


class PilotDetector(wiring.Component):

    """
    Streaming matched-filter detector for the 7-symbol :py:`PILOT`.

    Every accepted sample is narrowed to its top 14 bits and shifted into
    a 7-deep correlation history, and shifted unmodified into a 5-deep
    payload history. The correlation history feeds a pipelined
    :py:`Correlator`, whose output is compared against :py:`threshold`.
    Once the correlation exceeds the threshold, detection latches: the
    correlation history and :py:`corr` freeze, and every following
    accepted sample causes one payload sample to be emitted on :py:`o`.

    Members
    -------
    i : :py:`In(stream.Signature(SAMPLE))`
        Sample input. :py:`i.ready` is asserted on every cycle.
    o : :py:`Out(stream.Signature(SAMPLE))`
        Forwarded payload. :py:`o.ready` is not honored.
    threshold : :py:`In(unsigned(32))`
        Detection threshold, reinterpreted as signed.
    found : :py:`Out(1)`
        Detection flag, sticky until reset.
    corr : :py:`Out(CORR)`
        Current registered correlation value.
    rst_n : :py:`In(1)`
        Synchronous active-low reset, in addition to the domain reset.
    """

    i:         In(stream.Signature(SAMPLE))
    o:         Out(stream.Signature(SAMPLE))
    threshold: In(unsigned(32))
    found:     Out(1)
    corr:      Out(CORR)
    rst_n:     In(1, init=1)

    def __init__(self):
        self.corr_history    = ShiftHistory(NARROW, len(PILOT))
        self.payload_history = ShiftHistory(SAMPLE, PAYLOAD_DEPTH)
        self.correlator      = Correlator(PILOT)
        self.detector        = Detector()
        self.forwarder       = Forwarder()
        super().__init__()

    def elaborate(self, platform):
        m = Module()

        rst = ~self.rst_n
        m.submodules.corr_history    = ResetInserter(rst)(self.corr_history)
        m.submodules.payload_history = ResetInserter(rst)(self.payload_history)
        m.submodules.correlator      = ResetInserter(rst)(self.correlator)
        m.submodules.detector        = ResetInserter(rst)(self.detector)
        m.submodules.forwarder       = ResetInserter(rst)(self.forwarder)

        # Intake never applies backpressure.
        m.d.comb += self.i.ready.eq(1)
        accepted = self.i.valid & self.i.ready

        m.d.comb += [
            self.corr_history.en.eq(accepted & ~self.detector.found),
            self.corr_history.i.eq(self.i.payload[NARROW_SHIFT:].as_signed()),
            self.payload_history.en.eq(accepted),
            self.payload_history.i.eq(self.i.payload),

            self.correlator.window.eq(self.corr_history.o),
            self.correlator.hold.eq(self.detector.found),

            self.detector.corr.eq(self.correlator.corr),
            self.detector.threshold.eq(self.threshold),

            self.forwarder.en.eq(accepted),
            self.forwarder.forward.eq(self.detector.forward),
            self.forwarder.payload.eq(self.payload_history.o),

            self.found.eq(self.detector.found),
            self.corr.eq(self.correlator.corr),
        ]

        wiring.connect(m, self.forwarder.o, wiring.flipped(self.o))

        return m
