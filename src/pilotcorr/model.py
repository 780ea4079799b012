# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""
Cycle-accurate software model of :py:`PilotDetector`.

Every register of the gateware has a counterpart here, and :py:`DetectorModel.step`
computes all next-state values from the current state before committing
them, exactly like a clock edge. The model is used as a golden reference
by the tests and by ``pilotcorr sim``.

Arithmetic uses numpy ``int32`` arrays, which wrap on overflow in the
same way as the 32-bit registers.
"""

from dataclasses import dataclass

import numpy as np

from . import FORWARD_OFFSET, NARROW_SHIFT, PAYLOAD_DEPTH, PILOT

_MASK32 = 0xFFFF_FFFF


def as_signed32(value):
    """Reinterpret the low 32 bits of ``value`` as a signed integer."""
    value = int(value) & _MASK32
    return value - (1 << 32) if value & 0x8000_0000 else value


def narrow(sample):
    """Significant 14-bit slice of a full-width sample, signed."""
    return as_signed32(sample) >> NARROW_SHIFT


def correlate(window, coefficients=PILOT):
    """Direct (non-pipelined) correlation of ``window``, wrapped to 32 bits."""
    w = np.asarray(window, dtype=np.int32)
    c = np.asarray(coefficients, dtype=np.int32)
    if w.shape != c.shape:
        raise ValueError(f"window has {w.size} entries, expected {c.size}")
    return int((w * c).sum(dtype=np.int32))


def peak_correlation(coefficients=PILOT):
    """Correlation of the pilot against itself: the largest value it can produce."""
    return correlate(coefficients, coefficients)


def _pairwise(values):
    n = len(values) // 2 * 2
    sums = values[:n].reshape(-1, 2).sum(axis=1, dtype=np.int32)
    if len(values) % 2:
        sums = np.append(sums, values[n:])
    return sums


@dataclass(frozen=True)
class Outputs:
    """Observable signals after a clock edge."""
    i_ready:   bool
    o_valid:   bool
    o_payload: int
    found:     bool
    corr:      int


class DetectorModel:

    SEARCHING = "SEARCHING"
    LOCKED    = "LOCKED"

    def __init__(self, coefficients=PILOT):
        self.coefficients = np.asarray(coefficients, dtype=np.int32)
        self.reset()

    def reset(self):
        n_taps = len(self.coefficients)
        self.corr_history    = np.zeros(n_taps, dtype=np.int32)
        self.payload_history = np.zeros(PAYLOAD_DEPTH, dtype=np.int32)
        self.products        = np.zeros(n_taps, dtype=np.int32)
        self.levels          = []
        stage = self.products
        while len(stage) > 2:
            stage = np.zeros((len(stage) + 1) // 2, dtype=np.int32)
            self.levels.append(stage)
        self.corr      = 0
        self.state     = self.SEARCHING
        self.forward   = False
        self.o_valid   = False
        self.o_payload = 0

    @property
    def found(self):
        return self.state == self.LOCKED

    def outputs(self):
        return Outputs(
            i_ready=True,
            o_valid=self.o_valid,
            o_payload=self.o_payload,
            found=self.found,
            corr=self.corr,
        )

    def step(self, valid, sample=0, threshold=0, rst_n=True):
        """
        Advance one clock edge with the given inputs and return the
        outputs as seen after the edge.
        """
        if not rst_n:
            self.reset()
            return self.outputs()

        sample = as_signed32(sample)
        accepted = bool(valid)
        found = self.found

        # Correlator pipeline, from the registers as they are now.
        products = self.corr_history * self.coefficients
        levels = [_pairwise(s) for s in [self.products] + self.levels[:-1]]
        if found:
            corr = self.corr
        else:
            corr = int(self.levels[-1].sum(dtype=np.int32))

        # Detector
        state, forward = self.state, self.forward
        if self.state == self.SEARCHING and self.corr > as_signed32(threshold):
            state, forward = self.LOCKED, True

        # Forwarder reads the payload history before it shifts.
        if accepted and self.forward:
            o_valid, o_payload = True, int(self.payload_history[FORWARD_OFFSET])
        else:
            o_valid, o_payload = False, self.o_payload

        # Histories
        corr_history = self.corr_history
        payload_history = self.payload_history
        if accepted and not found:
            corr_history = np.append(corr_history[1:], np.int32(narrow(sample)))
        if accepted:
            payload_history = np.append(payload_history[1:], np.int32(sample))

        self.corr_history    = corr_history
        self.payload_history = payload_history
        self.products        = products
        self.levels          = levels
        self.corr            = corr
        self.state           = state
        self.forward         = forward
        self.o_valid         = o_valid
        self.o_payload       = o_payload

        return self.outputs()

    def run(self, samples, threshold, valid=None):
        """Feed ``samples`` one per cycle, returning per-cycle :py:`Outputs`."""
        if valid is None:
            valid = [True] * len(samples)
        if len(valid) != len(samples):
            raise ValueError("'valid' must have one entry per sample")
        return [self.step(v, s, threshold) for s, v in zip(samples, valid)]
