# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0
#

"""Utilities for simulating and emitting the pilot detector."""

import logging
import os

from amaranth.back         import verilog
from amaranth.sim          import Simulator

from .model                import Outputs, as_signed32
from .top                  import PilotDetector


def sample_outputs(ctx, dut):
    """Read the observable outputs of a :py:`PilotDetector` in a testbench."""
    return Outputs(
        i_ready=bool(ctx.get(dut.i.ready)),
        o_valid=bool(ctx.get(dut.o.valid)),
        o_payload=ctx.get(dut.o.payload),
        found=bool(ctx.get(dut.found)),
        corr=ctx.get(dut.corr),
    )


def simulate(samples, threshold, valid=None, o_ready=1, vcd_file=None):
    """
    Drive ``samples`` into a fresh :py:`PilotDetector`, one per cycle,
    and return the :py:`Outputs` observed after each clock edge.

    ``valid`` optionally gives the per-cycle :py:`i.valid` (default: always
    valid). ``o_ready`` is held constant on :py:`o.ready`. If ``vcd_file``
    is given, a waveform trace is written there.
    """
    if valid is None:
        valid = [1] * len(samples)
    if len(valid) != len(samples):
        raise ValueError("'valid' must have one entry per sample")

    dut = PilotDetector()
    results = []

    async def testbench(ctx):
        ctx.set(dut.threshold, threshold & 0xFFFF_FFFF)
        ctx.set(dut.o.ready, o_ready)
        for sample, v in zip(samples, valid):
            ctx.set(dut.i.payload, as_signed32(sample))
            ctx.set(dut.i.valid, v)
            await ctx.tick()
            results.append(sample_outputs(ctx, dut))

    sim = Simulator(dut)
    sim.add_clock(1e-6)
    sim.add_testbench(testbench)
    if vcd_file is not None:
        logging.info(f"write simulation trace to '{vcd_file}'")
        with sim.write_vcd(vcd_file=vcd_file):
            sim.run()
    else:
        sim.run()

    return results


def emit_verilog(dst, name="pilot_detector"):
    """Write a Verilog netlist of :py:`PilotDetector` to ``dst``."""
    os.makedirs(os.path.dirname(os.path.abspath(dst)), exist_ok=True)
    dut = PilotDetector()
    with open(dst, "w") as f:
        f.write(verilog.convert(dut, name=name))
    logging.info(f"wrote verilog for '{name}' to '{dst}'")
    return dst
