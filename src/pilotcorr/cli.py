# Copyright (c) 2024 Seb Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""
Top-level CLI for the pilot detector: emit Verilog, or run a stimulus
through the gateware simulation and/or the reference model.
"""
import argparse
import enum
import logging
import os
import sys

from pilotcorr       import PILOT, stimulus
from pilotcorr.model import DetectorModel, peak_correlation
from pilotcorr.sim   import emit_verilog, simulate

# Default lies between the noise floor of generated stimulus and the
# exact-match peak, see `peak_correlation()`.
THRESHOLD_DEFAULT = "400000000"

class CliAction(str, enum.Enum):
    Build    = "build"
    Simulate = "sim"
    Model    = "model"

def threshold_arg(text):
    """Threshold wire value: signed or unsigned 32-bit, decimal or 0x hex."""
    try:
        value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}")
    if not -(1 << 31) <= value <= (1 << 32) - 1:
        raise argparse.ArgumentTypeError(f"threshold {text} does not fit in 32 bits")
    return value

def summarize(outputs, pilot_index=None):
    """Log detection cycle, frozen correlation and forwarded payload."""
    detected = next((n for n, o in enumerate(outputs) if o.found), None)
    if detected is None:
        logging.info(f"no detection in {len(outputs)} cycles "
                     f"(final correlation {outputs[-1].corr if outputs else 0})")
        return None
    # The comparison that latched detection saw the previous cycle's value.
    trigger = outputs[detected - 1].corr if detected else 0
    logging.info(f"detection latched after cycle {detected}, triggered by "
                 f"correlation {trigger} (peak {peak_correlation()}), "
                 f"frozen at {outputs[detected].corr}")
    if pilot_index is not None:
        logging.info(f"pilot started at sample {pilot_index}, "
                     f"latency {detected - pilot_index} cycles")
    forwarded = [o.o_payload for o in outputs if o.o_valid]
    logging.info(f"forwarded {len(forwarded)} samples")
    for n, sample in enumerate(forwarded):
        logging.debug(f"  [{n}] {sample:#010x} ({sample})")
    return detected

def first_mismatch(a, b):
    for n, (x, y) in enumerate(zip(a, b)):
        if x != y:
            return n
    return None

def main(argv=None):

    parser = argparse.ArgumentParser(prog="pilotcorr", description=__doc__)

    parser.add_argument("action", type=CliAction,
                        choices=[a.value for a in CliAction])
    parser.add_argument('--dst', type=str, default="build",
                        help="Output directory for Verilog and traces (default: build).")
    parser.add_argument('--threshold', type=threshold_arg,
                        default=os.environ.get("PILOTCORR_THRESHOLD", THRESHOLD_DEFAULT),
                        help=("Detection threshold, reinterpreted as signed 32-bit "
                              "(default: $PILOTCORR_THRESHOLD or "
                              f"{THRESHOLD_DEFAULT}). The exact-match peak is "
                              f"{peak_correlation(PILOT)}."))
    parser.add_argument('--stimulus', type=str, default=None,
                        help="Stimulus file, one sample per line. Default: generate a pilot burst.")
    parser.add_argument('--seed', type=int, default=0,
                        help="Generated stimulus: RNG seed.")
    parser.add_argument('--lead', type=int, default=16,
                        help="Generated stimulus: noise samples before the pilot.")
    parser.add_argument('--payload', type=int, default=16,
                        help="Generated stimulus: samples after the pilot.")
    parser.add_argument('--noise', type=int, default=512,
                        help="Generated stimulus: noise amplitude in narrowed units.")
    parser.add_argument('--trace-vcd', action='store_true',
                        help="Simulation: write a VCD trace to the output directory.")
    parser.add_argument('--verbose', action='store_true',
                        help="Log every forwarded sample.")

    # Print help if no arguments are passed.
    args = parser.parse_args(argv if argv is not None else (sys.argv[1:] or ["--help"]))

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s: %(message)s")

    if args.action == CliAction.Build:
        emit_verilog(os.path.join(args.dst, "pilot_detector.v"))
        return 0

    pilot_index = None
    if args.stimulus is not None:
        try:
            samples = stimulus.load(args.stimulus)
        except ValueError as e:
            parser.error(str(e))
        logging.info(f"loaded {len(samples)} samples from '{args.stimulus}'")
    else:
        try:
            samples, pilot_index = stimulus.pilot_burst(
                lead=args.lead, payload=args.payload, noise=args.noise, seed=args.seed)
        except ValueError as e:
            parser.error(str(e))
        logging.info(f"generated {len(samples)} samples (seed={args.seed}), "
                     f"pilot at {pilot_index}")

    expected = DetectorModel().run(samples, args.threshold)

    if args.action == CliAction.Model:
        summarize(expected, pilot_index)
        return 0

    vcd_file = None
    if args.trace_vcd:
        os.makedirs(args.dst, exist_ok=True)
        vcd_file = os.path.join(args.dst, "pilot_detector.vcd")

    outputs = simulate(samples, args.threshold, vcd_file=vcd_file)
    summarize(outputs, pilot_index)

    mismatch = first_mismatch(outputs, expected)
    if mismatch is not None:
        logging.error(f"simulation diverges from model at cycle {mismatch}: "
                      f"got {outputs[mismatch]}, expected {expected[mismatch]}")
        return 1
    logging.info("simulation matches reference model")
    return 0

if __name__ == "__main__":
    sys.exit(main())
