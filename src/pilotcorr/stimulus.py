# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Stimulus generation and stimulus file I/O."""

import numpy as np

from . import NARROW, NARROW_SHIFT, PILOT, SAMPLE_BITS

SAMPLE_MIN = -(1 << (SAMPLE_BITS - 1))
SAMPLE_MAX = (1 << (SAMPLE_BITS - 1)) - 1


def narrow_to_sample(value, low_bits=0):
    """Place a 14-bit value in the significant slice of a full-width sample."""
    lo, hi = -(1 << (NARROW.width - 1)), (1 << (NARROW.width - 1)) - 1
    if not lo <= value <= hi:
        raise ValueError(f"{value} does not fit in {NARROW}")
    if not 0 <= low_bits < (1 << NARROW_SHIFT):
        raise ValueError(f"low bits {low_bits:#x} do not fit below the significant slice")
    return (int(value) << NARROW_SHIFT) + int(low_bits)


def sample_to_narrow(sample):
    check_sample(sample)
    return int(sample) >> NARROW_SHIFT


def check_sample(sample):
    if not SAMPLE_MIN <= sample <= SAMPLE_MAX:
        raise ValueError(f"sample {sample} outside signed {SAMPLE_BITS}-bit range")
    return int(sample)


def pilot_burst(lead=16, payload=16, noise=512, seed=0):
    """
    Generate a stream of full-width samples containing exactly one pilot.

    The stream is ``lead`` noise samples, the 7 pilot symbols, then
    ``payload`` samples. Noise and payload have a uniformly distributed
    significant slice in ``[-noise, noise]``. Payload samples also carry
    random low bits, so forwarding of the full sample width is visible.

    Returns ``(samples, pilot_index)``, where ``pilot_index`` is the position
    of the first pilot symbol.
    """
    if lead < 0 or payload < 0:
        raise ValueError("lead and payload lengths must not be negative")
    rng = np.random.default_rng(seed)
    head = rng.integers(-noise, noise, size=lead, endpoint=True)
    tail = rng.integers(-noise, noise, size=payload, endpoint=True)
    low  = rng.integers(0, 1 << NARROW_SHIFT, size=payload)
    samples  = [narrow_to_sample(v) for v in head]
    samples += [narrow_to_sample(v) for v in PILOT]
    samples += [narrow_to_sample(v, lo) for v, lo in zip(tail, low)]
    return samples, lead


def load(path):
    """
    Read a stimulus file: one sample per line, decimal or ``0x`` hex,
    blank lines and ``#`` comments ignored.
    """
    samples = []
    with open(path) as f:
        for lineno, line in enumerate(f, start=1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            try:
                sample = int(line, 0)
            except ValueError:
                raise ValueError(f"{path}:{lineno}: not an integer: {line!r}") from None
            try:
                samples.append(check_sample(sample))
            except ValueError as e:
                raise ValueError(f"{path}:{lineno}: {e}") from None
    return samples


def save(path, samples):
    with open(path, "w") as f:
        for sample in samples:
            f.write(f"{check_sample(sample)}\n")
