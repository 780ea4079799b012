# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Streaming matched-filter pilot detector."""

from amaranth import signed

# Full-width sample as it arrives from the ADC. Only the top
# NARROW_BITS are significant, the rest are carried for forwarding.
SAMPLE_BITS = 32
NARROW_BITS = 14
SAMPLE = signed(SAMPLE_BITS)

# Bit position of the significant slice inside a SAMPLE.
NARROW_SHIFT = SAMPLE_BITS - NARROW_BITS
NARROW = signed(NARROW_BITS)

# Registered correlation value (and every partial sum feeding it).
CORR = signed(32)

# Reference waveform searched for in the stream, oldest symbol first.
PILOT = (8191, 8191, 8191, -8192, -8192, 8191, -8192)

# Depth of the full-width history that feeds the output.
PAYLOAD_DEPTH = 5

# Payload history index that is forwarded once detection latches.
FORWARD_OFFSET = PAYLOAD_DEPTH - 4

# Cycles between a sample being accepted and the correlation of the
# window it completes appearing on the correlation register:
# history register, multiply, 2 adder levels, output register.
PIPELINE_LATENCY = 5

from .history import *
from .correlator import *
from .detector import *
from .top import *
