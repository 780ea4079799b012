import unittest

from amaranth import *
from amaranth.sim import *
from parameterized import parameterized

from pilotcorr.detector import Detector, Forwarder

class DetectorTests(unittest.TestCase):

    @parameterized.expand([
        # name, threshold wire value, corr, expect lock
        ["above",            1000,        1001,         True],
        ["equal",            1000,        1000,         False],
        ["below",            1000,        999,          False],
        ["negative_thresh",  0xFFFF_FFFF, 0,            True],   # -1
        ["negative_corr",    0xFFFF_FF00, -0x101,       False],  # -256
        ["min_thresh",       0x8000_0000, -(1 << 31)+1, True],
        ["max_thresh",       0x7FFF_FFFF, (1 << 31)-1,  False],
    ])
    def test_compare(self, name, threshold, corr, expect_lock):

        dut = Detector()

        async def testbench(ctx):
            ctx.set(dut.threshold, threshold)
            ctx.set(dut.corr, corr)
            self.assertEqual(ctx.get(dut.found), 0)
            await ctx.tick()
            self.assertEqual(ctx.get(dut.found), int(expect_lock))
            self.assertEqual(ctx.get(dut.forward), int(expect_lock))

        sim = Simulator(dut)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

    def test_sticky(self):

        dut = Detector()

        async def testbench(ctx):
            ctx.set(dut.threshold, 500)
            ctx.set(dut.corr, 0)
            await ctx.tick().repeat(4)
            self.assertEqual(ctx.get(dut.found), 0)
            ctx.set(dut.corr, 501)
            await ctx.tick()
            # Correlation drops away again, detection stays latched.
            for corr in [0, -1000, 499, 500, -(1 << 31)]:
                ctx.set(dut.corr, corr)
                await ctx.tick()
                self.assertEqual(ctx.get(dut.found), 1)
                self.assertEqual(ctx.get(dut.forward), 1)

        sim = Simulator(dut)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

class ForwarderTests(unittest.TestCase):

    PAYLOAD = [0x11111111, 0x22222222, 0x33333333, 0x44444444, 0x55555555]

    @parameterized.expand([
        ["idle",       0, 0, False],
        ["no_forward", 1, 0, False],
        ["no_sample",  0, 1, False],
        ["forward",    1, 1, True],
    ])
    def test_gate(self, name, en, forward, expect_valid):

        dut = Forwarder()

        async def testbench(ctx):
            self.assertEqual(ctx.get(dut.o.valid), 0)
            ctx.set(dut.payload, self.PAYLOAD)
            ctx.set(dut.en, en)
            ctx.set(dut.forward, forward)
            await ctx.tick()
            self.assertEqual(ctx.get(dut.o.valid), int(expect_valid))
            if expect_valid:
                # Third-oldest of 5.
                self.assertEqual(ctx.get(dut.o.payload), 0x22222222)

        sim = Simulator(dut)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

    def test_strobe_ignores_ready(self):

        dut = Forwarder()

        async def testbench(ctx):
            ctx.set(dut.o.ready, 0)
            ctx.set(dut.forward, 1)
            ctx.set(dut.payload, self.PAYLOAD)
            pattern = [1, 1, 0, 1, 0, 0, 1]
            for en in pattern:
                ctx.set(dut.en, en)
                await ctx.tick()
                self.assertEqual(ctx.get(dut.o.valid), en)
            # Payload register holds its last value while not valid.
            self.assertEqual(ctx.get(dut.o.payload), 0x22222222)

        sim = Simulator(dut)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()
