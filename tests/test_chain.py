#!/usr/bin/env python3
"""
Tests for chain construction, per-build state, configuration and misuse errors.
"""

import unittest
from coseq import (
    CoseqConfig, PipelineMisuseError, Strategy, IterResult, Stage,
    create_pipeline, sync_sequence, async_sequence,
)
from coseq.config import config


class TestChainConstruction(unittest.TestCase):
    """Test building chains out of stages."""

    def test_attaching_returns_new_stage(self):
        """Test operators never mutate the stage they are attached to."""
        root = create_pipeline([1, 2, 3])
        mapped = root.map(lambda value: value + 1)
        filtered = mapped.filter(bool)

        self.assertIsNot(mapped, root)
        self.assertIs(mapped.prev, root)
        self.assertIs(filtered.prev, mapped)
        self.assertIsNone(root.prev)
        self.assertEqual(list(root), [1, 2, 3])

    def test_chain_length(self):
        """Test a chain holds one stage per operator plus the root."""
        chain = create_pipeline([]).map(str).skip(1).take_until(bool).where(bool)

        length = 0
        stage = chain
        while stage is not None:
            length += 1
            stage = stage.prev

        self.assertEqual(length, 5)

    def test_repr(self):
        """Test stages describe themselves for debugging."""
        def is_small(value):
            return value < 10

        chain = create_pipeline([]).skip(2).take_while(is_small)

        self.assertEqual(repr(chain), "TakeWhile(is_small)")
        self.assertEqual(repr(chain.prev), "Skip(2)")
        self.assertEqual(repr(chain.prev.prev), "Root(list)")

    def test_source_must_be_iterable(self):
        """Test non-iterable sources are rejected up front."""
        with self.assertRaises(TypeError):
            create_pipeline(42)

    def test_source_factory_must_return_iterable(self):
        """Test a factory returning garbage fails when the pipeline is built."""
        chain = create_pipeline(lambda: 42)

        with self.assertRaises(TypeError):
            chain.iterator()

    def test_stage_requires_resolve(self):
        """Test stages must define resolve() to be instantiated."""
        class Unfinished(Stage):
            label = "Unfinished"

        with self.assertRaises(TypeError):
            Stage()
        with self.assertRaises(TypeError):
            Unfinished(create_pipeline([1]), str)


class TestPerBuildState(unittest.TestCase):
    """Test stateful stages are independent across builds."""

    def test_interleaved_builds_do_not_share_state(self):
        """Test two sequences from one chain keep their own skip/take progress."""
        chain = create_pipeline(lambda: iter(range(10))).skip(2).take(3)

        first = chain.iterator()
        second = chain.iterator()

        self.assertEqual(first.next(), IterResult(2, False))
        self.assertEqual(second.next(), IterResult(2, False))
        self.assertEqual(first.next(), IterResult(3, False))
        self.assertEqual(first.next(), IterResult(4, False))
        self.assertEqual(first.next(), IterResult(None, True))
        self.assertEqual(second.next(), IterResult(3, False))
        self.assertEqual(second.next(), IterResult(4, False))
        self.assertEqual(second.next(), IterResult(None, True))

    def test_rebuilding_resets_skip_while(self):
        """Test skip_while starts active again in a new build."""
        chain = create_pipeline([1, 2, 5, 1]).skip_while(lambda value: value < 3)

        self.assertEqual(list(chain), [5, 1])
        self.assertEqual(list(chain), [5, 1])

    def test_rebuilding_resets_take_until(self):
        """Test take_until starts active again in a new build."""
        chain = create_pipeline([1, 2, 3, 4]).take_until(lambda value: value == 2)

        self.assertEqual(list(chain), [1, 2])
        self.assertEqual(list(chain), [1, 2])

    def test_shared_iterator_source(self):
        """Test builds over a one-shot iterator share only the iterator."""
        source = iter(range(6))
        chain = create_pipeline(source).take(2)

        self.assertEqual(list(chain), [0, 1])
        # The first build consumed 2 for its stop check
        self.assertEqual(list(chain), [3, 4])

    def test_done_latch_is_per_build(self):
        """Test one build latching done leaves other builds usable."""
        chain = create_pipeline([1, 2, 3]).take(1)
        first = chain.iterator()
        list(first)

        self.assertTrue(first.done)
        self.assertFalse(chain.iterator().done)
        self.assertEqual(list(chain), [1])


class TestMisuse(unittest.TestCase):
    """Test programmer errors are raised immediately."""

    def test_async_stage_on_sync_iterator(self):
        """Test await_value/delay cannot be driven synchronously."""
        for chain in (
            create_pipeline([1]).await_value(),
            create_pipeline([1]).delay(10).map(str),
        ):
            with self.assertRaises(PipelineMisuseError):
                chain.iterator()
            with self.assertRaises(PipelineMisuseError):
                iter(chain)

    def test_async_source_on_sync_iterator(self):
        """Test an async source cannot be driven synchronously."""
        async def items():
            yield 1

        with self.assertRaises(PipelineMisuseError):
            create_pipeline(items()).iterator()

    def test_async_stage_on_sync_pinned_chain(self):
        """Test attaching async-only stages to a sync chain fails at attach time."""
        chain = sync_sequence([1, 2]).map(str)

        with self.assertRaises(PipelineMisuseError):
            chain.await_value()
        with self.assertRaises(PipelineMisuseError):
            chain.delay(5)

    def test_pinned_strategies(self):
        """Test pinned chains refuse the other strategy synchronously."""
        with self.assertRaises(PipelineMisuseError):
            sync_sequence([1]).async_iterator()
        with self.assertRaises(PipelineMisuseError):
            sync_sequence([1]).for_each(print)
        with self.assertRaises(PipelineMisuseError):
            async_sequence([1]).iterator()

    def test_configure_non_root(self):
        """Test strategy options can only be attached to the root."""
        with self.assertRaises(PipelineMisuseError):
            create_pipeline([1]).map(str).configure(trace=True)


class TestConfiguration(unittest.TestCase):
    """Test configuration defaults and per-pipeline overrides."""

    def tearDown(self):
        """Restore defaults."""
        CoseqConfig.set_defaults(strategy=Strategy.AUTO, trace=False, time_scale=0.001)

    def test_defaults(self):
        """Test the shared default configuration."""
        self.assertIs(CoseqConfig.get_instance(), config)
        self.assertEqual(config.strategy, Strategy.AUTO)
        self.assertFalse(config.trace)
        self.assertAlmostEqual(config.delay_seconds(250), 0.25)

    def test_configure_returns_new_root(self):
        """Test configure() leaves the original root untouched."""
        root = create_pipeline([1, 2])
        pinned = root.configure(strategy="sync")

        self.assertIsNot(pinned, root)
        self.assertEqual(pinned.config.strategy, Strategy.SYNC)
        self.assertEqual(root.config.strategy, Strategy.AUTO)
        self.assertIs(pinned.map(str).config, pinned.config)

    def test_unknown_option(self):
        """Test unknown option names are rejected."""
        with self.assertRaises(TypeError):
            create_pipeline([1], retries=3)

    def test_set_defaults(self):
        """Test new chains pick up changed defaults."""
        CoseqConfig.set_defaults(strategy="async")

        with self.assertRaises(PipelineMisuseError):
            create_pipeline([1]).iterator()

    def test_trace_logs_outcomes(self):
        """Test trace mode logs each stage outcome."""
        chain = create_pipeline([1, 2], trace=True).filter(lambda value: value > 1)

        with self.assertLogs('coseq.pipeline.strategies', level='DEBUG') as logs:
            self.assertEqual(list(chain), [2])

        output = "\n".join(logs.output)
        self.assertIn("skip", output)
        self.assertIn("continue", output)
        self.assertIn("source exhausted", output)


if __name__ == '__main__':
    unittest.main()
