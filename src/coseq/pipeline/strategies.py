"""
Execution strategies for built pipelines.

A strategy owns one forward-ordered list of steps (stage + per-build state)
and pumps a single item through it per pull. Both strategies run a flat loop
over step indices: a skip jumps back to the root, a stop or an exhausted
source latches the pipeline done. Neither recurses, so stack depth does not
grow with the number of stages or the number of skipped items.
"""

import inspect
import logging
from typing import Any, List, Union

from coseq.config import CoseqConfig, Strategy
from coseq.errors import PipelineMisuseError
from coseq.pipeline.outcome import FINISHED, IterResult, Outcome, OutcomeKind

logger = logging.getLogger(__name__)


class Step:
    """A stage of a built pipeline paired with its mutable state."""

    __slots__ = ('stage', 'state')

    def __init__(self, stage, state: Any):
        self.stage = stage
        self.state = state

    def __repr__(self) -> str:
        return f"Step({self.stage!r}, state={self.state!r})"


def build_steps(tail, strategy: Strategy) -> List[Step]:
    """
    Walk a chain from its last stage back to the root and lay it out forward.

    Every stage gets fresh state, so two builds of the same chain never
    share skip/take progress or the underlying source cursor.
    """
    chain = []
    stage = tail
    while stage is not None:
        chain.append(stage)
        stage = stage.prev
    chain.reverse()

    if strategy is Strategy.SYNC:
        for stage in chain[1:]:
            if stage.requires_async:
                raise PipelineMisuseError(
                    f"{stage!r} can only run in an asynchronous pipeline"
                )

    root = Step(chain[0], chain[0].initial_state(strategy))
    steps = [root] + [Step(stage, stage.initial_state()) for stage in chain[1:]]

    if strategy is Strategy.SYNC and root.state.is_async:
        raise PipelineMisuseError("An async source cannot drive a synchronous pipeline")

    return steps


class ExecutionStrategy:
    """Shared bookkeeping of the synchronous and asynchronous trampolines."""

    strategy: Strategy

    def __init__(self, tail, config: CoseqConfig):
        if not config.allows(self.strategy):
            raise PipelineMisuseError(
                f"Pipeline is pinned to the {config.strategy.value} strategy "
                f"and cannot run as {self.strategy.value}"
            )

        self.config = config
        self.steps = build_steps(tail, self.strategy)
        self.done = False

        logger.debug(
            f"Built {self.strategy.value} pipeline with {len(self.steps) - 1} stage(s)"
        )

    def _advance(self, index: int, outcome: Outcome) -> Union[int, IterResult]:
        """Return the index of the next step to run, or the result of the pull."""
        if self.config.trace:
            logger.debug(f"{self.steps[index].stage!r} -> {outcome.kind.value} {outcome.value!r}")

        kind = outcome.kind
        if kind is OutcomeKind.CONTINUE:
            index += 1
            if index == len(self.steps):
                return IterResult(outcome.value, False)
            return index

        if kind is OutcomeKind.SKIP:
            return 0

        self.done = True
        if kind is OutcomeKind.DONE:
            logger.debug("Pipeline source exhausted")
            return IterResult(outcome.value, True)

        logger.debug(f"Pipeline stopped by {self.steps[index].stage!r}")
        return FINISHED


class SyncStrategy(ExecutionStrategy):
    """Pumps items synchronously."""

    strategy = Strategy.SYNC

    def pull(self, sent: Any = None) -> IterResult:
        """Run the chain until it yields a value, stops or runs dry."""
        if self.done:
            return FINISHED

        steps = self.steps
        index, value = 0, sent
        while True:
            step = steps[index]
            probed = step.stage.probe(value, step.state)
            outcome = step.stage.resolve(value, probed, step.state)

            target = self._advance(index, outcome)
            if isinstance(target, IterResult):
                return target

            # A skip restarts at the root with the value originally sent
            value = sent if target == 0 else outcome.value
            index = target


class AsyncStrategy(ExecutionStrategy):
    """
    Pumps items asynchronously.

    A probe that returns an awaitable is awaited before the stage resolves.
    That covers async sources, await_value(), delay() and user functions
    returning coroutines, and it is the only place the loop suspends.
    """

    strategy = Strategy.ASYNC

    async def pull(self, sent: Any = None) -> IterResult:
        """Run the chain until it yields a value, stops or runs dry."""
        if self.done:
            return FINISHED

        steps = self.steps
        index, value = 0, sent
        while True:
            step = steps[index]
            probed = step.stage.probe(value, step.state)
            if inspect.isawaitable(probed):
                probed = await probed
                if self.done:
                    return FINISHED
            outcome = step.stage.resolve(value, probed, step.state)

            target = self._advance(index, outcome)
            if isinstance(target, IterResult):
                return target

            value = sent if target == 0 else outcome.value
            index = target
