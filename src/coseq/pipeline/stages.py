"""
Pipeline stages and the chain-building API.

A chain is a singly linked list of immutable stages ending at a RootStage.
Attaching an operator never mutates the receiver; it returns a new stage
whose ``prev`` is the receiver. Nothing runs until the chain is built into
a sequence and pulled.

Every stage evaluates an item in two steps so the same definition serves
both execution strategies:

* ``probe(value, state)`` calls the user function and returns its raw
  result, which may be an awaitable in an asynchronous pipeline;
* ``resolve(value, probed, state)`` turns that result into an Outcome.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union

from coseq.config import CoseqConfig, Strategy, config as default_config
from coseq.errors import PipelineMisuseError
from coseq.pipeline.outcome import SKIP, STOP, IterResult, Outcome
from coseq.pipeline.sequence import AsyncSequence, SyncSequence
from coseq.pipeline.strategies import AsyncStrategy, SyncStrategy

Predicate = Callable[[Any], Any]


class Stage(ABC):
    """Base class for pipeline stages."""

    label = "Stage"
    requires_async = False

    def __init__(self, prev: Optional['Stage'] = None, fn: Any = None):
        self.prev = prev
        self.fn = fn
        self._root = prev._root if prev is not None else self

    def __repr__(self) -> str:
        name = getattr(self.fn, '__name__', None) or repr(self.fn)
        return f"{self.label}({name})"

    @property
    def config(self) -> CoseqConfig:
        return self._root._config

    # Per-build evaluation

    def initial_state(self) -> Any:
        """Create the mutable state this stage needs for one build."""
        return None

    def probe(self, value: Any, state: Any) -> Any:
        return self.fn(value)

    @abstractmethod
    def resolve(self, value: Any, probed: Any, state: Any) -> Outcome:
        """Turn a probe result into an Outcome."""
        pass

    # Chain building

    def _attach(self, stage_cls, *args, **kwargs) -> 'Stage':
        if stage_cls.requires_async and not self.config.allows(Strategy.ASYNC):
            raise PipelineMisuseError(
                f"{stage_cls.label}() needs an asynchronous pipeline, "
                f"but this chain is pinned to the {self.config.strategy.value} strategy"
            )
        return stage_cls(self, *args, **kwargs)

    def configure(self, **options: Any) -> 'RootStage':
        """Strategy-level options can only be set on the root stage."""
        raise PipelineMisuseError(
            f"configure() is only available on the root stage, not on {self!r}"
        )

    def map(self, transform: Callable[[Any], Any]) -> 'Stage':
        """Replace each item with transform(item)."""
        return self._attach(MapStage, transform)

    def select(self, transform: Callable[[Any], Any]) -> 'Stage':
        """Same as map()."""
        return self.map(transform)

    def filter(self, predicate: Predicate) -> 'Stage':
        """Keep only items for which predicate(item) is truthy."""
        return self._attach(FilterStage, predicate)

    def where(self, predicate: Predicate) -> 'Stage':
        """Same as filter()."""
        return self.filter(predicate)

    def skip(self, count: int) -> 'Stage':
        """Drop the first count items."""
        return self._attach(SkipWhileStage, Countdown(count))

    def skip_while(self, predicate: Predicate) -> 'Stage':
        """Drop items while predicate holds, then pass everything through."""
        return self._attach(SkipWhileStage, predicate)

    def skip_until(self, predicate: Predicate) -> 'Stage':
        """Drop items until predicate holds, then pass everything through."""
        return self._attach(SkipWhileStage, predicate, negate=True)

    def take(self, count: int) -> 'Stage':
        """Emit the first count items, then stop."""
        return self._attach(TakeWhileStage, Countdown(count))

    def take_while(self, predicate: Predicate) -> 'Stage':
        """Emit items while predicate holds; the first failing item stops the pipeline."""
        return self._attach(TakeWhileStage, predicate)

    def take_until(self, predicate: Predicate) -> 'Stage':
        """Emit items up to and including the first one matching predicate."""
        return self._attach(TakeUntilStage, predicate)

    def await_value(self) -> 'Stage':
        """Await each item and pass on its result (async pipelines only)."""
        return self._attach(AwaitValueStage)

    def delay(self, milliseconds: float) -> 'Stage':
        """Hold each item back for the given time (async pipelines only)."""
        return self._attach(DelayStage, milliseconds)

    # Consumption

    def iterator(self) -> SyncSequence:
        """Build a fresh synchronous sequence from this chain."""
        return SyncSequence(SyncStrategy(self, self.config))

    def async_iterator(self) -> AsyncSequence:
        """Build a fresh asynchronous sequence from this chain."""
        return AsyncSequence(AsyncStrategy(self, self.config))

    def for_each(self, callback: Callable[[Any], Any]) -> Awaitable[IterResult]:
        """
        Drain the chain asynchronously, calling callback on every item.

        The sequence is built before this returns, so misuse errors are
        raised right away. The returned awaitable resolves with the final
        result, which carries the source's terminal value.
        """
        return self.async_iterator().drain(callback)

    def __iter__(self) -> SyncSequence:
        return self.iterator()

    def __aiter__(self) -> AsyncSequence:
        return self.async_iterator()


class SourceCursor:
    """Per-build handle on the underlying source iterator."""

    __slots__ = ('iterator', 'is_async', 'started')

    def __init__(self, iterator: Any, is_async: bool):
        self.iterator = iterator
        self.is_async = is_async
        # Generators reject a sent value until their first item was pulled
        self.started = False

    def __repr__(self) -> str:
        kind = "async" if self.is_async else "sync"
        return f"SourceCursor({kind}, {self.iterator!r})"


def _is_iterable(source: Any) -> bool:
    return hasattr(source, '__aiter__') or hasattr(source, '__iter__')


def open_source(source: Any, strategy: Strategy = Strategy.ASYNC) -> SourceCursor:
    """
    Turn an iterable, async iterable or source factory into a cursor.

    A source offering both protocols is pulled with the one matching the
    strategy: ``__iter__`` for synchronous pipelines, ``__aiter__`` otherwise.
    """
    if not _is_iterable(source) and callable(source):
        source = source()

    is_async = hasattr(source, '__aiter__')
    if is_async and strategy is Strategy.SYNC and hasattr(source, '__iter__'):
        is_async = False

    if is_async:
        return SourceCursor(source.__aiter__(), is_async=True)
    if hasattr(source, '__iter__'):
        return SourceCursor(iter(source), is_async=False)

    raise TypeError(f"Source factory must return an iterable, got {type(source).__name__}")


async def _pull_async(cursor: SourceCursor, sent: Any) -> Outcome:
    iterator = cursor.iterator
    try:
        if sent is not None and cursor.started and hasattr(iterator, 'asend'):
            item = await iterator.asend(sent)
        else:
            cursor.started = True
            item = await iterator.__anext__()
    except StopAsyncIteration as exc:
        return Outcome.exhausted(exc.args[0] if exc.args else None)
    return Outcome.proceed(item)


class RootStage(Stage):
    """
    First stage of every chain, wrapping the data source.

    Each pull asks the source for its next item. When the source finishes,
    its terminal value (a generator's return value) becomes the value of
    the final result and bypasses every downstream stage.
    """

    label = "Root"

    def __init__(self, source: Union[Any, Callable[[], Any]], config: Optional[CoseqConfig] = None):
        if not (_is_iterable(source) or callable(source)):
            raise TypeError("Source must be iterable, async iterable or callable")

        super().__init__(None, source)
        self._config = config or default_config

    def __repr__(self) -> str:
        return f"Root({type(self.fn).__name__})"

    def configure(self, **options: Any) -> 'RootStage':
        """Return a new root over the same source with options overridden."""
        return RootStage(self.fn, self._config.derive(**options))

    def initial_state(self, strategy: Strategy = Strategy.ASYNC) -> SourceCursor:
        return open_source(self.fn, strategy)

    def probe(self, value: Any, state: SourceCursor) -> Any:
        if state.is_async:
            return _pull_async(state, value)

        iterator = state.iterator
        try:
            if value is not None and state.started and hasattr(iterator, 'send'):
                item = iterator.send(value)
            else:
                state.started = True
                item = next(iterator)
        except StopIteration as exc:
            return Outcome.exhausted(exc.value)
        return Outcome.proceed(item)

    def resolve(self, value: Any, probed: Outcome, state: SourceCursor) -> Outcome:
        return probed


class MapStage(Stage):
    label = "Map"

    def resolve(self, value, probed, state):
        return Outcome.proceed(probed)


class FilterStage(Stage):
    label = "Filter"

    def resolve(self, value, probed, state):
        return Outcome.proceed(value) if probed else SKIP


class Countdown:
    """Predicate that holds for the first ``count`` items it is asked about."""

    __slots__ = ('count', 'remaining')

    def __init__(self, count: int):
        self.count = count
        self.remaining = count

    def __call__(self, value: Any) -> bool:
        self.remaining -= 1
        return self.remaining >= 0

    def __repr__(self) -> str:
        return f"Countdown({self.count})"

    def fresh(self) -> 'Countdown':
        return Countdown(self.count)


class Gate:
    """Mutable state of a skip/take stage for one build."""

    __slots__ = ('predicate', 'active')

    def __init__(self, predicate: Predicate):
        self.predicate = predicate
        self.active = True

    def __repr__(self) -> str:
        return f"Gate(active={self.active})"


class GateStage(Stage):
    """
    Stage whose behavior flips once, after which the predicate is never
    called again for this build.
    """

    def __repr__(self) -> str:
        if isinstance(self.fn, Countdown):
            return f"{self.label}({self.fn.count})"
        return super().__repr__()

    def initial_state(self) -> Gate:
        predicate = self.fn.fresh() if isinstance(self.fn, Countdown) else self.fn
        return Gate(predicate)

    def probe(self, value, state: Gate):
        if not state.active:
            return None
        return state.predicate(value)


class SkipWhileStage(GateStage):
    label = "SkipWhile"

    def __init__(self, prev: Stage, predicate: Predicate, negate: bool = False):
        super().__init__(prev, predicate)
        self.negate = negate
        if negate:
            self.label = "SkipUntil"
        elif isinstance(predicate, Countdown):
            self.label = "Skip"

    def resolve(self, value, probed, state: Gate):
        if state.active:
            if bool(probed) != self.negate:
                return SKIP
            state.active = False
        return Outcome.proceed(value)


class TakeWhileStage(GateStage):
    label = "TakeWhile"

    def __init__(self, prev: Stage, predicate: Predicate):
        super().__init__(prev, predicate)
        if isinstance(predicate, Countdown):
            self.label = "Take"

    def resolve(self, value, probed, state: Gate):
        if state.active and probed:
            return Outcome.proceed(value)
        state.active = False
        return STOP


class TakeUntilStage(GateStage):
    label = "TakeUntil"

    def resolve(self, value, probed, state: Gate):
        if not state.active:
            return STOP
        # The matching item is still emitted, the one after it stops
        state.active = not probed
        return Outcome.proceed(value)


class AwaitValueStage(Stage):
    label = "AwaitValue"
    requires_async = True

    def __repr__(self) -> str:
        return f"{self.label}()"

    def probe(self, value, state):
        return value

    def resolve(self, value, probed, state):
        return Outcome.proceed(probed)


class DelayStage(Stage):
    label = "Delay"
    requires_async = True

    def __repr__(self) -> str:
        return f"{self.label}({self.fn})"

    def probe(self, value, state):
        return asyncio.sleep(self.config.delay_seconds(self.fn))

    def resolve(self, value, probed, state):
        return Outcome.proceed(value)


def create_pipeline(source: Any, **options: Any) -> RootStage:
    """
    Start a chain over source.

    Args:
        source: Iterable, async iterable, or a callable returning one of
            those. A callable is invoked on every build so each sequence
            gets its own iterator.
        **options: Per-pipeline overrides of CoseqConfig fields.
    """
    root = RootStage(source)
    if options:
        root = root.configure(**options)
    return root


def sync_sequence(source: Any, **options: Any) -> RootStage:
    """Start a chain that may only be driven synchronously."""
    return create_pipeline(source, strategy=Strategy.SYNC, **options)


def async_sequence(source: Any, **options: Any) -> RootStage:
    """Start a chain that may only be driven asynchronously."""
    return create_pipeline(source, strategy=Strategy.ASYNC, **options)
