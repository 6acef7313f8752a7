"""
Consumer-facing handles over a built pipeline.
"""

import asyncio
import inspect
from typing import Any, Callable

from coseq.pipeline.outcome import FINISHED, IterResult


class SyncSequence:
    """
    Synchronous pull handle.

    ``next()`` returns an IterResult like a JavaScript-style iterator would.
    The handle is also a regular Python iterator: ``__next__`` raises
    ``StopIteration`` carrying the source's terminal value, the same way a
    generator reports its return value.
    """

    def __init__(self, strategy):
        self._strategy = strategy

    def __repr__(self) -> str:
        return f"SyncSequence(done={self.done})"

    @property
    def done(self) -> bool:
        return self._strategy.done

    def next(self, sent: Any = None) -> IterResult:
        """Pull the next result; sent is forwarded to sources that accept it."""
        if self._strategy.done:
            return FINISHED
        return self._strategy.pull(sent)

    def send(self, value: Any) -> Any:
        result = self.next(value)
        if result.done:
            raise StopIteration(result.value)
        return result.value

    def __iter__(self) -> 'SyncSequence':
        return self

    def __next__(self) -> Any:
        return self.send(None)


class AsyncSequence:
    """
    Asynchronous pull handle.

    Overlapping ``next()`` calls are serialized, so an item never enters
    the chain before the previous one has left it.
    """

    def __init__(self, strategy):
        self._strategy = strategy
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"AsyncSequence(done={self.done})"

    @property
    def done(self) -> bool:
        return self._strategy.done

    async def next(self, sent: Any = None) -> IterResult:
        """Pull the next result; sent is forwarded to sources that accept it."""
        async with self._lock:
            if self._strategy.done:
                return FINISHED
            return await self._strategy.pull(sent)

    async def asend(self, value: Any) -> Any:
        result = await self.next(value)
        if result.done:
            raise StopAsyncIteration(result.value)
        return result.value

    def __aiter__(self) -> 'AsyncSequence':
        return self

    async def __anext__(self) -> Any:
        return await self.asend(None)

    async def drain(self, callback: Callable[[Any], Any]) -> IterResult:
        """Pull until done, handing every item to callback."""
        while True:
            result = await self.next()
            if result.done:
                return result

            handled = callback(result.value)
            if inspect.isawaitable(handled):
                await handled
