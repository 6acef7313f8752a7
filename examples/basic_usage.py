#!/usr/bin/env python3
"""
Basic usage examples for coseq.
"""

import asyncio
import logging
import random
from coseq import CoseqConfig, create_pipeline


def numbers():
    for i in range(1, 6):
        yield i
    return "YES!!"


def example_sync_pipeline():
    """Example: Pull results one at a time."""
    print("\n=== Sync Pipeline Example ===")

    sequence = (
        create_pipeline(numbers())
        .filter(lambda n: n % 2 == 0)
        .map(lambda n: n * 4)
        .iterator()
    )

    while True:
        result = sequence.next()
        print(f"value={result.value!r} done={result.done}")
        if result.done:
            break


def example_unbounded_source():
    """Example: Process an infinite source lazily."""
    print("\n=== Unbounded Source Example ===")

    def readings():
        while True:
            yield random.gauss(20.0, 5.0)

    # Nothing is buffered; take() ends the pipeline
    alerts = (
        create_pipeline(readings)
        .map(lambda celsius: round(celsius, 1))
        .filter(lambda celsius: celsius > 28.0)
        .take(5)
    )

    print(f"First 5 alerts: {list(alerts)}")


async def example_async_pipeline():
    """Example: Await values and throttle output."""
    print("\n=== Async Pipeline Example ===")

    async def fetch(page):
        await asyncio.sleep(0.01)
        return {"page": page, "items": page * 10}

    pages = (
        create_pipeline(range(1, 100))
        .map(fetch)
        .take_until(lambda response: response["items"] >= 50)
        .delay(50)
    )

    result = await pages.for_each(lambda response: print(f"Fetched {response}"))
    print(f"Finished: {result}")


def main():
    """Run all examples."""
    print("=== coseq Examples ===")

    logging.basicConfig(level=logging.INFO)
    CoseqConfig.set_defaults(time_scale=0.001)

    example_sync_pipeline()
    example_unbounded_source()
    asyncio.run(example_async_pipeline())

    print("\n=== All examples completed! ===")


if __name__ == "__main__":
    main()
