"""
coseq: lazily evaluated sequence pipelines.

Operators (map, filter, skip, take, delay, ...) are attached to a chain over
a synchronous or asynchronous source. No work happens until a consumer
pulls, one item at a time, so unbounded sources can be processed without
buffering.
"""

from coseq.config import CoseqConfig, Strategy
from coseq.errors import CoseqError, PipelineMisuseError
from coseq.pipeline import (
    IterResult,
    Stage,
    RootStage,
    SyncSequence,
    AsyncSequence,
    create_pipeline,
    sync_sequence,
    async_sequence,
)

__version__ = "0.1.0"
__author__ = "coseq contributors"
__license__ = "Apache-2.0"

# Shorthand matching the package name
coseq = create_pipeline

__all__ = [
    "CoseqConfig",
    "Strategy",
    "CoseqError",
    "PipelineMisuseError",
    "IterResult",
    "Stage",
    "RootStage",
    "SyncSequence",
    "AsyncSequence",
    "create_pipeline",
    "sync_sequence",
    "async_sequence",
    "coseq",
]
