"""Lazily evaluated pipelines over sync and async sources."""

from coseq.pipeline.outcome import (
    Outcome,
    OutcomeKind,
    IterResult,
)
from coseq.pipeline.sequence import (
    SyncSequence,
    AsyncSequence,
)
from coseq.pipeline.strategies import (
    SyncStrategy,
    AsyncStrategy,
)
from coseq.pipeline.stages import (
    Stage,
    RootStage,
    create_pipeline,
    sync_sequence,
    async_sequence,
)

__all__ = [
    "Outcome",
    "OutcomeKind",
    "IterResult",
    "SyncSequence",
    "AsyncSequence",
    "SyncStrategy",
    "AsyncStrategy",
    "Stage",
    "RootStage",
    "create_pipeline",
    "sync_sequence",
    "async_sequence",
]
