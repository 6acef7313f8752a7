"""
Stage outcomes and the value/done pair handed to consumers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple


class OutcomeKind(Enum):
    """What the strategy should do after a stage has evaluated an item."""
    CONTINUE = "continue"  # hand the value to the next stage
    SKIP = "skip"          # drop the item, pull the root again
    STOP = "stop"          # latch done, no terminal value
    DONE = "done"          # source exhausted, carries the terminal value


@dataclass(frozen=True)
class Outcome:
    """Tagged result of evaluating one item in one stage."""
    kind: OutcomeKind
    value: Any = None

    @classmethod
    def proceed(cls, value: Any) -> 'Outcome':
        return cls(OutcomeKind.CONTINUE, value)

    @classmethod
    def exhausted(cls, value: Any = None) -> 'Outcome':
        return cls(OutcomeKind.DONE, value)


SKIP = Outcome(OutcomeKind.SKIP)
STOP = Outcome(OutcomeKind.STOP)


class IterResult(NamedTuple):
    """Value/done pair returned by a pull."""
    value: Any
    done: bool


FINISHED = IterResult(None, True)
