"""
Processor lifecycle states and status snapshots.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional

from ..errors import CrawlerError


class ProcessorState(Enum):
    NEW = "NEW"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS: Dict[ProcessorState, FrozenSet[ProcessorState]] = {
    ProcessorState.NEW: frozenset({ProcessorState.RUNNING, ProcessorState.STOPPED}),
    ProcessorState.RUNNING: frozenset({
        ProcessorState.STOPPED, ProcessorState.COMPLETED, ProcessorState.ERROR
    }),
    ProcessorState.STOPPED: frozenset(),
    ProcessorState.COMPLETED: frozenset(),
    ProcessorState.ERROR: frozenset(),
}


class InvalidTransitionError(CrawlerError):
    """A processor was asked to move to a state its current state does not allow."""

    def __init__(self, current: ProcessorState, target: ProcessorState):
        super().__init__(f"Invalid processor transition {current.value} -> {target.value}")
        self.current = current
        self.target = target


def check_transition(current: ProcessorState, target: ProcessorState):
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current, target)


@dataclass(frozen=True)
class ProcessorStatus:
    """Read-only snapshot of a processor."""
    id: str
    state: ProcessorState
    processed_count: int = 0
    last_url: Optional[str] = None
    last_error: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_ms(self) -> Optional[int]:
        if self.started_at is None:
            return None
        end = self.finished_at or datetime.now(self.started_at.tzinfo)
        return max(0, int((end - self.started_at).total_seconds() * 1000))
