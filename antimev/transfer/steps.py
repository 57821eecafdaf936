# antimev/transfer/steps.py
"""
AntiMEV Transfer: Pipeline States and Step Notifications

The orchestrator reports each state transition to an optional observer
as a TransferStep. Observers may be plain callables or coroutine
functions; an observer that raises is logged and ignored.

Usage:
    recorder = StepRecorder()
    orchestrator = TransferOrchestrator(..., observer=recorder)
    await orchestrator.submit(request)
    print([step.state.name for step in recorder.steps])
"""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class TransferState(Enum):
    """Transfer pipeline state."""
    IDLE = auto()
    SWITCHING_CHAIN = auto()
    READING_NONCE = auto()
    ATTEMPTING_DIRECT = auto()
    ENTERING_FALLBACK = auto()
    ACQUIRING_SIGNATURE = auto()
    FETCHING_CACHED_TRANSACTION = auto()
    READING_CONSENSUS = auto()
    READING_ROUND = auto()
    READING_COMMITMENT = auto()
    DERIVING_KEY = auto()
    ENCRYPTING = auto()
    BUILDING_ENVELOPE = auto()
    RESWITCHING_CHAIN = auto()
    SUBMITTING_ENVELOPE = auto()
    WAITING_FOR_RECEIPT = auto()
    CONFIRMED = auto()
    DONE = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (TransferState.DONE, TransferState.FAILED)

    @property
    def is_fallback(self) -> bool:
        return self in _FALLBACK_STATES


_FALLBACK_STATES = frozenset({
    TransferState.ENTERING_FALLBACK,
    TransferState.ACQUIRING_SIGNATURE,
    TransferState.FETCHING_CACHED_TRANSACTION,
    TransferState.READING_CONSENSUS,
    TransferState.READING_ROUND,
    TransferState.READING_COMMITMENT,
    TransferState.DERIVING_KEY,
    TransferState.ENCRYPTING,
    TransferState.BUILDING_ENVELOPE,
    TransferState.RESWITCHING_CHAIN,
    TransferState.SUBMITTING_ENVELOPE,
})


@dataclass
class TransferStep:
    """One reported transition."""
    state: TransferState
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


StepObserver = Callable[[TransferStep], Union[None, Awaitable[None]]]


async def notify(observer: Optional[StepObserver], step: TransferStep) -> None:
    """Deliver ``step`` to ``observer``; observer errors are logged only."""
    if observer is None:
        return
    try:
        result = observer(step)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("Step observer failed on %s", step.state.name)


class StepRecorder:
    """Observer collecting every step it is given."""

    def __init__(self):
        self.steps: List[TransferStep] = []

    def __call__(self, step: TransferStep) -> None:
        self.steps.append(step)

    @property
    def states(self) -> List[TransferState]:
        return [step.state for step in self.steps]

    def last(self, state: TransferState) -> Optional[TransferStep]:
        """Most recent step in ``state``, or None."""
        for step in reversed(self.steps):
            if step.state is state:
                return step
        return None
