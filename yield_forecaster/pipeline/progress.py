"""
Training phase progress signals.

A training run moves through a fixed sequence of phases::

    PARSE → DERIVE_FEATURES → FIT → PERSIST

``PhaseSignal`` is the channel a run publishes ``PhaseEvent`` objects on.
Subscribers are plain callables invoked synchronously, in subscription order,
as each phase starts. The signal also keeps every emitted event so callers
(and tests) can inspect the run afterwards without subscribing.

Signals carry no cancellation and no parallelism: they only report.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict

from yield_forecaster.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class TrainingPhase(str, Enum):
    PARSE = "parse"
    DERIVE_FEATURES = "derive_features"
    FIT = "fit"
    PERSIST = "persist"


PHASE_ORDER: list[TrainingPhase] = [
    TrainingPhase.PARSE,
    TrainingPhase.DERIVE_FEATURES,
    TrainingPhase.FIT,
    TrainingPhase.PERSIST,
]


class PhaseEvent(BaseModel):
    """One phase transition of a training run.

    Attributes:
        model_type: Profile slug being trained.
        phase:      Phase that just started.
        detail:     Short human-readable note (e.g. record count).
        emitted_at: UTC timestamp.
    """

    model_config = ConfigDict(frozen=True)

    model_type: str
    phase: TrainingPhase
    detail: str = ""
    emitted_at: datetime

    @property
    def step(self) -> int:
        """1-based position of ``phase`` in the run."""
        return PHASE_ORDER.index(self.phase) + 1


PhaseListener = Callable[[PhaseEvent], None]


class PhaseSignal:
    """Synchronous publish/subscribe channel for ``PhaseEvent``s."""

    def __init__(self) -> None:
        self._listeners: list[PhaseListener] = []
        self.events: list[PhaseEvent] = []

    def subscribe(self, listener: PhaseListener) -> None:
        self._listeners.append(listener)

    def emit(self, model_type: str, phase: TrainingPhase, detail: str = "") -> PhaseEvent:
        event = PhaseEvent(
            model_type=model_type, phase=phase, detail=detail, emitted_at=utcnow()
        )
        self.events.append(event)
        logger.info(
            "[%s] phase %d/%d %s %s",
            model_type, event.step, len(PHASE_ORDER), phase.value, detail,
        )
        for listener in self._listeners:
            listener(event)
        return event

    @property
    def phases(self) -> list[TrainingPhase]:
        return [e.phase for e in self.events]


def ensure_signal(signal: Optional[PhaseSignal]) -> PhaseSignal:
    return signal if signal is not None else PhaseSignal()
