"""Card and schedule values the engine operates on.

The lifecycle phase is a sum type: each phase carries exactly the fields
that are meaningful in it, so a step index can't exist while a card is in
Review and an interval can't exist while it is learning.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from flashflow.srs.vocabulary import CardLifecycleState

DEFAULT_EASE_FACTOR = 2.5


@dataclass(frozen=True)
class New:
    """Never reviewed."""


@dataclass(frozen=True)
class Learning:
    """Working through the learning ladder."""

    step_index: int = 0


@dataclass(frozen=True)
class Review:
    """Graduated; reviewed every ``interval`` days."""

    interval: int


@dataclass(frozen=True)
class Relearning:
    """Lapsed out of Review; working through the relearning ladder."""

    step_index: int = 0


Phase = New | Learning | Review | Relearning

_PHASE_STATE = {
    New: CardLifecycleState.NEW,
    Learning: CardLifecycleState.LEARNING,
    Review: CardLifecycleState.REVIEW,
    Relearning: CardLifecycleState.RELEARNING,
}


@dataclass(frozen=True)
class StepSchedule:
    """The visible schedule of a card: phase, ease factor and due date."""

    due: datetime
    phase: Phase = field(default_factory=New)
    ease_factor: float = DEFAULT_EASE_FACTOR

    @property
    def state(self) -> CardLifecycleState:
        return _PHASE_STATE[type(self.phase)]

    @property
    def step_index(self) -> int | None:
        """Position in the current ladder, or None outside Learning/Relearning."""
        if isinstance(self.phase, Learning | Relearning):
            return self.phase.step_index
        return None

    @property
    def interval(self) -> int:
        """Review interval in days, 0 outside Review."""
        if isinstance(self.phase, Review):
            return self.phase.interval
        return 0


@dataclass(frozen=True)
class StabilityState:
    """The persisted memory model of a card that has reached Review."""

    stability: float  # Days until recall probability decays to ~37%
    difficulty: float  # 1-10
    reps: int
    scheduled_days: int
    last_review: datetime


@dataclass(frozen=True)
class Card:
    """A card's full schedule snapshot.

    ``review_history`` belongs to the persistence layer, which appends the
    review timestamp before handing the card to the engine.
    """

    card_id: str
    schedule: StepSchedule
    stability: StabilityState | None = None
    review_history: tuple[datetime, ...] = ()

    @classmethod
    def new(cls, card_id: str, now: datetime, ease_factor: float = DEFAULT_EASE_FACTOR) -> Card:
        """Create a never-reviewed card that is due immediately."""
        return cls(card_id=card_id, schedule=StepSchedule(due=now, ease_factor=ease_factor))

    @property
    def state(self) -> CardLifecycleState:
        return self.schedule.state

    @property
    def due(self) -> datetime:
        return self.schedule.due

    def with_review(self, reviewed_at: datetime) -> Card:
        """Return a copy with ``reviewed_at`` appended to the review history."""
        return replace(self, review_history=(*self.review_history, reviewed_at))
