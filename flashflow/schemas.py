"""Pydantic schemas for stored card records.

The persistence layer validates what it loads with these models before
handing a Card to the engine, so malformed data fails here and never
reaches a scheduler.
"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from flashflow.srs.cards import (
    Card,
    Learning,
    New,
    Phase,
    Relearning,
    Review,
    StabilityState,
    StepSchedule,
)
from flashflow.srs.stability import MAX_DIFFICULTY, MIN_DIFFICULTY, MIN_STABILITY
from flashflow.srs.vocabulary import CardLifecycleState


class StabilityRecord(BaseModel):
    """Stored memory model of a card."""

    stability: float = Field(ge=MIN_STABILITY)
    difficulty: float = Field(ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)
    reps: int = Field(ge=0)
    scheduled_days: int = Field(ge=0)
    last_review: datetime

    @classmethod
    def from_state(cls, state: StabilityState) -> "StabilityRecord":
        return cls(
            stability=state.stability,
            difficulty=state.difficulty,
            reps=state.reps,
            scheduled_days=state.scheduled_days,
            last_review=state.last_review,
        )

    def to_state(self) -> StabilityState:
        return StabilityState(
            stability=self.stability,
            difficulty=self.difficulty,
            reps=self.reps,
            scheduled_days=self.scheduled_days,
            last_review=self.last_review,
        )


class CardRecord(BaseModel):
    """Stored schedule of a card, in the flat shape the store keeps."""

    card_id: str
    state: CardLifecycleState = CardLifecycleState.NEW
    step_index: int | None = Field(default=None, ge=0)
    # The floor is a scheduler setting, enforced by the engine
    ease_factor: float = Field(default=2.5, gt=0)
    interval: int = Field(default=0, ge=0)
    due: datetime
    review_history: list[datetime] = Field(default_factory=list)
    stability: StabilityRecord | None = None

    @model_validator(mode="after")
    def _check_state_fields(self) -> "CardRecord":
        """Reject records whose fields contradict their lifecycle state."""
        in_ladder = self.state in (CardLifecycleState.LEARNING, CardLifecycleState.RELEARNING)
        if in_ladder and self.step_index is None:
            raise ValueError(f"step_index is required in state {self.state.value}")
        if not in_ladder and self.step_index is not None:
            raise ValueError(f"step_index is not allowed in state {self.state.value}")
        if self.state == CardLifecycleState.REVIEW and self.interval < 1:
            raise ValueError("review cards need an interval of at least 1 day")
        pre_review = self.state in (CardLifecycleState.NEW, CardLifecycleState.LEARNING)
        if pre_review and self.stability is not None:
            raise ValueError(f"{self.state.value} cards have no stability state")
        return self

    @classmethod
    def from_card(cls, card: Card) -> "CardRecord":
        """Flatten a Card into a storable record."""
        schedule = card.schedule
        return cls(
            card_id=card.card_id,
            state=schedule.state,
            step_index=schedule.step_index,
            ease_factor=schedule.ease_factor,
            interval=schedule.interval,
            due=schedule.due,
            review_history=list(card.review_history),
            stability=StabilityRecord.from_state(card.stability) if card.stability else None,
        )

    def to_card(self) -> Card:
        """Rebuild the engine's Card from this record."""
        schedule = StepSchedule(due=self.due, phase=self._phase(), ease_factor=self.ease_factor)
        return Card(
            card_id=self.card_id,
            schedule=schedule,
            stability=self.stability.to_state() if self.stability else None,
            review_history=tuple(self.review_history),
        )

    def _phase(self) -> Phase:
        if self.state == CardLifecycleState.LEARNING:
            return Learning(step_index=self.step_index or 0)
        if self.state == CardLifecycleState.RELEARNING:
            return Relearning(step_index=self.step_index or 0)
        if self.state == CardLifecycleState.REVIEW:
            return Review(interval=self.interval)
        return New()
