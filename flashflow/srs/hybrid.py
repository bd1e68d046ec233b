"""Hybrid router: decides which scheduler governs each review.

Policy:
- New/Learning/Relearning cards follow the step ladder. Whenever a step
  result lands in Review, a fresh StabilityState is seeded from the step
  schedule so the stability model has a starting point. Re-graduation
  from Relearning re-seeds too, replacing the lapse-time state.
- Review cards follow the stability model for Hard/Good/Easy.
- A lapse (Again in Review) goes back through the step ladder for the
  visible state and due date, while the stability model still records the
  failure in the hidden StabilityState.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING

from flashflow.srs.calendar import Calendar, ZoneCalendar
from flashflow.srs.cards import Card, Review, StabilityState
from flashflow.srs.stability import (
    DEFAULT_DIFFICULTY,
    StabilityCard,
    StabilityParameters,
    StabilityScheduler,
)
from flashflow.srs.step import StepConfig, StepScheduler
from flashflow.srs.vocabulary import CardLifecycleState, Grade, SchedulerMode

if TYPE_CHECKING:
    from flashflow.config import Settings

logger = logging.getLogger(__name__)

SEED_MIN_STABILITY = 0.4


class HybridScheduler:
    """Single entry point for scheduling a review."""

    def __init__(
        self,
        step: StepScheduler | None = None,
        stability: StabilityScheduler | None = None,
        mode: SchedulerMode = SchedulerMode.HYBRID,
    ) -> None:
        """Initialize with optional schedulers; both default to stock parameters."""
        self.step = step or StepScheduler()
        self.stability = stability or StabilityScheduler()
        self.mode = mode

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> HybridScheduler:
        """Build a scheduler wired from application settings."""
        if settings is None:
            from flashflow.config import settings
        calendar = ZoneCalendar(settings.timezone)
        return cls(
            step=StepScheduler(StepConfig.from_settings(settings), calendar),
            stability=StabilityScheduler(StabilityParameters.from_settings(settings)),
            mode=settings.scheduler_mode,
        )

    @property
    def calendar(self) -> Calendar:
        return self.step.calendar

    def review(self, card: Card, grade: Grade, now: datetime) -> Card:
        """Apply a grade to a card and return the updated card.

        The caller appends ``now`` to the review history before calling;
        the engine only reads it.

        Args:
            card: The card snapshot, never modified.
            grade: The learner's rating.
            now: When the review happened.

        Returns:
            The card with its new schedule and memory state.
        """
        if self.mode == SchedulerMode.STEP:
            updated = replace(card, schedule=self.step.schedule(card.schedule, grade, now))
        elif card.state == CardLifecycleState.REVIEW:
            updated = self._review_with_stability(card, grade, now)
        else:
            updated = self._review_with_steps(card, grade, now)

        logger.debug(
            "Card %s: %s -> %s (grade=%s, due=%s)",
            card.card_id,
            card.state.value,
            updated.state.value,
            grade.name,
            updated.due.isoformat(),
        )
        return updated

    def seed_stability(self, card: Card, now: datetime) -> StabilityState:
        """Synthesize a starting StabilityState from a card's step schedule."""
        interval = card.schedule.interval
        return StabilityState(
            stability=max(SEED_MIN_STABILITY, float(interval)),
            difficulty=DEFAULT_DIFFICULTY,
            reps=max(1, len(card.review_history)),
            scheduled_days=max(0, interval),
            last_review=now,
        )

    def stability_input(self, card: Card, now: datetime) -> StabilityCard:
        """Build the stability scheduler's input from a Review card."""
        baseline = card.stability or self.seed_stability(card, now)
        elapsed = max(0, self.calendar.days_between(baseline.last_review, now))
        return StabilityCard(
            stability=baseline.stability,
            difficulty=baseline.difficulty,
            elapsed_days=elapsed,
            scheduled_days=max(0, baseline.scheduled_days),
            reps=baseline.reps,
            state=card.state,
            last_review=baseline.last_review,
        )

    def _review_with_steps(self, card: Card, grade: Grade, now: datetime) -> Card:
        schedule = self.step.schedule(card.schedule, grade, now)
        updated = replace(card, schedule=schedule)
        if schedule.state == CardLifecycleState.REVIEW:
            updated = replace(updated, stability=self.seed_stability(updated, now))
        return updated

    def _review_with_stability(self, card: Card, grade: Grade, now: datetime) -> Card:
        result = self.stability.schedule(self.stability_input(card, now), grade, now)
        memory = StabilityState(
            stability=result.stability,
            difficulty=result.difficulty,
            reps=result.reps,
            scheduled_days=result.scheduled_days,
            last_review=now,
        )

        if grade == Grade.AGAIN:
            # Visible lapse comes from the relearning ladder
            relearning = self.step.schedule(card.schedule, grade, now)
            return replace(card, schedule=relearning, stability=memory)

        interval = max(1, result.scheduled_days)
        schedule = replace(
            card.schedule,
            phase=Review(interval=interval),
            due=self.calendar.add_days(now, interval),
        )
        return replace(card, schedule=schedule, stability=memory)


def hybrid_review(
    card: Card,
    grade: Grade,
    now: datetime,
    scheduler: HybridScheduler | None = None,
) -> Card:
    """Schedule a review with the hybrid policy.

    This is the function the persistence/orchestration layer calls.
    """
    return (scheduler or HybridScheduler()).review(card, grade, now)
