"""Step scheduler: SM-2 style learning ladders with an ease factor.

Handles cards before they settle into a long-term cadence:
- New/Learning cards climb a ladder of short delays (default 1m, 10m)
- Review cards grow their interval by the ease factor
- Lapsed cards climb the relearning ladder (default 10m) back to Review

Step delays are raw seconds; review intervals are calendar days.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from flashflow.srs.calendar import Calendar, ZoneCalendar, round_days
from flashflow.srs.cards import Learning, Relearning, Review, StepSchedule
from flashflow.srs.vocabulary import CardLifecycleState, Grade

if TYPE_CHECKING:
    from flashflow.config import Settings

# Fallback delays when a ladder has no entry at the requested index
FIRST_STEP_FALLBACK = 60.0
LATER_STEP_FALLBACK = 600.0

EASY_EASE_BONUS = 0.15
LAPSE_EASE_PENALTY = 0.20
HARD_INTERVAL_MULTIPLIER = 1.2
EASY_INTERVAL_BONUS = 1.30


@dataclass(frozen=True)
class StepConfig:
    """Ladders and limits for the step scheduler."""

    learning_steps: tuple[float, ...] = (60.0, 600.0)  # 1m, 10m
    relearning_steps: tuple[float, ...] = (600.0,)  # 10m
    graduating_interval_days: int = 1
    easy_interval_days: int = 4
    minimum_ease_factor: float = 1.3

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> StepConfig:
        """Build a config from application settings (defaults to the global ones)."""
        if settings is None:
            from flashflow.config import settings
        return cls(
            learning_steps=tuple(settings.learning_steps),
            relearning_steps=tuple(settings.relearning_steps),
            graduating_interval_days=settings.graduating_interval_days,
            easy_interval_days=settings.easy_interval_days,
            minimum_ease_factor=settings.minimum_ease_factor,
        )


def _step_delay(steps: Sequence[float], index: int) -> float:
    """Return the delay in seconds for a ladder position."""
    if 0 <= index < len(steps):
        return steps[index]
    return FIRST_STEP_FALLBACK if index == 0 else LATER_STEP_FALLBACK


class StepScheduler:
    """Short-interval scheduler driven by fixed step ladders."""

    def __init__(
        self,
        config: StepConfig | None = None,
        calendar: Calendar | None = None,
    ) -> None:
        """Initialize with optional config and calendar (UTC by default)."""
        self.config = config or StepConfig()
        self.calendar = calendar or ZoneCalendar()

    def schedule(self, schedule: StepSchedule, grade: Grade, now: datetime) -> StepSchedule:
        """Apply a grade to a schedule and return the next one.

        Args:
            schedule: The card's current visible schedule.
            grade: The learner's rating.
            now: When the review happened.

        Returns:
            A new StepSchedule; the input is never modified.
        """
        state = schedule.state
        if state in (CardLifecycleState.NEW, CardLifecycleState.LEARNING):
            return self._schedule_learning(schedule, grade, now)
        if state == CardLifecycleState.REVIEW:
            return self._schedule_review(schedule, grade, now)
        return self._schedule_relearning(schedule, grade, now)

    def _schedule_learning(self, schedule: StepSchedule, grade: Grade, now: datetime) -> StepSchedule:
        steps = self.config.learning_steps

        if grade in (Grade.AGAIN, Grade.HARD):
            # Back to the first step
            return replace(
                schedule,
                phase=Learning(step_index=0),
                due=now + timedelta(seconds=_step_delay(steps, 0)),
            )

        if grade == Grade.GOOD:
            target = max(1, (schedule.step_index or 0) + 1)
            if target >= len(steps):
                return self._graduate(schedule, self.config.graduating_interval_days, now)
            return replace(
                schedule,
                phase=Learning(step_index=target),
                due=now + timedelta(seconds=_step_delay(steps, target)),
            )

        # Easy skips the rest of the ladder
        ease = max(self.config.minimum_ease_factor, schedule.ease_factor + EASY_EASE_BONUS)
        return self._graduate(
            replace(schedule, ease_factor=ease), self.config.easy_interval_days, now
        )

    def _schedule_review(self, schedule: StepSchedule, grade: Grade, now: datetime) -> StepSchedule:
        if grade == Grade.AGAIN:
            # Lapse: demote to relearning, due after the first learning step
            ease = max(self.config.minimum_ease_factor, schedule.ease_factor - LAPSE_EASE_PENALTY)
            return replace(
                schedule,
                phase=Relearning(step_index=0),
                ease_factor=ease,
                due=now + timedelta(seconds=_step_delay(self.config.learning_steps, 0)),
            )

        ease = self._updated_ease(schedule.ease_factor, grade.sm2_quality)
        interval = schedule.interval

        if grade == Grade.HARD:
            proposed = max(1.0, max(1, interval) * HARD_INTERVAL_MULTIPLIER)
        elif grade == Grade.GOOD:
            proposed = 6.0 if interval <= 1 else interval * ease
        else:
            proposed = 8.0 if interval <= 1 else interval * ease * EASY_INTERVAL_BONUS

        return self._graduate(replace(schedule, ease_factor=ease), round_days(proposed), now)

    def _schedule_relearning(self, schedule: StepSchedule, grade: Grade, now: datetime) -> StepSchedule:
        steps = self.config.relearning_steps
        current = schedule.step_index or 0

        if grade == Grade.AGAIN:
            return replace(
                schedule,
                phase=Relearning(step_index=0),
                due=now + timedelta(seconds=_step_delay(self.config.learning_steps, 0)),
            )

        if grade == Grade.HARD:
            delay = _step_delay(steps, current) * 1.5
            return replace(
                schedule,
                phase=Relearning(step_index=current),
                due=now + timedelta(seconds=delay),
            )

        target = current + 1
        if target >= len(steps):
            # Relearning carries no interval, so this is the 1-day floor
            interval = max(1, schedule.interval)
            if grade == Grade.EASY:
                interval = max(interval, 2)
            return self._graduate(schedule, interval, now)

        return replace(
            schedule,
            phase=Relearning(step_index=target),
            due=now + timedelta(seconds=_step_delay(steps, target)),
        )

    def _graduate(self, schedule: StepSchedule, interval: int, now: datetime) -> StepSchedule:
        """Move to Review with an interval in whole days (at least one)."""
        interval = max(1, interval)
        return replace(
            schedule,
            phase=Review(interval=interval),
            due=self.calendar.add_days(now, interval),
        )

    def _updated_ease(self, current: float, quality: int) -> float:
        """Classic SM-2 ease update: EF' = EF + 0.1 - (5-q)(0.08 + (5-q)0.02)."""
        miss = 5.0 - quality
        delta = 0.1 - miss * (0.08 + miss * 0.02)
        return max(self.config.minimum_ease_factor, current + delta)


def step_schedule(
    schedule: StepSchedule,
    grade: Grade,
    now: datetime,
    config: StepConfig | None = None,
    calendar: Calendar | None = None,
) -> StepSchedule:
    """Pure-function form of StepScheduler.schedule."""
    return StepScheduler(config=config, calendar=calendar).schedule(schedule, grade, now)
