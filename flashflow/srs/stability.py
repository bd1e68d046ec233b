"""Stability scheduler: an FSRS-style memory model for long intervals.

Key concepts:
- Stability (S): days until recall probability decays to ~37%.
- Difficulty (D): 1-10, how hard the card is; scales stability growth.
- Retrievability (R): probability of recall after t days,
  R(t) = (1 + FACTOR * t / S) ^ DECAY.
- Grade: 1=Again, 2=Hard, 3=Good, 4=Easy

The next interval is the t at which R(t) falls to the target retention.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING

from flashflow.srs.calendar import round_days
from flashflow.srs.vocabulary import CardLifecycleState, Grade

if TYPE_CHECKING:
    from flashflow.config import Settings

logger = logging.getLogger(__name__)

# Forgetting curve shape; FACTOR makes R(S) = 0.9 exactly
DECAY = -0.5
FACTOR = 19.0 / 81.0

# Default parameter vector. Formulas below use 1-based subscripts, so
# w(1) is the first entry and w(17) the last.
DEFAULT_WEIGHTS: tuple[float, ...] = (
    0.4, 0.6, 2.4, 5.8, 4.93, 0.94, 0.86, 0.01, 1.49,
    0.14, 0.94, 2.18, 0.05, 0.34, 1.26, 0.29, 2.61,
)
WEIGHT_COUNT = 17
DEFAULT_TARGET_RETENTION = 0.9

# Bounds
MIN_STABILITY = 0.1
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0
MIN_RETENTION = 0.7
MAX_RETENTION = 0.99
DEFAULT_DIFFICULTY = 5.0

# First-review seeds per grade
INITIAL_DIFFICULTY = {
    Grade.AGAIN: 7.5,
    Grade.HARD: 6.5,
    Grade.GOOD: 5.0,
    Grade.EASY: 3.8,
}
INITIAL_STABILITY = {
    Grade.AGAIN: 0.4,
    Grade.HARD: 1.2,
    Grade.GOOD: 2.4,
    Grade.EASY: 3.6,
}


def _clamp(value: float, lower: float, upper: float) -> float:
    return min(max(value, lower), upper)


@dataclass(frozen=True)
class StabilityParameters:
    """Weight vector and target retention for the stability scheduler."""

    weights: tuple[float, ...] = DEFAULT_WEIGHTS
    target_retention: float = DEFAULT_TARGET_RETENTION

    def __post_init__(self) -> None:
        object.__setattr__(self, "weights", tuple(self.weights))
        if len(self.weights) < WEIGHT_COUNT:
            # TODO: decide between failing fast and the neutral 1.0 fallback
            logger.warning(
                "Weight vector has %d entries, expected %d; missing weights act as 1.0",
                len(self.weights),
                WEIGHT_COUNT,
            )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> StabilityParameters:
        """Build parameters from application settings (defaults to the global ones)."""
        if settings is None:
            from flashflow.config import settings
        return cls(weights=tuple(settings.weights), target_retention=settings.target_retention)


@dataclass(frozen=True)
class StabilityCard:
    """Input and output of the stability scheduler."""

    stability: float = INITIAL_STABILITY[Grade.AGAIN]
    difficulty: float = DEFAULT_DIFFICULTY
    elapsed_days: int = 0  # Whole days since last_review
    scheduled_days: int = 0  # Interval chosen at the previous review
    reps: int = 0
    state: CardLifecycleState = CardLifecycleState.NEW
    last_review: datetime | None = None


class StabilityScheduler:
    """Long-interval scheduler driven by the forgetting curve."""

    def __init__(self, parameters: StabilityParameters | None = None) -> None:
        """Initialize with optional custom weights and target retention."""
        self.parameters = parameters or StabilityParameters()

    @property
    def target_retention(self) -> float:
        """Target retention clamped to the supported range."""
        return _clamp(self.parameters.target_retention, MIN_RETENTION, MAX_RETENTION)

    def schedule(self, card: StabilityCard, grade: Grade, now: datetime) -> StabilityCard:
        """Apply a grade and return the updated memory state.

        Args:
            card: Current memory state; ``state`` selects the update rule.
            grade: The learner's rating.
            now: When the review happened; becomes ``last_review``.

        Returns:
            A new StabilityCard with ``reps`` incremented and ``elapsed_days`` reset.
        """
        card = replace(card, reps=card.reps + 1)

        if card.state == CardLifecycleState.NEW:
            card = self._schedule_first_review(card, grade)
        elif card.state in (CardLifecycleState.LEARNING, CardLifecycleState.RELEARNING):
            card = self._schedule_learning(card, grade)
        else:
            card = self._schedule_review(card, grade)

        return replace(card, elapsed_days=0, last_review=now)

    def retrievability(self, stability: float, elapsed_days: float) -> float:
        """Probability of recall ``elapsed_days`` after a review."""
        s = max(MIN_STABILITY, stability)
        t = max(0.0, float(elapsed_days))
        return (1.0 + FACTOR * t / s) ** DECAY

    def interval_for(self, stability: float) -> float:
        """Unrounded days until retrievability falls to the target retention.

        Inverse of the forgetting curve:
            t = S / FACTOR * (retention ^ (1 / DECAY) - 1)
        """
        s = max(MIN_STABILITY, stability)
        return (s / FACTOR) * (self.target_retention ** (1.0 / DECAY) - 1.0)

    def next_interval_days(self, stability: float) -> int:
        """Interval for ``stability`` in whole days, at least one."""
        return max(1, round_days(self.interval_for(stability)))

    def w(self, index: int) -> float:
        """Return weight ``index`` (1-based); missing entries are a neutral 1.0."""
        position = max(1, index) - 1
        if position >= len(self.parameters.weights):
            return 1.0
        return self.parameters.weights[position]

    def _schedule_first_review(self, card: StabilityCard, grade: Grade) -> StabilityCard:
        stability = INITIAL_STABILITY[grade]
        card = replace(card, difficulty=INITIAL_DIFFICULTY[grade], stability=stability)

        if grade == Grade.AGAIN:
            return replace(card, state=CardLifecycleState.LEARNING, scheduled_days=0)
        if grade == Grade.HARD:
            return replace(card, state=CardLifecycleState.LEARNING, scheduled_days=1)
        if grade == Grade.GOOD:
            return replace(
                card,
                state=CardLifecycleState.REVIEW,
                scheduled_days=max(1, round_days(stability)),
            )
        return replace(
            card,
            state=CardLifecycleState.REVIEW,
            scheduled_days=max(2, round_days(stability * 1.5)),
        )

    def _schedule_learning(self, card: StabilityCard, grade: Grade) -> StabilityCard:
        s = card.stability

        if grade == Grade.AGAIN:
            return replace(
                card,
                state=CardLifecycleState.RELEARNING,
                scheduled_days=0,
                stability=max(MIN_STABILITY, s * 0.7),
            )
        if grade == Grade.HARD:
            return replace(
                card,
                state=CardLifecycleState.LEARNING,
                scheduled_days=1,
                stability=max(MIN_STABILITY, s * 1.05),
            )
        if grade == Grade.GOOD:
            return replace(
                card,
                state=CardLifecycleState.REVIEW,
                scheduled_days=max(1, round_days(s * 1.2)),
                stability=max(MIN_STABILITY, s * 1.2),
            )
        return replace(
            card,
            state=CardLifecycleState.REVIEW,
            scheduled_days=max(2, round_days(s * 1.6)),
            stability=max(MIN_STABILITY, s * 1.6),
        )

    def _schedule_review(self, card: StabilityCard, grade: Grade) -> StabilityCard:
        # Early or late reviews: use whichever is longer, actual or scheduled
        elapsed = max(0, card.elapsed_days, card.scheduled_days)
        r = self.retrievability(card.stability, elapsed)

        difficulty = self._updated_difficulty(card.difficulty, grade)
        stability = self._updated_stability(card.stability, difficulty, r, grade)

        if grade == Grade.AGAIN:
            return replace(
                card,
                state=CardLifecycleState.RELEARNING,
                difficulty=difficulty,
                stability=stability,
                scheduled_days=0,
            )

        return replace(
            card,
            state=CardLifecycleState.REVIEW,
            difficulty=difficulty,
            stability=stability,
            scheduled_days=self.next_interval_days(stability),
        )

    def _updated_difficulty(self, difficulty: float, grade: Grade) -> float:
        """D' = w5 * D0 + (1 - w5) * (D - w6 * (grade - 3)), clamped to [1, 10]."""
        shifted = difficulty - self.w(6) * (int(grade) - 3)
        blended = self.w(5) * DEFAULT_DIFFICULTY + (1.0 - self.w(5)) * shifted
        return _clamp(blended, MIN_DIFFICULTY, MAX_DIFFICULTY)

    def _updated_stability(
        self,
        stability: float,
        difficulty: float,
        retrievability: float,
        grade: Grade,
    ) -> float:
        s = max(MIN_STABILITY, stability)
        d = _clamp(difficulty, MIN_DIFFICULTY, MAX_DIFFICULTY)
        r = _clamp(retrievability, 0.0, 1.0)

        if grade == Grade.AGAIN:
            # S' = w11 * D^-w12 * ((S+1)^w13 - 1) * e^(w14 * (1-R))
            lapsed = (
                self.w(11)
                * d ** -self.w(12)
                * ((s + 1.0) ** self.w(13) - 1.0)
                * math.exp(self.w(14) * (1.0 - r))
            )
            return max(MIN_STABILITY, lapsed)

        # S' = S * (1 + e^w8 * (11-D) * S^-w9 * (e^(w10 * (1-R)) - 1))
        growth = (
            math.exp(self.w(8))
            * (11.0 - d)
            * s ** -self.w(9)
            * (math.exp(self.w(10) * (1.0 - r)) - 1.0)
        )
        return max(MIN_STABILITY, s * (1.0 + growth))


def stability_schedule(
    card: StabilityCard,
    grade: Grade,
    now: datetime,
    parameters: StabilityParameters | None = None,
) -> StabilityCard:
    """Pure-function form of StabilityScheduler.schedule."""
    return StabilityScheduler(parameters=parameters).schedule(card, grade, now)
