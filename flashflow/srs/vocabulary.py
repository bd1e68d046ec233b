"""Shared vocabulary of the scheduling engine.

Both schedulers consume and produce these values:
- Grade: the learner's four-way recall rating (1=Again, 2=Hard, 3=Good, 4=Easy)
- CardLifecycleState: which phase a card is in, and so which scheduler owns it
- SchedulerMode: whether the hybrid router or the step scheduler alone is in charge
"""

from enum import Enum, IntEnum


class Grade(IntEnum):
    """Recall quality reported by the learner."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @property
    def sm2_quality(self) -> int:
        """Classic SM-2 quality score (0-5 scale) for this grade."""
        return _SM2_QUALITY[self]

    @classmethod
    def parse(cls, value: "str | int | Grade") -> "Grade":
        """Parse a grade from its name ("good", "Easy") or ordinal (1-4)."""
        if isinstance(value, Grade):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"grade must be between 1 and 4, got {value}") from None
        text = value.strip()
        if text.isdigit():
            return cls.parse(int(text))
        try:
            return cls[text.upper()]
        except KeyError:
            raise ValueError(f"unknown grade: {value!r}") from None


_SM2_QUALITY = {
    Grade.AGAIN: 0,
    Grade.HARD: 3,
    Grade.GOOD: 4,
    Grade.EASY: 5,
}


class CardLifecycleState(Enum):
    """The phase a card is in."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


class SchedulerMode(Enum):
    """Which policy governs review transitions."""

    STEP = "step"  # Step ladder + ease factor only (SM-2 style)
    HYBRID = "hybrid"  # Step ladder for learning, stability model for review
