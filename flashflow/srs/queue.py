"""Study queue helpers over collections of cards.

Splits due cards into a learning queue (new, learning, relearning) and a
review queue, picks the next card to study, and summarizes review history
per day.
"""

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from flashflow.srs.calendar import Calendar, ZoneCalendar
from flashflow.srs.cards import Card
from flashflow.srs.vocabulary import CardLifecycleState

logger = logging.getLogger(__name__)


class StudyQueue(Enum):
    """Which queue a card is studied from."""

    LEARNING = "learning"
    REVIEW = "review"

    def accepts(self, state: CardLifecycleState) -> bool:
        """Return True if cards in ``state`` belong to this queue."""
        if self == StudyQueue.REVIEW:
            return state == CardLifecycleState.REVIEW
        return state != CardLifecycleState.REVIEW


# Lower sorts first when due dates tie
STATE_PRIORITY = {
    CardLifecycleState.LEARNING: 0,
    CardLifecycleState.RELEARNING: 1,
    CardLifecycleState.REVIEW: 2,
    CardLifecycleState.NEW: 3,
}


@dataclass(frozen=True)
class QueueDueCounts:
    """Number of due cards per queue."""

    learning: int = 0
    review: int = 0

    @property
    def total(self) -> int:
        return self.learning + self.review


def due_counts(cards: Iterable[Card], now: datetime) -> QueueDueCounts:
    """Count the cards due at ``now`` in each queue."""
    due = [card for card in cards if card.due <= now]
    return QueueDueCounts(
        learning=sum(1 for card in due if StudyQueue.LEARNING.accepts(card.state)),
        review=sum(1 for card in due if StudyQueue.REVIEW.accepts(card.state)),
    )


def next_due(cards: Iterable[Card], queue: StudyQueue, now: datetime) -> Card | None:
    """Return the card to study next from ``queue``, or None if nothing is due.

    Ordering: earliest due date first, then Learning, Relearning, Review,
    New, then card ID for a stable result.
    """
    candidates = [card for card in cards if card.due <= now and queue.accepts(card.state)]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda card: (card.due, STATE_PRIORITY[card.state], card.card_id),
    )


def review_heatmap(
    cards: Iterable[Card],
    now: datetime,
    days: int = 140,
    calendar: Calendar | None = None,
) -> dict[date, int]:
    """Count reviews per local day.

    Every day of the trailing ``days`` window ending today is present, with
    0 for days without reviews. Reviews older than the window are included
    too.

    Args:
        cards: Cards whose review histories are summarized.
        now: The current time; its local date is "today".
        days: Size of the zero-filled window (at least 1).
        calendar: Calendar that decides local dates (UTC by default).

    Returns:
        Mapping of local date to review count.
    """
    calendar = calendar or ZoneCalendar()
    today = calendar.local_date(now)

    counts: Counter[date] = Counter(
        calendar.local_date(reviewed_at) for card in cards for reviewed_at in card.review_history
    )
    window = max(1, days)
    for offset in range(window):
        counts[today - timedelta(days=offset)] += 0

    logger.debug("Heatmap over %d days: %d reviews", window, sum(counts.values()))
    return dict(counts)
