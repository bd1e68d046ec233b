"""Developer CLI for the FlashFlow scheduling engine.

Usage:
    python -m flashflow_cli simulate good good again good    Replay grades on a new card
    python -m flashflow_cli simulate 3 3 4 --mode step       Same, step scheduler only
    python -m flashflow_cli curve 10                         Forgetting curve for S=10
"""

import argparse
import logging
from datetime import datetime

from flashflow.config import settings, utcnow
from flashflow.schemas import CardRecord
from flashflow.srs.cards import Card
from flashflow.srs.hybrid import HybridScheduler
from flashflow.srs.stability import StabilityParameters, StabilityScheduler
from flashflow.srs.vocabulary import Grade, SchedulerMode

logger = logging.getLogger(__name__)


def _describe(index: int, grade: Grade, card: Card) -> str:
    """One line per review: grade, resulting state and interval, memory model."""
    schedule = card.schedule
    line = (
        f"  {index:>3}. {grade.name.lower():<6} -> {schedule.state.value:<10} "
        f"interval={schedule.interval:<4} ease={schedule.ease_factor:.2f} "
        f"due={schedule.due.isoformat()}"
    )
    if card.stability is not None:
        line += (
            f"  S={card.stability.stability:.2f} D={card.stability.difficulty:.2f}"
            f" reps={card.stability.reps}"
        )
    return line


def cmd_simulate(args: argparse.Namespace) -> None:
    """Replay a grade sequence on a new card, reviewing each time it falls due."""
    scheduler = HybridScheduler.from_settings(settings)
    if args.mode:
        scheduler.mode = SchedulerMode(args.mode)

    now = args.start or utcnow()
    card = Card.new("simulated", now, ease_factor=settings.initial_ease_factor)
    logger.info("Simulating %d reviews in %s mode", len(args.grades), scheduler.mode.value)

    if not args.json:
        print(f"\n  Simulation ({scheduler.mode.value} mode), start {now.isoformat()}\n")

    for index, grade in enumerate(args.grades, 1):
        now = max(now, card.due)
        card = scheduler.review(card.with_review(now), grade, now)
        if args.json:
            print(CardRecord.from_card(card).model_dump_json())
        else:
            print(_describe(index, grade, card))

    if not args.json:
        print()


def cmd_curve(args: argparse.Namespace) -> None:
    """Print retrievability by day for a stability, and the scheduled interval."""
    scheduler = StabilityScheduler(StabilityParameters.from_settings(settings))
    stability = args.stability

    print(f"\n  Forgetting curve for S={stability:g} days")
    print(f"  {'Day':>5}  {'Recall':>7}")
    for day in range(args.days + 1):
        r = scheduler.retrievability(stability, day)
        print(f"  {day:>5}  {r:>7.1%}")

    print(
        f"\n  Target retention {scheduler.target_retention:.0%}: "
        f"next review in {scheduler.next_interval_days(stability)} days "
        f"({scheduler.interval_for(stability):.2f} unrounded)\n"
    )


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def main(argv: list[str] | None = None) -> None:
    """Entry point for the FlashFlow developer CLI."""
    parser = argparse.ArgumentParser(
        prog="flashflow_cli",
        description="FlashFlow hybrid scheduler tools",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # simulate
    simulate_parser = subparsers.add_parser("simulate", help="Replay grades on a new card")
    simulate_parser.add_argument(
        "grades", nargs="+", type=Grade.parse, help="Grades: again/hard/good/easy or 1-4"
    )
    simulate_parser.add_argument(
        "--start", type=datetime.fromisoformat, default=None, help="ISO start time (default: now)"
    )
    simulate_parser.add_argument(
        "--mode", choices=[mode.value for mode in SchedulerMode], default=None
    )
    simulate_parser.add_argument("--json", action="store_true", help="Print card records as JSON")

    # curve
    curve_parser = subparsers.add_parser("curve", help="Show the forgetting curve")
    curve_parser.add_argument("stability", type=_positive_float, help="Stability in days")
    curve_parser.add_argument("--days", type=int, default=30, help="Days to show (default: 30)")

    args = parser.parse_args(argv)

    if args.verbose or settings.debug:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    cmd_map = {
        "simulate": cmd_simulate,
        "curve": cmd_curve,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
