"""Tests for the step scheduler: learning ladder, review growth, relearning."""

from datetime import UTC, datetime, timedelta

import pytest

from flashflow.srs.calendar import ZoneCalendar
from flashflow.srs.cards import Learning, New, Relearning, Review, StepSchedule
from flashflow.srs.step import StepConfig, StepScheduler, step_schedule
from flashflow.srs.vocabulary import CardLifecycleState, Grade

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _schedule(phase=None, ease: float = 2.5) -> StepSchedule:
    return StepSchedule(due=NOW, phase=phase or New(), ease_factor=ease)


# --- New / Learning ---


class TestLearning:
    def setup_method(self) -> None:
        self.scheduler = StepScheduler()

    def test_new_easy_graduates_with_easy_interval(self) -> None:
        result = self.scheduler.schedule(_schedule(), Grade.EASY, NOW)
        assert result.state == CardLifecycleState.REVIEW
        assert result.interval == 4
        assert result.ease_factor == pytest.approx(2.65)
        assert result.due == NOW + timedelta(days=4)
        assert result.step_index is None

    def test_learning_good_advances_to_next_step(self) -> None:
        result = self.scheduler.schedule(_schedule(Learning(step_index=0)), Grade.GOOD, NOW)
        assert result.state == CardLifecycleState.LEARNING
        assert result.step_index == 1
        assert result.due == NOW + timedelta(seconds=600)

    def test_learning_good_on_last_step_graduates(self) -> None:
        result = self.scheduler.schedule(_schedule(Learning(step_index=1)), Grade.GOOD, NOW)
        assert result.state == CardLifecycleState.REVIEW
        assert result.interval == 1
        assert result.due == NOW + timedelta(days=1)
        assert result.ease_factor == 2.5

    def test_new_good_moves_past_first_step(self) -> None:
        result = self.scheduler.schedule(_schedule(), Grade.GOOD, NOW)
        assert result.state == CardLifecycleState.LEARNING
        assert result.step_index == 1
        assert result.due == NOW + timedelta(seconds=600)

    @pytest.mark.parametrize("grade", [Grade.AGAIN, Grade.HARD])
    def test_again_and_hard_reset_to_first_step(self, grade: Grade) -> None:
        result = self.scheduler.schedule(_schedule(Learning(step_index=1)), grade, NOW)
        assert result.state == CardLifecycleState.LEARNING
        assert result.step_index == 0
        assert result.due == NOW + timedelta(seconds=60)
        assert result.interval == 0

    def test_single_step_ladder_graduates_new_card_on_good(self) -> None:
        scheduler = StepScheduler(StepConfig(learning_steps=(120.0,)))
        result = scheduler.schedule(_schedule(), Grade.GOOD, NOW)
        assert result.state == CardLifecycleState.REVIEW
        assert result.interval == 1

    def test_empty_ladder_falls_back_to_one_minute(self) -> None:
        scheduler = StepScheduler(StepConfig(learning_steps=()))
        result = scheduler.schedule(_schedule(), Grade.AGAIN, NOW)
        assert result.due == NOW + timedelta(seconds=60)


# --- Review ---


class TestReview:
    def setup_method(self) -> None:
        self.scheduler = StepScheduler()

    def test_again_lapses_to_relearning(self) -> None:
        result = self.scheduler.schedule(_schedule(Review(interval=10)), Grade.AGAIN, NOW)
        assert result.state == CardLifecycleState.RELEARNING
        assert result.step_index == 0
        assert result.interval == 0
        assert result.ease_factor == pytest.approx(2.3)
        assert result.due == NOW + timedelta(seconds=60)

    def test_hard_grows_interval_slowly_and_lowers_ease(self) -> None:
        result = self.scheduler.schedule(_schedule(Review(interval=10)), Grade.HARD, NOW)
        assert result.ease_factor == pytest.approx(2.36)
        assert result.interval == 12
        assert result.due == NOW + timedelta(days=12)

    def test_good_multiplies_by_ease(self) -> None:
        result = self.scheduler.schedule(_schedule(Review(interval=10)), Grade.GOOD, NOW)
        assert result.ease_factor == pytest.approx(2.5)
        assert result.interval == 25

    def test_easy_adds_bonus(self) -> None:
        result = self.scheduler.schedule(_schedule(Review(interval=10)), Grade.EASY, NOW)
        assert result.ease_factor == pytest.approx(2.6)
        assert result.interval == 34  # 10 * 2.6 * 1.3 = 33.8

    def test_first_review_after_graduation_uses_fixed_intervals(self) -> None:
        start = _schedule(Review(interval=1))
        assert self.scheduler.schedule(start, Grade.HARD, NOW).interval == 1
        assert self.scheduler.schedule(start, Grade.GOOD, NOW).interval == 6
        assert self.scheduler.schedule(start, Grade.EASY, NOW).interval == 8

    def test_ease_never_drops_below_minimum(self) -> None:
        start = _schedule(Review(interval=5), ease=1.3)
        assert self.scheduler.schedule(start, Grade.AGAIN, NOW).ease_factor == 1.3
        assert self.scheduler.schedule(start, Grade.HARD, NOW).ease_factor == 1.3

    @pytest.mark.parametrize("interval", [1, 2, 5, 17, 90])
    @pytest.mark.parametrize("ease", [1.3, 2.0, 2.5, 3.1])
    def test_easier_grades_never_shorten_interval(self, interval: int, ease: float) -> None:
        start = _schedule(Review(interval=interval), ease=ease)
        hard = self.scheduler.schedule(start, Grade.HARD, NOW).interval
        good = self.scheduler.schedule(start, Grade.GOOD, NOW).interval
        easy = self.scheduler.schedule(start, Grade.EASY, NOW).interval
        assert hard <= good <= easy

    def test_lapse_is_due_before_any_success(self) -> None:
        start = _schedule(Review(interval=1))
        lapse = self.scheduler.schedule(start, Grade.AGAIN, NOW)
        for grade in (Grade.HARD, Grade.GOOD, Grade.EASY):
            assert lapse.due < self.scheduler.schedule(start, grade, NOW).due


# --- Relearning ---


class TestRelearning:
    def setup_method(self) -> None:
        self.scheduler = StepScheduler()

    def test_again_restarts_ladder(self) -> None:
        result = self.scheduler.schedule(_schedule(Relearning(step_index=0)), Grade.AGAIN, NOW)
        assert result.state == CardLifecycleState.RELEARNING
        assert result.step_index == 0
        assert result.due == NOW + timedelta(seconds=60)

    def test_hard_repeats_step_with_longer_delay(self) -> None:
        result = self.scheduler.schedule(_schedule(Relearning(step_index=0)), Grade.HARD, NOW)
        assert result.state == CardLifecycleState.RELEARNING
        assert result.step_index == 0
        assert result.due == NOW + timedelta(seconds=900)

    def test_good_on_last_step_returns_to_review(self) -> None:
        result = self.scheduler.schedule(_schedule(Relearning(step_index=0)), Grade.GOOD, NOW)
        assert result.state == CardLifecycleState.REVIEW
        assert result.interval == 1
        assert result.due == NOW + timedelta(days=1)

    def test_easy_on_last_step_waits_at_least_two_days(self) -> None:
        result = self.scheduler.schedule(_schedule(Relearning(step_index=0)), Grade.EASY, NOW)
        assert result.state == CardLifecycleState.REVIEW
        assert result.interval == 2

    def test_good_advances_through_longer_ladder(self) -> None:
        scheduler = StepScheduler(StepConfig(relearning_steps=(600.0, 3600.0)))
        result = scheduler.schedule(_schedule(Relearning(step_index=0)), Grade.GOOD, NOW)
        assert result.state == CardLifecycleState.RELEARNING
        assert result.step_index == 1
        assert result.due == NOW + timedelta(seconds=3600)


# --- Calendar handling ---


class TestDayArithmetic:
    def test_review_interval_keeps_local_time_across_dst(self) -> None:
        # 09:00 EST on the day before clocks spring forward
        before_dst = datetime(2026, 3, 7, 14, 0, tzinfo=UTC)
        scheduler = StepScheduler(calendar=ZoneCalendar("America/New_York"))

        result = scheduler.schedule(_schedule(Learning(step_index=1)), Grade.GOOD, before_dst)

        assert result.interval == 1
        assert result.due - before_dst == timedelta(hours=23)

    def test_learning_steps_are_raw_seconds_across_dst(self) -> None:
        # 01:59:30 EST, thirty seconds before the clock jumps to 03:00
        moment = datetime(2026, 3, 8, 6, 59, 30, tzinfo=UTC)
        scheduler = StepScheduler(calendar=ZoneCalendar("America/New_York"))

        result = scheduler.schedule(_schedule(), Grade.AGAIN, moment)

        assert result.due - moment == timedelta(seconds=60)

    def test_function_form_matches_scheduler(self) -> None:
        start = _schedule(Review(interval=7))
        assert step_schedule(start, Grade.GOOD, NOW) == StepScheduler().schedule(
            start, Grade.GOOD, NOW
        )


# --- Bounds ---


class TestBounds:
    @pytest.mark.parametrize(
        "phase",
        [New(), Learning(step_index=0), Learning(step_index=1), Review(interval=1),
         Review(interval=30), Relearning(step_index=0)],
    )
    @pytest.mark.parametrize("grade", list(Grade))
    @pytest.mark.parametrize("ease", [1.3, 2.5])
    def test_results_stay_in_range(self, phase, grade: Grade, ease: float) -> None:
        result = StepScheduler().schedule(_schedule(phase, ease=ease), grade, NOW)

        assert result.ease_factor >= StepConfig().minimum_ease_factor
        assert result.due > NOW
        if result.state == CardLifecycleState.REVIEW:
            assert result.interval >= 1
        else:
            assert result.interval == 0
