"""Tests for the capture rate limiter and the suggestion cooldown."""

import pytest

from conftest import ManualClock
from screensense.limits import Cooldown, SlidingWindowRateLimiter
from screensense.models import SuggestionType


class TestSlidingWindowRateLimiter:

    def test_allows_up_to_max_within_window(self):
        clock = ManualClock()
        limiter = SlidingWindowRateLimiter(3, clock=clock)
        assert [limiter.try_acquire() for _ in range(4)] == [True, True, True, False]
        assert limiter.in_window == 3

    def test_twenty_five_attempts_one_second_apart(self):
        """With a 20/min limit, 25 attempts a second apart yield exactly 20."""
        clock = ManualClock()
        limiter = SlidingWindowRateLimiter(20, clock=clock)
        granted = []
        for _ in range(25):
            if limiter.try_acquire():
                granted.append(clock())
            clock.advance(1.0)
        assert len(granted) == 20

    def test_no_trailing_window_exceeds_limit(self):
        clock = ManualClock()
        limiter = SlidingWindowRateLimiter(5, clock=clock)
        granted = []
        for _ in range(300):
            if limiter.try_acquire():
                granted.append(clock())
            clock.advance(0.7)
        for start in granted:
            in_window = [t for t in granted if start <= t < start + 60.0]
            assert len(in_window) <= 5

    def test_slot_frees_once_oldest_leaves_window(self):
        clock = ManualClock()
        limiter = SlidingWindowRateLimiter(2, clock=clock)
        assert limiter.try_acquire()
        clock.advance(30)
        assert limiter.try_acquire()
        clock.advance(29.5)
        assert not limiter.try_acquire()
        clock.advance(0.5)
        assert limiter.try_acquire()
        assert limiter.in_window == 2

    def test_denied_attempts_do_not_consume_slots(self):
        clock = ManualClock()
        limiter = SlidingWindowRateLimiter(1, clock=clock)
        assert limiter.try_acquire()
        for _ in range(10):
            clock.advance(5)
            assert not limiter.try_acquire()
        clock.advance(10)
        assert limiter.try_acquire()

    def test_reset(self):
        limiter = SlidingWindowRateLimiter(1, clock=ManualClock())
        assert limiter.try_acquire()
        limiter.reset()
        assert limiter.try_acquire()

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(0)


class TestCooldown:

    def test_first_fire_always_allowed(self):
        cooldown = Cooldown(30, clock=ManualClock())
        assert cooldown.ready(SuggestionType.FIX_ERROR)
        assert cooldown.try_fire(SuggestionType.FIX_ERROR)

    def test_suppressed_until_duration_elapses(self):
        clock = ManualClock()
        cooldown = Cooldown(30, clock=clock)
        assert cooldown.try_fire("fix-error")
        clock.advance(29.5)
        assert not cooldown.try_fire("fix-error")
        clock.advance(0.5)
        assert cooldown.try_fire("fix-error")

    def test_suppressed_attempt_does_not_restart_timer(self):
        clock = ManualClock()
        cooldown = Cooldown(30, clock=clock)
        cooldown.try_fire("k")
        clock.advance(20)
        assert not cooldown.try_fire("k")
        clock.advance(10)
        assert cooldown.try_fire("k")

    def test_keys_are_independent(self):
        clock = ManualClock()
        cooldown = Cooldown(30, clock=clock)
        assert cooldown.try_fire(SuggestionType.FIX_ERROR)
        assert cooldown.try_fire(SuggestionType.REFACTOR)
        assert not cooldown.try_fire(SuggestionType.FIX_ERROR)

    def test_zero_duration_never_suppresses(self):
        cooldown = Cooldown(0, clock=ManualClock())
        assert cooldown.try_fire("k")
        assert cooldown.try_fire("k")

    def test_reset(self):
        cooldown = Cooldown(30, clock=ManualClock())
        cooldown.try_fire("k")
        cooldown.reset()
        assert cooldown.ready("k")
