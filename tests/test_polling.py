"""Tests for the operatorcollectionsdk.polling module."""

from __future__ import annotations

import pytest

from operatorcollectionsdk.exceptions import PollTimeoutError
from operatorcollectionsdk.polling import Condition, poll_until


class Counter:
    """A check that becomes true on the given call and records its calls."""

    def __init__(self, true_on_call: int | None) -> None:
        self.true_on_call = true_on_call
        self.calls = 0

    def __call__(self) -> bool:
        self.calls += 1
        return self.true_on_call is not None and self.calls >= self.true_on_call


def test_returns_first_attempt_when_all_hold() -> None:
    sleeps: list[float] = []
    attempt = poll_until(
        [Condition("a", lambda: True), Condition("b", lambda: True)],
        attempts=5,
        interval=2.0,
        sleep=sleeps.append,
    )
    assert attempt == 1
    assert sleeps == [2.0]


def test_conditions_are_checked_in_order_and_latched() -> None:
    first = Counter(true_on_call=2)
    second = Counter(true_on_call=2)

    attempt = poll_until(
        [Condition("first", first), Condition("second", second)],
        attempts=10,
        sleep=lambda _: None,
    )

    # tick 1: first false; tick 2: first true, second false; tick 3: second
    assert attempt == 3
    assert first.calls == 2
    assert second.calls == 2


def test_latched_condition_is_not_rechecked() -> None:
    states = iter([True, False, False, False])
    calls = []

    def flapping() -> bool:
        value = next(states)
        calls.append(value)
        return value

    later = Counter(true_on_call=3)
    poll_until(
        [Condition("flapping", flapping), Condition("later", later)],
        attempts=5,
        sleep=lambda _: None,
    )
    assert calls == [True]


def test_times_out_on_last_attempt() -> None:
    check = Counter(true_on_call=None)
    sleeps: list[float] = []

    with pytest.raises(PollTimeoutError) as excinfo:
        poll_until(
            [Condition("never", check)],
            attempts=4,
            interval=1.0,
            name="Install",
            sleep=sleeps.append,
        )

    # the last tick fails without evaluating the conditions
    assert check.calls == 3
    assert len(sleeps) == 4
    assert excinfo.value.name == "Install"
    assert excinfo.value.attempts == 4
    assert excinfo.value.pending == ("never",)


def test_condition_true_on_second_to_last_attempt_succeeds() -> None:
    assert (
        poll_until(
            [Condition("late", Counter(true_on_call=2))],
            attempts=3,
            sleep=lambda _: None,
        )
        == 2
    )


def test_last_attempt_never_succeeds() -> None:
    check = Counter(true_on_call=3)

    with pytest.raises(PollTimeoutError) as excinfo:
        poll_until([Condition("late", check)], attempts=3, sleep=lambda _: None)

    assert excinfo.value.attempts == 3
    assert excinfo.value.pending == ("late",)
    assert check.calls == 2


def test_single_attempt_always_fails() -> None:
    check = Counter(true_on_call=1)
    with pytest.raises(PollTimeoutError):
        poll_until([Condition("c", check)], attempts=1, sleep=lambda _: None)
    assert check.calls == 0


def test_zero_attempts_fails_without_checking() -> None:
    check = Counter(true_on_call=1)
    with pytest.raises(PollTimeoutError):
        poll_until([Condition("c", check)], attempts=0, sleep=lambda _: None)
    assert check.calls == 0


def test_max_attempt_fails_early() -> None:
    endpoint = Counter(true_on_call=None)
    collection = Counter(true_on_call=1)

    with pytest.raises(PollTimeoutError) as excinfo:
        poll_until(
            [
                Condition("endpoint", endpoint, max_attempt=2),
                Condition("collection", collection),
            ],
            attempts=10,
            sleep=lambda _: None,
        )

    assert excinfo.value.attempts == 2
    assert excinfo.value.pending == ("endpoint", "collection")
    assert collection.calls == 0


def test_max_attempt_does_not_apply_once_latched() -> None:
    attempt = poll_until(
        [
            Condition("quick", Counter(true_on_call=1), max_attempt=1),
            Condition("slow", Counter(true_on_call=4)),
        ],
        attempts=10,
        sleep=lambda _: None,
    )
    assert attempt == 4


def test_check_exception_propagates() -> None:
    def broken() -> bool:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        poll_until([Condition("broken", broken)], attempts=3, sleep=lambda _: None)
