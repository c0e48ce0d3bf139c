"""Fixed-interval polling of cluster conditions."""

from __future__ import annotations

__all__ = ("Condition", "poll_until")

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from operatorcollectionsdk.exceptions import PollTimeoutError


@dataclass(frozen=True)
class Condition:
    """A named predicate evaluated on each poll tick.

    Parameters
    ----------
    name : `str`
        Short name used in timeout errors.
    check : callable
        Re-reads cluster state and returns `True` once the condition holds.
    waiting_message : `str`
        Logged each tick the condition is still unsatisfied.
    max_attempt : `int`, optional
        If set, the poll fails when this attempt is reached and the condition
        still does not hold, even if the overall budget is not exhausted.
    """

    name: str
    check: Callable[[], bool]
    waiting_message: str = ""
    max_attempt: int | None = None


def poll_until(
    conditions: Sequence[Condition],
    *,
    attempts: int,
    interval: float = 5.0,
    name: str = "Poll",
    logger: Any | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Poll the conditions, in order, until all of them hold.

    Each tick waits ``interval`` seconds and then evaluates the pending
    conditions in order, stopping at the first that does not hold. A
    condition that has held once is latched and never checked again, even if
    the underlying resource later changes.

    Parameters
    ----------
    conditions : sequence of `Condition`
        The conditions, in the order they must become true.
    attempts : `int`
        The attempt budget. The tick numbered ``attempts`` always fails,
        so the conditions must all hold within ``attempts - 1`` ticks.
    interval : `float`
        Seconds to wait before each tick.
    name : `str`
        Name of the loop, used in log messages and errors.
    logger : optional
        Logger; a module logger is used if not provided.
    sleep : callable
        Function used to wait between ticks.

    Returns
    -------
    attempt : `int`
        The attempt on which every condition held.

    Raises
    ------
    operatorcollectionsdk.exceptions.PollTimeoutError
        Raised if the budget, or a condition's own ``max_attempt``, is
        exhausted. Exceptions raised by a check propagate unchanged.
    """
    if logger is None:
        logger = structlog.getLogger(__name__)

    latched = [False] * len(conditions)

    for attempt in range(1, attempts + 1):
        sleep(interval)
        logger.info(f"{name} attempt #{attempt}")
        if attempt == attempts:
            break

        for index, condition in enumerate(conditions):
            if latched[index]:
                continue
            if condition.check():
                latched[index] = True
                continue
            if condition.waiting_message:
                logger.info(condition.waiting_message)
            if (
                condition.max_attempt is not None
                and attempt >= condition.max_attempt
            ):
                raise PollTimeoutError(
                    name, attempt, _pending(conditions, latched)
                )
            break
        else:
            return attempt

    raise PollTimeoutError(name, attempts, _pending(conditions, latched))


def _pending(
    conditions: Sequence[Condition], latched: Sequence[bool]
) -> list[str]:
    return [
        condition.name
        for condition, done in zip(conditions, latched)
        if not done
    ]
