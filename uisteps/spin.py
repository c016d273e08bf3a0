######################################################################
# Copyright 2016, 2024 John J. Rofrano. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
######################################################################
"""
Polling helpers for asynchronous UI state

spin() keeps asking a predicate until the page reaches the awaited state,
treating a raised exception the same as a falsy answer: while an element is
still being attached (or detached) by the browser, a predicate that blows up is
just another "not yet".

Attempts are check-then-sleep without a trailing sleep, so a budget of N
failing attempts sleeps N - 1 times.
"""

import logging
import time
from typing import Any, Callable, Optional

logger = logging.getLogger("uisteps")

DEFAULT_ATTEMPTS = 60
DEFAULT_INTERVAL = 1.0


class SpinError(AssertionError):
    """Base class for polling failures (an AssertionError so behave fails the step)."""


class SpinTimeout(SpinError):
    """Raised when the attempt budget runs out before the predicate succeeds."""

    def __init__(self, label: str, attempts: int, elapsed: float):
        self.label = label
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(
            f"Timeout thrown by {label}: condition not met after "
            f"{attempts} attempt(s) in {elapsed:.1f}s"
        )


class SpinAborted(SpinError):
    """Raised when a predicate reports a genuine failure with Failed(cause)."""


class SpinUsageError(ValueError):
    """Raised when spin() is called with arguments it cannot poll with."""


######################################################################
# Explicit poll results
######################################################################
class Ready:
    """The awaited state has been reached."""

    __slots__ = ("value",)

    def __init__(self, value: Any = True):
        self.value = value

    def __repr__(self):
        return f"Ready({self.value!r})"


class _NotReady:
    __slots__ = ()

    def __repr__(self):
        return "NOT_READY"

    def __bool__(self):
        return False


NOT_READY = _NotReady()


class Failed:
    """The predicate hit a real error; polling should stop right away."""

    __slots__ = ("cause",)

    def __init__(self, cause: BaseException):
        self.cause = cause

    def __repr__(self):
        return f"Failed({self.cause!r})"


######################################################################
# S P I N
######################################################################
def spin(
    predicate: Callable[[], Any],
    max_attempts: int = DEFAULT_ATTEMPTS,
    label: Optional[str] = None,
    interval: float = DEFAULT_INTERVAL,
    deadline: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Poll ``predicate`` until it succeeds or the attempt budget is spent.

    Args:
        predicate: zero-argument callable; a truthy result (or ``Ready``) ends
            the wait, a falsy result, ``NOT_READY`` or an exception means
            "try again", and ``Failed(cause)`` aborts immediately.
        max_attempts: how many times to ask before giving up.
        label: names the waiting operation in the timeout message.
        interval: seconds to sleep between attempts.
        deadline: optional ``clock()`` value after which no new attempt starts.

    Returns:
        True as soon as the predicate succeeds.

    Raises:
        SpinUsageError: the arguments are unusable; nothing was attempted.
        SpinTimeout: every attempt failed.
        SpinAborted: the predicate returned ``Failed``.
    """
    if not callable(predicate):
        raise SpinUsageError(f"predicate must be callable, got {type(predicate).__name__}")
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
        raise SpinUsageError(f"max_attempts must be a positive integer, got {max_attempts!r}")
    if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval <= 0:
        raise SpinUsageError(f"interval must be positive, got {interval!r}")

    label = label or getattr(predicate, "__qualname__", None) or repr(predicate)
    started = clock()
    last_error = None
    attempt = 0

    while attempt < max_attempts:
        attempt += 1
        try:
            outcome = predicate()
        except Exception as error:  # pylint: disable=broad-except
            logger.debug("%s: attempt %d raised %s: %s", label, attempt, type(error).__name__, error)
            last_error = error
            outcome = None

        if isinstance(outcome, Failed):
            logger.debug("%s: attempt %d reported failure", label, attempt)
            raise SpinAborted(f"{label} failed: {outcome.cause}") from outcome.cause
        if isinstance(outcome, Ready) or (outcome is not None and outcome):
            logger.debug("%s: condition met on attempt %d", label, attempt)
            return True

        if attempt >= max_attempts:
            break
        if deadline is not None and clock() + interval > deadline:
            logger.debug("%s: deadline reached after %d attempt(s)", label, attempt)
            break
        sleep(interval)

    raise SpinTimeout(label, attempt, clock() - started) from last_error


def retry_throwable(
    callback: Callable[[], Any],
    timeout: int = 3,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """Call ``callback`` until it stops raising, for about ``timeout`` seconds.

    Returns the callback's value. When every call raised, the first exception
    is re-raised since it is usually the most telling one.
    """
    first_error = None
    remaining = timeout
    while True:
        try:
            return callback()
        except Exception as error:  # pylint: disable=broad-except
            if first_error is None:
                first_error = error
        if remaining <= 0:
            break
        remaining -= 1
        sleep(1)
    raise first_error
