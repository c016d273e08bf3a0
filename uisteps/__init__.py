"""
Package: uisteps
Browser-driven step definitions for behave, with polling helpers, a
fixture store for the site's database and debugging hooks
"""

from uisteps.config import Settings
from uisteps.debug import DebugTools
from uisteps.fixtures import FixtureFactory, FixtureStore
from uisteps.session import BrowserSession, RegionError
from uisteps.spin import (
    NOT_READY,
    Failed,
    Ready,
    SpinAborted,
    SpinError,
    SpinTimeout,
    SpinUsageError,
    retry_throwable,
    spin,
)

__all__ = [
    "BrowserSession",
    "DebugTools",
    "Failed",
    "FixtureFactory",
    "FixtureStore",
    "NOT_READY",
    "Ready",
    "RegionError",
    "Settings",
    "SpinAborted",
    "SpinError",
    "SpinTimeout",
    "SpinUsageError",
    "retry_throwable",
    "spin",
]
