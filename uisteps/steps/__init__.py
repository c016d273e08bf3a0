"""
Package: uisteps.steps
Importing this package registers every step with behave
"""

from uisteps.steps import basic, fixture, login  # noqa: F401
