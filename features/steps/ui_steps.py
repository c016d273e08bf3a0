"""Registers the uisteps step library with behave.

All interactions are performed via the browser (Selenium) against the
demo CMS, plus fixture records written straight into its database.
"""

from uisteps.steps import basic, fixture, login  # noqa: F401  pylint: disable=unused-import
