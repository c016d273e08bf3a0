"""
Shared test configuration

The demo site reads DATABASE_URI when democms is first imported, so it is
pointed at an in-memory SQLite database here, before any test module loads.
"""

import os

os.environ["DATABASE_URI"] = os.getenv("TEST_DATABASE_URI", "sqlite:///:memory:")
