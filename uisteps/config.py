"""
Global Configuration for the step library

Everything comes from the environment; behave userdata (-D NAME=value)
takes precedence when settings are built with Settings.from_userdata().
"""

import os
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional

BASE_URL = os.getenv("BASE_URL", "http://localhost:8080")
ADMIN_URL = os.getenv("ADMIN_URL", "/admin/")
LOGIN_URL = os.getenv("LOGIN_URL", "/Security/login")
SCREENSHOT_PATH = os.getenv("SCREENSHOT_PATH", "artifacts/screenshots")
AJAX_TIMEOUT = int(os.getenv("AJAX_TIMEOUT", "5000"))
AJAX_STEPS = os.getenv("AJAX_STEPS", "go to,follow,press,click,submit")
FIXTURES_PATH = os.getenv("FIXTURES_PATH", "features/files")
ASSETS_PATH = os.getenv("ASSETS_PATH", "artifacts/assets")
MFA_ENABLED = os.getenv("MFA_ENABLED", "false").lower() in {"1", "true", "yes"}
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def _split(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    """Per-run settings handed to the browser session and the fixture store."""

    base_url: str = BASE_URL
    admin_url: str = ADMIN_URL
    login_url: str = LOGIN_URL
    screenshot_path: Optional[str] = SCREENSHOT_PATH
    ajax_timeout: int = AJAX_TIMEOUT
    ajax_steps: List[str] = field(default_factory=lambda: _split(AJAX_STEPS))
    region_map: Dict[str, str] = field(default_factory=dict)
    fixtures_path: str = FIXTURES_PATH
    assets_path: str = ASSETS_PATH
    mfa_enabled: bool = MFA_ENABLED
    date_format: str = "%Y-%m-%d"
    time_format: str = "%H:%M:%S"
    datetime_format: str = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def from_userdata(cls, userdata) -> "Settings":
        """Build settings, letting behave userdata override the environment.

        Keys are matched case-insensitively against the field names, so both
        ``-D BASE_URL=...`` and ``-D base_url=...`` work. ``region_map`` is
        given as ``Name=selector;Other=selector``.
        """
        settings = cls()
        known = {f.name: f for f in fields(cls)}
        for key, value in dict(userdata or {}).items():
            name = key.lower()
            if name not in known:
                continue
            if name == "ajax_timeout":
                value = int(value)
            elif name == "ajax_steps":
                value = _split(value)
            elif name == "mfa_enabled":
                value = str(value).lower() in {"1", "true", "yes"}
            elif name == "region_map":
                value = dict(
                    pair.split("=", 1) for pair in str(value).split(";") if "=" in pair
                )
            setattr(settings, name, value)
        return settings
