"""Behave environment for the demo CMS feature suite.

A headless Chrome/Chromium is started once for the whole run. The driver
is taken from CHROMEDRIVER or the system packages when present, otherwise
Selenium Manager resolves one; USE_WDM=1 switches to webdriver-manager.
CHROME_BIN points at a browser in a non-standard location.

Settings (BASE_URL, REGION_MAP, SCREENSHOT_PATH, ...) come from the
environment, overridden by behave userdata: -D BASE_URL=...

The fixture store writes to the site's database through the democms
models, so DATABASE_URI must point at the database the site is serving.
"""

from __future__ import annotations

import os
import shutil
from typing import Iterable, Optional

from selenium import webdriver
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.chrome.service import Service as ChromeService

from uisteps import hooks
from uisteps.common.log_handlers import init_logging
from uisteps.config import LOG_LEVEL, Settings
from uisteps.debug import DebugTools
from uisteps.fixtures import FixtureStore
from uisteps.session import BrowserSession

USE_WDM = os.getenv("USE_WDM") == "1"
WINDOW_SIZE = (1400, 1000)

BROWSER_PATHS = ("/usr/bin/chromium", "/usr/bin/chromium-browser", "/usr/bin/google-chrome")
BROWSER_NAMES = ("chromium", "chromium-browser", "google-chrome", "chrome")
DRIVER_PATHS = ("/usr/bin/chromedriver", "/usr/lib/chromium/chromedriver")

SETUP_HINT = """Cannot start headless Chrome/Chromium ({error}).
Install the browser and its driver, e.g.
    sudo apt-get install -y chromium chromium-driver fonts-liberation
point CHROME_BIN / CHROMEDRIVER at non-standard install locations,
or run with USE_WDM=1 when Selenium Manager cannot download a driver."""


def _find_executable(env_var: str, paths: Iterable[str], names: Iterable[str] = ()) -> Optional[str]:
    """First existing path from the environment, the known locations or PATH."""
    candidates = [os.getenv(env_var), *paths]
    for candidate in candidates:
        if candidate and os.path.exists(candidate):
            return candidate
    for name in names:
        found = shutil.which(name)
        if found:
            return found
    return None


def _driver_service() -> Optional[ChromeService]:
    """None lets Selenium Manager pick the driver."""
    driver_path = _find_executable("CHROMEDRIVER", DRIVER_PATHS, ("chromedriver",))
    if driver_path:
        return ChromeService(executable_path=driver_path)
    if USE_WDM:
        from webdriver_manager.chrome import ChromeDriverManager

        return ChromeService(ChromeDriverManager().install())
    return None


def _start_browser():
    options = ChromeOptions()
    for argument in ("--headless=new", "--no-sandbox", "--disable-dev-shm-usage"):
        options.add_argument(argument)
    browser_path = _find_executable("CHROME_BIN", BROWSER_PATHS, BROWSER_NAMES)
    if browser_path:
        options.binary_location = browser_path

    try:
        service = _driver_service()
        if service is None:
            browser = webdriver.Chrome(options=options)
        else:
            browser = webdriver.Chrome(service=service, options=options)
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(SETUP_HINT.format(error=f"{type(exc).__name__}: {exc}")) from exc

    browser.set_window_size(*WINDOW_SIZE)
    return browser


def before_all(context):
    """Start a headless browser and wire up the session, debug tools and fixtures."""
    userdata = context.config.userdata
    init_logging(userdata.get("LOG_LEVEL", LOG_LEVEL))
    settings = Settings.from_userdata(userdata)

    context.browser = _start_browser()
    context.session = BrowserSession(context.browser, settings)
    context.debug = DebugTools(context.session)
    context.base_url = settings.base_url

    # imported here so DATABASE_URI from the environment is honoured
    from democms import create_app
    from democms.models import db

    context.app_context = create_app().app_context()
    context.app_context.push()
    context.fixtures = FixtureStore(db, settings.fixtures_path, settings.assets_path)


def before_scenario(context, scenario):
    hooks.before_scenario(context, scenario)


def before_step(context, step):
    hooks.before_step(context, step)


def after_step(context, step):
    hooks.after_step(context, step)


def after_scenario(context, scenario):
    hooks.after_scenario(context, scenario)


def after_all(context):
    """Shut down the browser and release the database session."""
    app_context = getattr(context, "app_context", None)
    if app_context is not None:
        from democms.models import db

        db.session.remove()
        app_context.pop()
    browser = getattr(context, "browser", None)
    if browser:
        browser.quit()
