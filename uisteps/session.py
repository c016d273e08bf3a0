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
Browser session

BrowserSession wraps a Selenium WebDriver together with the run settings.
Steps receive it explicitly (``context.session``) instead of looking the
current browser up in shared state.
"""

import logging
import re
import time
from typing import Optional

from selenium.common.exceptions import TimeoutException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from uisteps.config import Settings
from uisteps.locators import find_all, first, xpath_literal

logger = logging.getLogger("uisteps")


class RegionError(LookupError):
    """Used when a named page region cannot be resolved."""


class BrowserSession:
    """The browser handle plus the URLs and options the steps need"""

    def __init__(self, driver, settings: Optional[Settings] = None):
        self.driver = driver
        self.settings = settings or Settings()

    ##################################################
    # URLs
    ##################################################
    @staticmethod
    def join_url_parts(*parts: str) -> str:
        """Join URL fragments with single slashes, keeping a scheme's '//'."""
        joined = "/".join(part for part in parts if part)
        return re.sub(r"(?<!:)/{2,}", "/", joined)

    @property
    def base_url(self) -> str:
        return self.settings.base_url

    @property
    def admin_url(self) -> str:
        return self.join_url_parts(self.base_url, self.settings.admin_url)

    @property
    def login_url(self) -> str:
        return self.join_url_parts(self.base_url, self.settings.login_url)

    def locate_path(self, path: str) -> str:
        """Turn a site-relative path into an absolute URL."""
        if re.match(r"^[a-z][a-z0-9+.-]*://", path, re.IGNORECASE):
            return path
        return self.join_url_parts(self.base_url, path)

    def visit(self, path: str):
        url = self.locate_path(path)
        logger.debug("Visiting %s", url)
        self.driver.get(url)

    def reload(self):
        self.driver.refresh()

    @property
    def current_url(self) -> str:
        return self.driver.current_url

    @property
    def page_source(self) -> str:
        return self.driver.page_source or ""

    ##################################################
    # Elements and scripts
    ##################################################
    def find(self, css: str) -> Optional[WebElement]:
        return first(self.driver, By.CSS_SELECTOR, css)

    def find_all(self, css: str):
        return find_all(self.driver, By.CSS_SELECTOR, css)

    def find_xpath(self, xpath: str) -> Optional[WebElement]:
        return first(self.driver, By.XPATH, xpath)

    def execute_script(self, script: str, *args):
        self.driver.execute_script(script, *args)

    def evaluate_script(self, script: str, *args):
        if not script.lstrip().startswith("return"):
            script = "return " + script
        return self.driver.execute_script(script, *args)

    def wait(self, milliseconds: float, condition: Optional[str] = None) -> bool:
        """Sleep, or poll a JavaScript condition until true or the time is up.

        Returns whether the condition was met (always True without one).
        """
        seconds = float(milliseconds) / 1000.0
        if not condition:
            time.sleep(seconds)
            return True
        script = f"return !!({condition});"
        try:
            WebDriverWait(self.driver, seconds, poll_frequency=0.1).until(
                lambda driver: driver.execute_script(script)
            )
            return True
        except TimeoutException:
            return False

    def expected_alert(self, timeout: float = 10):
        """Wait for a JavaScript alert/confirm/prompt and return it."""
        try:
            WebDriverWait(self.driver, timeout).until(EC.alert_is_present())
        except TimeoutException as error:
            raise AssertionError("Alert is expected") from error
        return self.driver.switch_to.alert

    def screenshot_png(self) -> bytes:
        return self.driver.get_screenshot_as_png()

    def outer_html(self) -> str:
        html = self.driver.execute_script("return document.documentElement.outerHTML;")
        return html or self.page_source

    ##################################################
    # Regions
    ##################################################
    def get_region(self, region: str) -> WebElement:
        """Resolve a region by CSS selector, data-title, or configured name."""
        element = self.find(region)
        if element is not None:
            return element

        element = self.find_xpath(f"//*[@data-title = {xpath_literal(region)}]")
        if element is not None:
            return element

        region_map = self.settings.region_map
        if not region_map:
            raise RegionError("Cannot find 'region_map' in the configuration")
        if region not in region_map:
            raise RegionError("Cannot find the specified region in the configuration")
        element = self.find(region_map[region])
        if element is None:
            raise RegionError("Cannot find the specified region on the page")
        return element
