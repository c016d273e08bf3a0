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
Debug tools

Screenshots and rendered-HTML dumps named after the feature file and step
line, written when a step fails or after every step when a scenario asks
for it. Nothing here may fail a test: problems are logged and skipped.
"""

import logging
import os
from typing import Optional

from selenium.common.exceptions import WebDriverException

logger = logging.getLogger("uisteps")


class DebugTools:
    """Per-run debugging switches and artifact writers"""

    def __init__(self, session):
        self.session = session
        self.screenshot_every_step = False
        self.dump_every_step = False

    def reset(self):
        """Switch the every-step flags back off (called after each scenario)."""
        self.screenshot_every_step = False
        self.dump_every_step = False

    def prepare_path(self) -> Optional[str]:
        """Create and validate the screenshot directory, or return None."""
        path = self.session.settings.screenshot_path
        if not path:
            logger.info("ScreenShots path not configured: skipping")
            return None
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as error:
            logger.warning('"%s" is not valid directory and failed to create it: %s', path, error)
            return None
        path = os.path.realpath(path)
        if not os.path.isdir(path):
            logger.warning('"%s" is not valid directory', path)
            return None
        if not os.access(path, os.W_OK):
            logger.warning('"%s" directory is not writable', path)
            return None
        return path

    @staticmethod
    def artifact_name(feature_file: str, line: int, extension: str, prefix: str = "") -> str:
        return f"{prefix}{os.path.basename(feature_file or 'unknown')}_{line}.{extension}"

    def take_screenshot(self, feature_file: str, line: int) -> Optional[str]:
        path = self.prepare_path()
        if not path:
            return None
        target = os.path.join(path, self.artifact_name(feature_file, line, "png"))
        try:
            png = self.session.screenshot_png()
        except WebDriverException as error:
            logger.warning("Exception caught: %s", error)
            return None
        with open(target, "wb") as handle:
            handle.write(png)
        logger.info("Saving screenshot into %s", target)
        return target

    def dump_rendered_html(self, feature_file: str, line: int) -> Optional[str]:
        """Write the page's outer HTML; ``zz_`` keeps dumps sorted after screenshots."""
        path = self.prepare_path()
        if not path:
            return None
        target = os.path.join(path, self.artifact_name(feature_file, line, "html", prefix="zz_"))
        try:
            html = self.session.outer_html()
        except WebDriverException as error:
            logger.warning("Exception caught: %s", error)
            return None
        with open(target, "w", encoding="utf-8") as handle:
            handle.write(html)
        logger.info("Saving HTML into %s", target)
        return target

    def after_step(self, feature_file: str, line: int, failed: bool):
        if failed or self.screenshot_every_step:
            self.take_screenshot(feature_file, line)
        if failed or self.dump_every_step:
            self.dump_rendered_html(feature_file, line)
