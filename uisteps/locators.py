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
Locator resolvers

Heuristic element lookups shared by the step definitions. Every function
takes a ``scope`` (a WebDriver or a WebElement) and returns the first
matching WebElement or None, so callers decide what "not found" means.
"""

import logging
from typing import List, Optional

from selenium.common.exceptions import InvalidSelectorException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webelement import WebElement

logger = logging.getLogger("uisteps")

FIELD_TAGS = (
    "(self::input[not(@type='submit' or @type='image' or @type='button'"
    " or @type='reset' or @type='hidden')] or self::select or self::textarea)"
)
BUTTON_TAGS = (
    "(self::button or self::a or (self::input and (@type='submit'"
    " or @type='button' or @type='reset' or @type='image')))"
)


def xpath_literal(text: str) -> str:
    """Quote ``text`` as an XPath string literal."""
    if "'" not in text:
        return f"'{text}'"
    if '"' not in text:
        return f'"{text}"'
    pieces = [f"'{piece}'" for piece in text.split("'")]
    return "concat(" + ", \"'\", ".join(pieces) + ")"


def find_all(scope, by: str, value: str) -> List[WebElement]:
    """find_elements that treats a malformed selector as "nothing found"."""
    try:
        return scope.find_elements(by, value)
    except InvalidSelectorException:
        logger.debug("Invalid %s selector: %s", by, value)
        return []


def first(scope, by: str, value: str) -> Optional[WebElement]:
    found = find_all(scope, by, value)
    return found[0] if found else None


def first_visible(elements) -> Optional[WebElement]:
    for element in elements:
        try:
            if element.is_displayed():
                return element
        except WebDriverException:
            # detached between lookup and visibility check
            continue
    return None


######################################################################
# Named lookups
######################################################################
def find_named_button(scope, title: str) -> Optional[WebElement]:
    """Find a visible link or button by id, name, value, title or text.

    Falls back to ``button[data-text-alternate]`` so buttons whose label is
    swapped by JavaScript can still be addressed by either label.
    """
    literal = xpath_literal(title)
    searches = [
        f".//*[{BUTTON_TAGS} and (@id={literal} or @name={literal}"
        f" or contains(@value, {literal}) or contains(@title, {literal})"
        f" or contains(normalize-space(string(.)), {literal}))]",
        f".//button[@data-text-alternate={literal}]",
    ]
    for xpath in searches:
        button = first_visible(find_all(scope, By.XPATH, xpath))
        if button is not None:
            return button
    return None


def find_field(scope, locator: str) -> Optional[WebElement]:
    """Find a form field by id, name, placeholder or label text."""
    literal = xpath_literal(locator)
    label = f"//label[contains(normalize-space(string(.)), {literal})]"
    xpath = (
        f".//*[{FIELD_TAGS} and (@id={literal} or @name={literal}"
        f" or @placeholder={literal} or @id={label}/@for)]"
        f" | .{label}//*[{FIELD_TAGS}]"
    )
    return first(scope, By.XPATH, xpath)


def find_link(scope, locator: str) -> Optional[WebElement]:
    """Find an anchor by id, text, title or the alt text of a contained image."""
    literal = xpath_literal(locator)
    xpath = (
        f".//a[@href and (@id={literal} or contains(normalize-space(string(.)), {literal})"
        f" or contains(@title, {literal}) or .//img[contains(@alt, {literal})])]"
    )
    return first(scope, By.XPATH, xpath)


def find_radio(scope, locator: str) -> Optional[WebElement]:
    literal = xpath_literal(locator)
    label = f"//label[contains(normalize-space(string(.)), {literal})]"
    xpath = (
        f".//input[@type='radio' and (@id={literal} or @name={literal}"
        f" or @value={literal} or @id={label}/@for)]"
        f" | .{label}//input[@type='radio']"
    )
    return first(scope, By.XPATH, xpath)


def find_content(scope, text: str) -> Optional[WebElement]:
    literal = xpath_literal(text)
    return first(scope, By.XPATH, f".//*[contains(normalize-space(string(.)), {literal})]")


def leaf_containing(scope, text: str) -> Optional[WebElement]:
    """First element without children whose text contains ``text``."""
    literal = xpath_literal(text)
    return first(scope, By.XPATH, f".//*[count(*)=0 and contains(., {literal})]")


def get_element(scope, locator: str) -> Optional[WebElement]:
    """Find a field by id|name|label|placeholder, falling back to a CSS selector."""
    element = find_field(scope, locator)
    if element is None:
        element = first(scope, By.CSS_SELECTOR, locator)
    return element


def get_table(scope, selector: str) -> WebElement:
    """Find the first visible table matching ``selector``.

    Candidates are gathered, in order, from:
      - table[@id] or table[@title]
      - the table's <caption>
      - a descendant carrying the ``title`` class
      - a table inside fieldset[@data-name]
    """
    literal = xpath_literal(selector)
    searches = [
        f".//table[@id = {literal} or contains(@title, {literal})]",
        f".//table//caption[contains(normalize-space(string(.)), {literal})]/ancestor-or-self::table[1]",
        ".//table//*[contains(concat(' ', normalize-space(@class), ' '), ' title ')"
        f" and contains(normalize-space(string(.)), {literal})]/ancestor-or-self::table[1]",
        f".//fieldset[@data-name = {literal}]//table",
    ]
    candidates = []
    for xpath in searches:
        candidates.extend(find_all(scope, By.XPATH, xpath))

    if not candidates:
        raise AssertionError("Could not find any table elements")
    table = first_visible(candidates)
    if table is None:
        raise AssertionError("Found table elements, but none are visible")
    return table
