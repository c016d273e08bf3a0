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
Generic browser steps

Buttons, links, fields, dialogs, tables, regions, waiting, scrolling,
drag-and-drop and keyboard input. Every step works on ``context.session``
(a BrowserSession) and fails with an AssertionError that names what could
not be found.
"""

import logging
import os
import re
import sys

from behave import step, use_step_matcher
from selenium.common.exceptions import NoSuchElementException
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.support.ui import Select

from uisteps import locators
from uisteps.hooks import handle_ajax_timeout
from uisteps.spin import spin
from uisteps.transforms import resolve

logger = logging.getLogger("uisteps")

use_step_matcher("re")

NOT_FOUND_TEXTS = ("Page not found", "The requested page could not be found")
MODIFIERS = {"shift": Keys.SHIFT, "ctrl": Keys.CONTROL, "control": Keys.CONTROL, "alt": Keys.ALT, "meta": Keys.META}


######################################################################
# Shared helpers
######################################################################
def _value(context, text):
    return resolve(text, context.session.settings, getattr(context, "fixtures", None))


def press_button(context, text):
    button = locators.find_named_button(context.session.driver, text)
    assert button is not None, f"{text} button not found"
    button.click()


def confirm_dialog(context):
    context.session.expected_alert().accept()
    handle_ajax_timeout(context.session)


def dismiss_dialog(context):
    context.session.expected_alert().dismiss()
    handle_ajax_timeout(context.session)


def require_element(context, locator):
    element = locators.get_element(context.session.driver, locator)
    assert element is not None, f"Field {locator} was not found"
    return element


def click_element(context, selector):
    element = context.session.find(selector)
    assert element is not None, f"Element {selector} not found"
    element.click()


def click_in_element(context, click_type, text, selector):
    parent = context.session.find(selector)
    assert parent is not None, f'"{selector}" element not found'
    element = locators.leaf_containing(parent, text)
    assert element is not None, f'"{text}" not found'
    if click_type == "double click":
        ActionChains(context.session.driver).double_click(element).perform()
    else:
        element.click()


def fill_field(element, value):
    element.clear()
    element.send_keys(value)


######################################################################
# Navigation and page content
######################################################################
@step(r'I (?:am on|go to) "([^"]*)"')
def step_visit(context, path):
    context.session.visit(path)


@step(r'I fill in "([^"]*)" with "([^"]*)"')
def step_fill_in(context, field, value):
    fill_field(require_element(context, field), _value(context, value))


@step(r'I follow "([^"]+)"')
def step_follow(context, locator):
    link = locators.find_link(context.session.driver, locator)
    assert link is not None, f'Link "{locator}" was not found'
    link.click()


@step(r'I should( not)? see "([^"]*)"')
def step_see_text(context, negate, text):
    body = context.session.find("body")
    actual = body.text if body is not None else ""
    if negate:
        assert text not in actual, f'The text "{text}" appears on the page {context.session.current_url}'
    else:
        assert text in actual, f'The text "{text}" was not found on the page {context.session.current_url}'


@step(r"the page can't be found")
def step_page_cant_be_found(context):
    source = context.session.page_source
    assert any(text in source for text in NOT_FOUND_TEXTS), "The page was found"


@step(r'the rendered HTML should( not)? contain "(.+)"')
def step_rendered_html_contains(context, negate, fragment):
    fragment = fragment.replace('\\"', '"')
    contains = fragment in context.session.outer_html()
    if negate:
        assert not contains, f"HTML fragment {fragment} was in rendered HTML when it should not have been"
    else:
        assert contains, f"HTML fragment {fragment} not found in rendered HTML"


@step(r'I should( not)? see the "([^"]+)" element')
def step_see_element(context, negate, selector):
    element = context.session.evaluate_script("return document.querySelector(arguments[0]);", selector)
    if negate:
        assert element is None, f"Element {selector} was found when it should not have been"
    else:
        assert element is not None, f"Element {selector} not found"


@step(
    r'I should see the text "((?:[^"]|\\")*)" (before|after) the text "((?:[^"]|\\")*)" '
    r'in the "([^"]*)" element'
)
def step_text_order(context, first_text, order, second_text, selector):
    element = context.session.find(selector)
    assert element is not None, f"{selector} not found"
    text = element.text
    assert first_text in text, f"{first_text} not found in the element {selector}"
    assert second_text in text, f"{second_text} not found in the element {selector}"
    if order == "before":
        assert text.index(first_text) < text.index(second_text), f'"{first_text}" is not before "{second_text}"'
    else:
        assert text.index(first_text) > text.index(second_text), f'"{first_text}" is not after "{second_text}"'


######################################################################
# Buttons and clicks
######################################################################
@step(r'I should( not)? see (?:a|an|the) "([^"]*)" button')
def step_see_button(context, negate, text):
    button = locators.find_named_button(context.session.driver, text)
    if negate:
        assert button is None, f"{text} button found"
    else:
        assert button is not None, f"{text} button not found"


@step(r'I press the "([^"]*)" button')
def step_press_button(context, text):
    press_button(context, text)


@step(r'I press the "([^"]*)" buttons')
def step_press_first_button(context, text):
    """Press the first button found from a list of names separated by |"""
    for name in text.split("|"):
        button = locators.find_named_button(context.session.driver, name.strip())
        if button is not None:
            button.click()
            return
    raise AssertionError(f"{text} button not found")


@step(r'I (?:press|follow) the "([^"]*)" (?:button|link), confirming the dialog')
def step_press_button_confirming(context, text):
    press_button(context, text)
    confirm_dialog(context)


@step(r'I (?:press|follow) the "([^"]*)" (?:button|link), dismissing the dialog')
def step_press_button_dismissing(context, text):
    press_button(context, text)
    dismiss_dialog(context)


@step(r'I click on the "([^"]+)" element')
def step_click_element(context, selector):
    click_element(context, selector)


@step(r'I click on the "([^"]+)" element, confirming the dialog')
def step_click_element_confirming(context, selector):
    click_element(context, selector)
    confirm_dialog(context)


@step(r'I (click|double click) "([^"]*)" in the "([^"]*)" element')
def step_click_in_element(context, click_type, text, selector):
    click_in_element(context, click_type, text, selector)


@step(r'I (click|double click) "([^"]*)" in the "([^"]*)" element, confirming the dialog')
def step_click_in_element_confirming(context, click_type, text, selector):
    click_in_element(context, click_type, text, selector)
    confirm_dialog(context)


@step(r'I (click|double click) "([^"]*)" in the "([^"]*)" element, dismissing the dialog')
def step_click_in_element_dismissing(context, click_type, text, selector):
    click_in_element(context, click_type, text, selector)
    dismiss_dialog(context)


@step(r'I follow "([^"]+)" with javascript')
def step_follow_with_javascript(context, locator):
    """Follow a link (even target="_blank") in the current window."""
    link = locators.find_link(context.session.driver, locator) or context.session.find(locator)
    assert link is not None, f"Link {locator} was not found"
    href = link.get_attribute("href")
    assert href, f"Link {locator} has no href"
    context.session.execute_script("document.location.href = arguments[0];", href)


######################################################################
# Dialogs
######################################################################
@step(r'I see the text "([^"]+)" in the alert')
def step_alert_text(context, expected):
    text = context.session.expected_alert().text
    assert expected in text, f'"{expected}" not found in the alert text "{text}"'


@step(r'I type "([^"]*)" into the dialog')
def step_type_into_dialog(context, data):
    alert = context.session.expected_alert()
    alert.send_keys(data)
    alert.accept()


@step(r"I confirm the dialog")
def step_confirm_dialog(context):
    confirm_dialog(context)


@step(r"I dismiss the dialog")
def step_dismiss_dialog(context):
    dismiss_dialog(context)


######################################################################
# Fields
######################################################################
@step(r'the "((?:[^"]|\\")*)" (field|button) should (not )?be disabled')
def step_disabled(context, name, kind, negate):
    _assert_disabled(context, name, kind, negate)


@step(r'the (field|button) "((?:[^"]|\\")*)" should (not )?be disabled')
def step_disabled_reversed(context, kind, name, negate):
    _assert_disabled(context, name, kind, negate)


def _assert_disabled(context, name, kind, negate):
    driver = context.session.driver
    if kind == "field":
        element = locators.find_field(driver, name)
    else:
        element = locators.find_named_button(driver, name)
    assert element is not None, f"Element '{name}' not found"
    disabled = element.get_attribute("disabled")
    if negate:
        assert disabled is None, f"Failed asserting element '{name}' is not disabled"
    else:
        assert disabled is not None, f"Failed asserting element '{name}' is disabled"


@step(r'the "((?:[^"]|\\")*)" field should be enabled')
def step_enabled(context, name):
    _assert_enabled(context, name)


@step(r'the field "((?:[^"]|\\")*)" should be enabled')
def step_enabled_reversed(context, name):
    _assert_enabled(context, name)


def _assert_enabled(context, name):
    field = locators.find_field(context.session.driver, name)
    assert field is not None, f"Field '{name}' not found"
    assert field.get_attribute("disabled") is None, f"Failed asserting field '{name}' is enabled"


@step(r'the "([^"]+)" field should have the value "([^"]+)"')
def step_field_value(context, locator, value):
    expected = _value(context, value)
    actual = require_element(context, locator).get_attribute("value")
    assert actual == str(expected), f'Expected "{expected}" in {locator}, got "{actual}"'


@step(r'I select "([^"]+)" from the "([^"]+)" field( with javascript)?')
def step_select_from_field(context, value, locator, with_javascript):
    field = require_element(context, locator)
    if not with_javascript:
        select = Select(field)
        try:
            select.select_by_value(value)
        except NoSuchElementException:
            select.select_by_visible_text(value)
        return
    selected = context.session.evaluate_script(
        """
        var select = arguments[0], value = arguments[1];
        var options = select.getElementsByTagName('option');
        for (var i = 0; i < options.length; i++) {
            if (options[i].value == value || options[i].innerHTML.trim() == value) {
                select.value = options[i].value;
                select.dispatchEvent(new Event('change', {bubbles: true}));
                return 1;
            }
        }
        return 0;
        """,
        field,
        value,
    )
    assert selected == 1, f"Unable to select value {value} from {locator} with javascript"


@step(r'I select "([^"]*)" from "([^"]*)" input group')
def step_select_from_input_group(context, value, label_text):
    """Pick one input of a radio/checkbox group, found through the group's top label."""
    parent = None
    for label in context.session.find_all("label"):
        if label.text == label_text:
            parent = label.find_element(By.XPATH, "..")
    if parent is None:
        raise ValueError(f'Input group with label "{label_text}" cannot be found')

    for option in parent.find_elements(By.CSS_SELECTOR, "label"):
        if option.text != value:
            continue
        target = option.get_attribute("for")
        field = locators.first(parent, By.ID, target) if target else None
        if field is None:
            field = locators.first(option, By.CSS_SELECTOR, "input")
        if field is None:
            raise ValueError(f'Input "{value}" cannot be found')
        field.click()


@step(r'I select the "([^"]*)" radio button')
def step_select_radio(context, label):
    radio = locators.find_radio(context.session.driver, label)
    assert radio is not None, f'Radio button "{label}" not found'
    radio.click()


@step(r'I add "([^"]+)" to the "([^"]+)" tag field')
def step_add_to_tag_field(context, value, locator):
    field = require_element(context, locator)
    fill_field(field, value)
    menu = locators.first(field, By.XPATH, "./ancestor::*[4]//*[contains(@class, 'Select-menu-outer')]")
    assert menu is not None, f"No suggestions shown for {locator}"
    menu.click()


@step(r'I attach the file "([^"]+)" to the "([^"]+)" field')
def step_attach_file(context, filename, locator):
    files_path = context.session.settings.fixtures_path
    assert files_path, "Fixture files path is empty"
    path = os.path.realpath(os.path.join(files_path, filename))
    assert os.path.isfile(path), f"{path} does not exist"
    require_element(context, locator).send_keys(path)


######################################################################
# Regions
######################################################################
@step(r'I (?:follow|click) "([^"]*)" in the "([^"]*)" region')
def step_follow_in_region(context, link, region):
    region_element = context.session.get_region(region)
    link_element = locators.find_link(region_element, link)
    assert link_element is not None, (
        f'The link "{link}" was not found in the region "{region}" on the page {context.session.current_url}'
    )
    link_element.click()


@step(r'I fill in "([^"]*)" with "([^"]*)" in the "([^"]*)" region')
def step_fill_in_region(context, field, value, region):
    region_element = context.session.get_region(region)
    field_element = locators.find_field(region_element, field)
    assert field_element is not None, (
        f'The field "{field}" was not found in the region "{region}" on the page {context.session.current_url}'
    )
    fill_field(field_element, _value(context, value))


@step(r'I should (not )?see "([^"]*)" in the "([^"]*)" region')
def step_see_in_region(context, negate, text, region):
    actual = re.sub(r"\s+", " ", context.session.get_region(region).text)
    found = re.search(re.escape(text), actual, re.IGNORECASE) is not None
    url = context.session.current_url
    if negate:
        assert not found, f'The text "{text}" was found in the text of the "{region}" region on the page {url}.'
    else:
        assert found, f'The text "{text}" was not found anywhere in the text of the "{region}" region on the page {url}.'


######################################################################
# Tables
######################################################################
@step(r'the "([^"]*)" table should contain "([^"]*)"')
def step_table_contains(context, selector, text):
    table = locators.get_table(context.session.driver, selector)
    element = locators.find_content(table, text)
    assert element is not None, f"Element containing `{text}` not found in `{selector}` table"


@step(r'the "([^"]*)" table should not contain "([^"]*)"')
def step_table_does_not_contain(context, selector, text):
    table = locators.get_table(context.session.driver, selector)
    element = locators.find_content(table, text)
    assert element is None, f"Element containing `{text}` found in `{selector}` table"


@step(r'I click on "([^"]*)" in the "([^"]*)" table')
def step_click_in_table(context, text, selector):
    table = locators.get_table(context.session.driver, selector)
    element = locators.leaf_containing(table, text)
    assert element is not None, f"Element containing `{text}` not found"
    element.click()


######################################################################
# Waiting
######################################################################
@step(r"I wait (?:for )?([\d\.]+) second(?:s?)")
def step_wait(context, seconds):
    context.session.wait(float(seconds) * 1000)


def _visible(session, selector):
    element = session.find(selector)
    return element is not None and element.is_displayed()


@step(r'I wait for (\d+) seconds until I see the "([^"]*)" element')
def step_wait_seconds_until_element(context, seconds, selector):
    spin(
        lambda: _visible(context.session, selector),
        max_attempts=max(int(seconds), 1),
        label=f'waiting {seconds}s for the "{selector}" element',
    )


@step(r'I wait until I see the "([^"]*)" element')
def step_wait_until_element(context, selector):
    spin(lambda: _visible(context.session, selector), label=f'waiting for the "{selector}" element')


@step(r'I wait until I see the text "([^"]*)"')
def step_wait_until_text(context, text):
    xpath = f".//*[contains(text(), {locators.xpath_literal(text)})]"

    def text_visible():
        return locators.first_visible(locators.find_all(context.session.driver, By.XPATH, xpath)) is not None

    spin(text_visible, label=f'waiting for the text "{text}"')


######################################################################
# Scrolling, dragging and keys
######################################################################
@step(r"I scroll to the bottom")
def step_scroll_bottom(context):
    context.session.execute_script(
        "window.scrollTo(0, Math.max(document.documentElement.scrollHeight,"
        " document.body.scrollHeight, document.documentElement.clientHeight));"
    )


@step(r"I scroll to the top")
def step_scroll_top(context):
    context.session.execute_script("window.scrollTo(0,0);")


@step(r'I scroll to the "([^"]*)" (field|link|button)')
def step_scroll_to_named(context, locator, kind):
    finders = {
        "field": locators.find_field,
        "link": locators.find_link,
        "button": locators.find_named_button,
    }
    element = finders[kind](context.session.driver, locator)
    assert element is not None, f"{locator} element not found"
    context.session.execute_script("arguments[0].scrollIntoView(true);", element)


@step(r'I scroll to the "((?:[^"]|\\")*)" element')
def step_scroll_to_element(context, selector):
    element = context.session.find(selector)
    assert element is not None, f'The element "{selector}" is not found'
    context.session.execute_script("arguments[0].scrollIntoView(true);", element)


@step(r'I drag the "([^"]+)" element to the "([^"]+)" element')
def step_drag_to(context, source, target):
    ActionChains(context.session.driver).drag_and_drop(
        require_element(context, source), require_element(context, target)
    ).perform()


@step(r'I drag the "([^"]+)" element by "(-?[0-9]+),(-?[0-9]+)"')
def step_drag_by(context, source, x_offset, y_offset):
    ActionChains(context.session.driver).drag_and_drop_by_offset(
        require_element(context, source), int(x_offset), int(y_offset)
    ).perform()


def parse_key_combo(combo: str):
    """Split "shift-tab" / "ctrl-c" / "space" into (modifier key, key)."""
    modifier = None
    char = combo
    if "-" in combo[1:]:
        name, char = combo.split("-", 1)
        modifier = MODIFIERS.get(name.lower())
    special = getattr(Keys, char.upper(), None) if len(char) > 1 else None
    return modifier, special or char


@step(r'I press the "([^"]+)" key globally')
def step_press_key(context, combo):
    modifier, key = parse_key_combo(combo)
    actions = ActionChains(context.session.driver)
    if modifier:
        actions.key_down(modifier).send_keys(key).key_up(modifier)
    else:
        actions.send_keys(key)
    actions.perform()


######################################################################
# Debugging
######################################################################
@step(r"I take a screenshot after every step")
def step_screenshot_every_step(context):
    context.debug.screenshot_every_step = True


@step(r"I dump the rendered HTML after every step")
def step_dump_every_step(context):
    context.debug.dump_every_step = True


@step(r"(?:|I )put a breakpoint")
def step_breakpoint(context):
    """Pause the scenario until RETURN is pressed."""
    sys.stdout.write("\033[s    \033[93m[Breakpoint] Press \033[1;93m[RETURN]\033[0;93m to continue...\033[0m")
    sys.stdout.flush()
    sys.stdin.readline()
    sys.stdout.write("\033[u")


use_step_matcher("parse")
