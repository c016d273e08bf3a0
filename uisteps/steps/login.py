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
Login and logout steps

Drives the site's login form through the browser. Members with a given
permission code are created through the fixture store first.
"""

import time

from behave import given, step, use_step_matcher
from selenium.webdriver.common.by import By

from uisteps import locators

use_step_matcher("re")

LOGIN_FORM = "#MemberLoginForm_LoginForm"
LOGOUT_FORM = "#LogoutForm_Form"
DEFAULT_PASSWORD = "Secret!123"


def _wait_for_element(session, selector, attempts=50):
    """Look for ``selector`` every 100ms, returning it or None."""
    for _ in range(attempts):
        element = session.find(selector)
        if element is not None:
            return element
        session.wait(100)
    return None


def login_with(context, email, password):
    session = context.session
    session.visit(session.login_url)
    form = session.find(LOGIN_FORM)
    assert form is not None, "Login form not found"
    assert form.is_displayed() and locators.first(form, By.CSS_SELECTOR, "[name=Email]") is not None, (
        "Could not find login email field"
    )

    email_field = locators.first(form, By.CSS_SELECTOR, "[name=Email]")
    password_field = locators.first(form, By.CSS_SELECTOR, "[name=Password]")
    submit = locators.first(form, By.CSS_SELECTOR, "[type=submit]")
    token = locators.first(form, By.CSS_SELECTOR, "[name=SecurityID]")
    assert password_field is not None, "Password field on login form not found"
    assert submit is not None, "Submit button on login form not found"
    assert token is not None, "CSRF token not found"

    email_field.clear()
    email_field.send_keys(email)
    password_field.clear()
    password_field.send_keys(password)
    submit.click()
    session.wait(100)

    message = session.find(".message.error")
    error = message.text if message is not None else None
    assert message is None, f'Could not log in with user {email}. Error: "{error}"'


def skip_mfa(context):
    """Click "Setup later" on the MFA registration screen when one is shown."""
    session = context.session
    session.wait(100)
    if _wait_for_element(session, "#mfa-app") is None:
        return
    selector = ".mfa-action-list__item .btn"
    _wait_for_element(session, selector)
    for button in session.find_all(selector):
        if button.text != "Setup later":
            continue
        time.sleep(0.3)
        button.click()
        return
    raise AssertionError('MFA "Setup later" button was not found so it was not clicked')


@given(r"I am logged in")
def step_logged_in(context):
    session = context.session
    session.visit(session.admin_url)
    if session.current_url.startswith(session.login_url):
        step_log_in_with(context, "admin", "password")
        assert session.current_url.startswith(session.admin_url), (
            f"Expected to land on {session.admin_url}, got {session.current_url}"
        )


@given(r'I am logged in with "([^"]*)" permissions')
def step_logged_in_with_permissions(context, code):
    email = f"{code}@example.org"
    context.fixtures.member_with_permission(email, DEFAULT_PASSWORD, code)
    step_log_in_with(context, email, DEFAULT_PASSWORD)


@given(r"I am not logged in")
def step_not_logged_in(context):
    session = context.session
    session.visit(session.join_url_parts(session.base_url, "Security/logout/"))
    form = session.find(LOGOUT_FORM)
    assert form is not None, "Logout form not found"
    submit = locators.first(form, By.CSS_SELECTOR, "[type=submit]")
    token = locators.first(form, By.CSS_SELECTOR, "[name=SecurityID]")
    assert submit is not None, "Submit button on logout form not found"
    assert token is not None, "CSRF token not found"
    submit.click()


@step(r'I log in with "([^"]*)" and "([^"]*)"')
def step_log_in_with(context, email, password):
    login_with(context, email, password)
    if context.session.settings.mfa_enabled:
        skip_mfa(context)


@step(r'I log in with "([^"]*)" and "([^"]*)" without skipping MFA')
def step_log_in_without_skipping_mfa(context, email, password):
    login_with(context, email, password)


@step(r"I should see a log-in form")
def step_see_login_form(context):
    assert context.session.find(LOGIN_FORM) is not None, "I should see a log-in form"


@step(r"I should see a log-out form")
def step_see_logout_form(context):
    assert context.session.find(LOGOUT_FORM) is not None, "I should see a log-out form"


@step(r'I will see a "([^"]*)" log-in message')
def step_login_message(context, kind):
    assert context.session.find(f".message.{kind}") is not None, f"{kind} message not found."


@step(r'the password for "([^"]*)" should be "([^"]*)"')
def step_password_should_be(context, email, password):
    member = context.fixtures.find_member(email)
    assert member is not None, f"No member with email {email}"
    assert member.check_password(password), f"The password for {email} does not match"


use_step_matcher("parse")
