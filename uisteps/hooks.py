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
Hook bodies for behave

features/environment.py forwards behave's before/after hooks here. They
wait for jQuery AJAX around steps that trigger requests, surface JavaScript
errors, close "unsaved changes" dialogs after failures, write debug
artifacts and reset fixture data between scenarios.

Scenarios tagged @modal skip all JavaScript injection, because an open
modal dialog blocks script execution.
"""

import logging
import re

from selenium.common.exceptions import WebDriverException

logger = logging.getLogger("uisteps")

AJAX_LISTEN_JS = """
if ('undefined' !== typeof window.jQuery && 'undefined' !== typeof window.jQuery.fn.on) {
    window.jQuery(document).on('ajaxStart.uisteps', function() {
        window.__ajaxStatus = function() { return 'waiting'; };
    });
    window.jQuery(document).on('ajaxComplete.uisteps', function(e, jqXHR) {
        if (null === jqXHR.getResponseHeader('X-ControllerURL')) {
            window.__ajaxStatus = function() { return 'no ajax'; };
        }
    });
    window.jQuery(document).on('ajaxSuccess.uisteps', function(e, jqXHR) {
        if (null === jqXHR.getResponseHeader('X-ControllerURL')) {
            window.__ajaxStatus = function() { return 'success'; };
        }
    });
}
"""

AJAX_UNLISTEN_JS = """
if ('undefined' !== typeof window.jQuery && 'undefined' !== typeof window.jQuery.fn.off) {
    window.jQuery(document).off('ajaxStart.uisteps');
    window.jQuery(document).off('ajaxComplete.uisteps');
    window.jQuery(document).off('ajaxSuccess.uisteps');
}
"""

AJAX_DONE = "(typeof window.__ajaxStatus !== 'undefined' ? window.__ajaxStatus() : 'no ajax') !== 'waiting'"

ERROR_HANDLER_JS = """
window.onerror = function(message, file, line, column, error) {
    var body = document.getElementsByTagName('body')[0];
    var msg = message + " in " + file + ":" + line + ":" + column;
    if (error !== undefined && error.stack !== undefined) {
        msg += "\\nSTACKTRACE:\\n" + error.stack;
    }
    body.setAttribute('data-jserrors', '[captured JavaScript error] ' + msg);
};
if ('undefined' !== typeof window.jQuery) {
    window.jQuery(document).ajaxError(function(event, jqxhr, settings, exception) {
        if ('abort' === exception) {
            return;
        }
        window.onerror(event.type + ': ' + settings.type + ' ' + settings.url + ' '
            + exception + ' ' + jqxhr.responseText);
    });
}
"""

CLEAR_ERRORS_JS = "document.body && document.body.removeAttribute('data-jserrors');"


######################################################################
# Helpers
######################################################################
def has_tag(context, tag: str) -> bool:
    """True when the current feature or scenario carries ``tag``."""
    feature = getattr(context, "feature", None)
    if feature is not None and tag in (feature.tags or []):
        return True
    scenario = getattr(context, "scenario", None)
    if scenario is not None:
        tags = getattr(scenario, "effective_tags", None) or scenario.tags or []
        return tag in tags
    return False


def is_ajax_step(settings, step_text: str) -> bool:
    patterns = [pattern for pattern in settings.ajax_steps if pattern]
    if not patterns:
        return False
    return re.search("(" + "|".join(patterns) + ")", step_text, re.IGNORECASE) is not None


def handle_ajax_timeout(session):
    """Wait (bounded by ajax_timeout) for pending jQuery requests, then let the DOM settle."""
    session.wait(session.settings.ajax_timeout, AJAX_DONE)
    session.wait(100)


def _log_exception(error: Exception):
    logger.warning("Exception caught: %s", error)


######################################################################
# Hook bodies
######################################################################
def before_scenario(context, scenario):
    fixtures = getattr(context, "fixtures", None)
    if fixtures is not None and has_tag(context, "database-defaults"):
        fixtures.reset()
        fixtures.require_default_records()


def before_step(context, step):
    if has_tag(context, "modal"):
        return
    session = context.session
    if not is_ajax_step(session.settings, step.name):
        return
    try:
        session.wait(500)
        session.execute_script(AJAX_LISTEN_JS)
    except WebDriverException as error:
        _log_exception(error)


def after_step(context, step):
    session = context.session
    failed = step.status == "failed"

    if not has_tag(context, "modal"):
        if is_ajax_step(session.settings, step.name):
            try:
                handle_ajax_timeout(session)
                session.execute_script(AJAX_UNLISTEN_JS)
            except WebDriverException as error:
                _log_exception(error)

        try:
            errors = session.find("body[data-jserrors]")
            if errors is not None:
                context.debug.take_screenshot(step.filename, step.line)
                logger.error(errors.get_attribute("data-jserrors"))
                session.execute_script(CLEAR_ERRORS_JS)
            session.execute_script(ERROR_HANDLER_JS)
        except WebDriverException as error:
            _log_exception(error)

    context.debug.after_step(step.filename, step.line, failed)


def close_modal_dialog(context, scenario):
    """After a failure on a CMS page, navigate away and accept the leave-page alert."""
    if not (has_tag(context, "unsavedChanges") or scenario.status == "failed"):
        return
    session = context.session
    try:
        if session.find(".cms") is None:
            return
        session.reload()
        try:
            session.expected_alert(timeout=2).accept()
        except (AssertionError, WebDriverException):
            # no leave-page alert was raised
            pass
    except WebDriverException as error:
        _log_exception(error)


def after_scenario(context, scenario):
    close_modal_dialog(context, scenario)
    fixtures = getattr(context, "fixtures", None)
    if fixtures is not None:
        if has_tag(context, "assets"):
            fixtures.clean_assets()
        fixtures.reset()
    context.debug.reset()
