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
Test cases for step lookup through behave's step registry
"""

import glob
import os
from unittest import TestCase

from behave.parser import parse_file, parse_steps
from behave.step_registry import registry

from uisteps.steps import basic, fixture, login

FEATURES_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "features")


def find(text):
    """Parse a single step line and look it up in the registry"""
    step = parse_steps(text)[0]
    return registry.find_match(step)


######################################################################
#  S T E P   R E G I S T R Y   T E S T   C A S E S
######################################################################
class TestStepRegistry(TestCase):
    """Test Cases for the registered step patterns"""

    def assertResolves(self, text, func):
        match = find(text)
        self.assertIsNotNone(match, f"No step matches: {text}")
        self.assertIs(match.func, func, f"Wrong step for: {text}")
        return match

    def test_feature_steps_resolve(self):
        """It should find a step for every line of the bundled feature files"""
        filenames = sorted(glob.glob(os.path.join(FEATURES_PATH, "*.feature")))
        self.assertTrue(filenames)
        for filename in filenames:
            feature = parse_file(filename)
            steps = list(feature.background.steps) if feature.background else []
            for scenario in feature.scenarios:
                steps.extend(scenario.steps)
            for step in steps:
                with self.subTest(feature=os.path.basename(filename), step=step.name):
                    self.assertIsNotNone(registry.find_match(step), f"No step matches: {step.keyword} {step.name}")

    def test_relation_before_state(self):
        """It should read "is a child of" as a relation, not a state"""
        match = self.assertResolves(
            'Given the "page" "Team" is a child of the "page" "About"', fixture.step_update_record_relation
        )
        self.assertEqual([arg.value for arg in match.arguments], ["page", "Team", "child", "page", "About"])
        match = self.assertResolves('Given the "page" "Team" is published', fixture.step_update_record_state)
        self.assertEqual(match.arguments[2].value, "published")

    def test_field_value_forms(self):
        """It should tell a single field value from a list of assignments"""
        match = self.assertResolves('Given a "page" "About" has a "Content" "Hi"', fixture.step_create_record_has_field)
        self.assertEqual([arg.value for arg in match.arguments], ["page", "About", "Content", "Hi"])
        match = self.assertResolves(
            'Given a "page" "About" has "Content"="Hi" and "URL"="about"', fixture.step_create_record_with_data
        )
        self.assertEqual(match.arguments[2].value, '"Content"="Hi" and "URL"="about"')
        self.assertResolves('Given a "page" "Contact" has the following data', fixture.step_create_record_with_table)
        self.assertResolves('Given a "page" "About"', fixture.step_create_record)

    def test_member_and_group_steps(self):
        """It should route member and group phrases to their own steps"""
        self.assertResolves('Given a "member" "Jane" belonging to "Editors"', fixture.step_member_in_group)
        self.assertResolves(
            'Given a "member" "Jane" belonging to "Editors" with "Email"="jane@example.org"',
            fixture.step_member_in_group_with_data,
        )
        self.assertResolves(
            'Given a "group" "Authors" has permissions "CMS_ACCESS_CMSMain" and "Edit any page"',
            fixture.step_group_with_permissions,
        )
        self.assertResolves('Given I assign a "member" "Jane" to a "group" "Editors"', fixture.step_assign)
        self.assertResolves('Given a "page" "Old news" was created "3 days ago"', fixture.step_record_timestamp)

    def test_go_to(self):
        """It should tell a URL from a fixture record"""
        self.assertResolves('When I go to "/about/"', basic.step_visit)
        self.assertResolves('Given I am on "/about/"', basic.step_visit)
        match = self.assertResolves('When I go to the "page" "Team"', fixture.step_go_to_record)
        self.assertEqual([arg.value for arg in match.arguments], ["page", "Team"])

    def test_disabled_and_enabled(self):
        """It should match both word orders of the disabled and enabled steps"""
        self.assertResolves('Then the "Save" button should be disabled', basic.step_disabled)
        self.assertResolves('Then the "Title" field should not be disabled', basic.step_disabled)
        self.assertResolves('Then the button "Save" should be disabled', basic.step_disabled_reversed)
        self.assertResolves('Then the "Title" field should be enabled', basic.step_enabled)
        self.assertResolves('Then the field "Title" should be enabled', basic.step_enabled_reversed)

    def test_longer_phrases(self):
        """It should not let a short step swallow a longer one"""
        self.assertResolves("Given I am logged in", login.step_logged_in)
        self.assertResolves('Given I am logged in with "ADMIN" permissions', login.step_logged_in_with_permissions)
        self.assertResolves('When I press the "Save" button', basic.step_press_button)
        self.assertResolves('When I press the "Delete" button, dismissing the dialog', basic.step_press_button_dismissing)
        self.assertResolves('Then I should see "Forbidden"', basic.step_see_text)
        self.assertResolves('Then I should see the "#Pages" element', basic.step_see_element)
        self.assertResolves("Then I should see a log-in form", login.step_see_login_form)
        self.assertResolves('Then there should be a file "artifacts/file1.txt"', fixture.step_file_or_folder_exists)
        self.assertResolves(
            'Then there should be a filename "Uploads/file1.txt" with hash "7c52e15389"', fixture.step_file_with_hash
        )

    def test_no_match(self):
        """It should not match phrases that no step defines"""
        self.assertIsNone(find('When I go to the "page"'))
        self.assertIsNone(find("Then the page can't be found today"))
