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
Fixture steps

Create, update and relate database records from feature files:

  Given a "page" "About us"
  And the "page" "About us" has "Content"="<p>Hello</p>" and "Title"="About"
  And the "page" "Team" is a child of the "page" "About us"
  And a "member" "Jane" belonging to "Editors" with "Email"="jane@example.org"
  And a "group" "Editors" has permissions "CMS_ACCESS" and "Edit pages"
  And the "page" "About us" is published

Records are remembered by the quoted identifier for later steps.
"""

import os
import re

from behave import given, step, then, use_step_matcher

from uisteps.transforms import resolve

use_step_matcher("re")

KEY_VALUE = re.compile(r'"(?P<key>[^"]+)"\s*=\s*"(?P<value>[^"]+)"')
QUOTED = re.compile(r'"([^"]+)"')


def _resolved(context, fields):
    settings = context.session.settings
    return {key: resolve(value, settings, context.fixtures) for key, value in fields.items()}


def parse_key_values(text):
    """'"URL"="page-1" and "Content"="my page"' -> {"URL": "page-1", "Content": "my page"}"""
    return {match.group("key"): match.group("value") for match in KEY_VALUE.finditer(text)}


@given(r'(?:an|a|the) "([^"]+)" "([^"]+)"')
def step_create_record(context, type_name, identifier):
    context.fixtures.create_record(type_name, identifier)


@given(r'(?:an|a|the) "([^"]+)" "([^"]+)" has (?:an|a|the) "(.*)" "(.*)"')
def step_create_record_has_field(context, type_name, identifier, field, value):
    context.fixtures.create_or_update(type_name, identifier, _resolved(context, {field: value}))


@given(r'(?:an|a|the) "([^"]+)" "([^"]+)" (?:with|has) (".*)')
def step_create_record_with_data(context, type_name, identifier, data):
    context.fixtures.create_or_update(type_name, identifier, _resolved(context, parse_key_values(data)))


@given(r'(?:an|a|the) "([^"]+)" "([^"]+)" has the following data')
def step_create_record_with_table(context, type_name, identifier):
    """Two-column table of field | value (no header row)."""
    rows = [context.table.headings] + [row.cells for row in context.table.rows]
    fields = {row[0]: row[1] for row in rows}
    context.fixtures.create_or_update(type_name, identifier, _resolved(context, fields))


@given(r'(?:an|a|the) "([^"]+)" "([^"]+)" is a ([^\s]*) of (?:an|a|the) "([^"]+)" "([^"]+)"')
def step_update_record_relation(context, type_name, identifier, relation, relation_type, relation_id):
    context.fixtures.update_relation(type_name, identifier, relation, relation_type, relation_id)


@given(r'I assign (?:an|a|the) "([^"]+)" "([^"]+)" to (?:an|a|the) "([^"]+)" "([^"]+)"')
def step_assign(context, type_name, value, relation_type, relation_id):
    context.fixtures.assign(type_name, value, relation_type, relation_id)


@given(
    r'I assign (?:an|a|the) "([^"]+)" "([^"]+)" to (?:an|a|the) "([^"]+)" "([^"]+)" '
    r'in the "([^"]+)" relation'
)
def step_assign_in_relation(context, type_name, value, relation_type, relation_id, relation_name):
    context.fixtures.assign(type_name, value, relation_type, relation_id, relation_name)


@given(r'(?:an|a|the) "([^"]+)" "([^"]+)" is ([^"]*)')
def step_update_record_state(context, type_name, identifier, state):
    context.fixtures.update_state(type_name, identifier, state.strip())


@given(r'(?:an|a|the) "member" "([^"]+)" belonging to "([^"]+)"')
def step_member_in_group(context, identifier, group):
    context.fixtures.member_in_group(identifier, group)


@given(r'(?:an|a|the) "member" "([^"]+)" belonging to "([^"]+)" with (.*)')
def step_member_in_group_with_data(context, identifier, group, data):
    context.fixtures.member_in_group(identifier, group, _resolved(context, parse_key_values(data)))


@given(r'(?:an|a|the) "group" "([^"]+)" (?:with|has) permissions (.*)')
def step_group_with_permissions(context, identifier, permissions):
    context.fixtures.group_with_permissions(identifier, QUOTED.findall(permissions))


@given(r'(?:an|a|the) "([^"]*)" "([^"]*)" was (created|last edited) "([^"]*)"')
def step_record_timestamp(context, type_name, identifier, which, expr):
    context.fixtures.set_timestamp(type_name, identifier, which, expr)


@step(r'I go to (?:an|a|the) "([^"]+)" "([^"]+)"')
def step_go_to_record(context, type_name, identifier):
    context.session.visit(context.fixtures.link_for(type_name, identifier))


@then(r'there should be a (?:(?:file|folder) )"([^"]*)"')
def step_file_or_folder_exists(context, path):
    assert os.path.exists(path), f"{path} does not exist"


@then(r'there should be a filename "([^"]*)" with hash "([a-fA-F0-9]+)"')
def step_file_with_hash(context, filename, file_hash):
    assert context.fixtures.file_exists(filename, file_hash), (
        f"No file exists with filename {filename} and hash {file_hash}"
    )


use_step_matcher("parse")
