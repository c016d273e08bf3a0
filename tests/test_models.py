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
Test cases for the demo CMS models
"""

# pylint: disable=duplicate-code
import logging
from unittest import TestCase
from unittest.mock import patch

from wsgi import app
from democms.models import (
    DatabaseError,
    DataValidationError,
    Group,
    Member,
    Page,
    Permission,
    db,
    slugify,
)
from tests.factories import GroupFactory, MemberFactory, PageFactory


######################################################################
#  B A S E   T E S T   C A S E S
######################################################################
class TestCaseBase(TestCase):
    """Base Test Case for common setup"""

    @classmethod
    def setUpClass(cls):
        """This runs once before the entire test suite"""
        app.config["TESTING"] = True
        app.config["DEBUG"] = False
        app.logger.setLevel(logging.CRITICAL)
        app.app_context().push()

    @classmethod
    def tearDownClass(cls):
        """This runs once after the entire test suite"""
        db.session.close()

    def setUp(self):
        """This runs before each test"""
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

    def tearDown(self):
        """This runs after each test"""
        db.session.remove()


######################################################################
#  P A G E   M O D E L   T E S T   C A S E S
######################################################################
class TestPageModel(TestCaseBase):
    """Test Cases for the Page Model"""

    def test_create_a_page(self):
        """It should Create a Page and assign it an id"""
        page = PageFactory()
        page.create()
        self.assertIsNotNone(page.id)
        self.assertEqual(len(Page.all()), 1)
        self.assertIsNotNone(page.created_at)

    def test_default_url_segment(self):
        """It should derive the URL segment from the title"""
        page = Page(title="About Us!")
        page.create()
        self.assertEqual(page.url_segment, "about-us")
        self.assertFalse(page.published)

    def test_update_a_page(self):
        """It should Update a Page"""
        page = PageFactory()
        page.create()
        original_id = page.id
        page.title = "Updated Title"
        page.update()
        found = Page.find(original_id)
        self.assertEqual(found.title, "Updated Title")

    def test_update_no_id(self):
        """It should not Update a Page with no id"""
        page = PageFactory()
        self.assertRaises(DataValidationError, page.update)

    def test_delete_a_page(self):
        """It should Delete a Page and its children"""
        parent = PageFactory()
        parent.create()
        child = PageFactory(parent_id=parent.id)
        child.create()
        self.assertEqual(len(Page.all()), 2)
        parent.delete()
        self.assertEqual(len(Page.all()), 0)

    def test_find_bad_id(self):
        """It should return None for ids that are not numbers"""
        self.assertIsNone(Page.find("abc"))
        self.assertIsNone(Page.find(None))
        self.assertIsNone(Page.find(999))

    def test_relative_link(self):
        """It should build links from the URL segments"""
        home = PageFactory(url_segment="home")
        home.create()
        about = PageFactory(url_segment="about")
        about.create()
        team = PageFactory(url_segment="team", parent_id=about.id)
        team.create()
        self.assertEqual(home.relative_link(), "/")
        self.assertEqual(about.relative_link(), "/about/")
        self.assertEqual(team.relative_link(), "/about/team/")

    def test_find_by_link(self):
        """It should walk the tree along a URL"""
        about = PageFactory(url_segment="about")
        about.create()
        team = PageFactory(url_segment="team", parent_id=about.id)
        team.create()
        self.assertEqual(Page.find_by_link("/about/team/").id, team.id)
        self.assertEqual(Page.find_by_link("about").id, about.id)
        self.assertIsNone(Page.find_by_link("/team/"))
        self.assertIsNone(Page.find_by_link("/"))

    def test_find_top_level(self):
        """It should list published top level pages only"""
        shown = PageFactory(published=True)
        shown.create()
        PageFactory(published=False).create()
        PageFactory(published=True, parent_id=shown.id).create()
        self.assertEqual([page.id for page in Page.find_top_level()], [shown.id])
        self.assertEqual(len(Page.find_top_level(published_only=False)), 2)

    def test_deserialize(self):
        """It should update a Page from form data"""
        page = Page()
        page.deserialize({"Title": " Contact ", "Content": "<p>Call</p>", "Published": "1"})
        self.assertEqual(page.title, "Contact")
        self.assertEqual(page.url_segment, "contact")
        self.assertTrue(page.published)
        page.deserialize({"Title": "Contact", "URL": "Reach Us"})
        self.assertEqual(page.url_segment, "reach-us")
        self.assertFalse(page.published)

    def test_deserialize_without_title(self):
        """It should require a title"""
        self.assertRaises(DataValidationError, Page().deserialize, {"Title": "  "})
        self.assertRaises(DataValidationError, Page().deserialize, {})

    def test_slugify(self):
        """It should make URL segments"""
        self.assertEqual(slugify("Hello, World"), "hello-world")
        self.assertEqual(slugify("!!!"), "new-page")
        self.assertEqual(slugify(None), "new-page")

    def test_require_default_records(self):
        """It should create the default pages once"""
        Page.require_default_records()
        Page.require_default_records()
        self.assertEqual(len(Page.all()), 3)
        self.assertEqual(Page.find_by_link("/about-us/").title, "About Us")

    @patch("democms.models.db.session.commit")
    def test_create_failure(self, commit):
        """It should raise DatabaseError when the commit fails"""
        commit.side_effect = Exception("connection lost")
        self.assertRaises(DatabaseError, PageFactory().create)

    @patch("democms.models.db.session.commit")
    def test_update_failure(self, commit):
        """It should raise DatabaseError when an update fails"""
        page = PageFactory()
        page.id = 1
        commit.side_effect = Exception("connection lost")
        self.assertRaises(DatabaseError, page.update)

    @patch("democms.models.db.session.delete")
    def test_delete_failure(self, delete):
        """It should raise DatabaseError when a delete fails"""
        delete.side_effect = Exception("connection lost")
        self.assertRaises(DatabaseError, PageFactory().delete)


######################################################################
#  S E C U R I T Y   M O D E L   T E S T   C A S E S
######################################################################
class TestSecurityModels(TestCaseBase):
    """Test Cases for Member, Group and Permission"""

    def test_passwords(self):
        """It should store only a password hash"""
        member = MemberFactory(password="Correct!123")
        self.assertIsNone(member.password)
        self.assertNotEqual(member.password_hash, "Correct!123")
        self.assertTrue(member.check_password("Correct!123"))
        self.assertFalse(member.check_password("wrong"))
        self.assertFalse(Member(email="x@example.org").check_password("anything"))

    def test_name(self):
        """It should join first name and surname"""
        self.assertEqual(Member(email="a", first_name="Jane", surname="Doe").name, "Jane Doe")
        self.assertEqual(Member(email="a", first_name="Jane").name, "Jane")

    def test_authenticate(self):
        """It should find a member by email and password"""
        member = MemberFactory(email="jane@example.org", password="Correct!123")
        member.create()
        self.assertEqual(Member.authenticate("jane@example.org", "Correct!123").id, member.id)
        self.assertIsNone(Member.authenticate("jane@example.org", "wrong"))
        self.assertIsNone(Member.authenticate("nobody@example.org", "Correct!123"))

    def test_grant_is_idempotent(self):
        """It should grant a permission code only once"""
        group = GroupFactory()
        group.create()
        Permission.grant(group, "CMS_ACCESS_CMSMain")
        Permission.grant(group, "CMS_ACCESS_CMSMain")
        db.session.commit()
        self.assertEqual(Group.find(group.id).codes(), ["CMS_ACCESS_CMSMain"])

    def test_catalogue(self):
        """It should list known codes with their names"""
        catalogue = Permission.catalogue()
        self.assertEqual(catalogue["ADMIN"], "Full administrative rights")
        catalogue["NEW"] = "changed"
        self.assertNotIn("NEW", Permission.catalogue())

    def test_has_permission(self):
        """It should check the codes of every group"""
        editors = GroupFactory(title="Editors")
        Permission.grant(editors, "CMS_ACCESS_CMSMain")
        admins = GroupFactory(title="Administrators")
        Permission.grant(admins, "ADMIN")
        member = MemberFactory()
        member.groups.append(editors)
        member.create()
        self.assertTrue(member.has_permission("CMS_ACCESS_CMSMain"))
        self.assertFalse(member.has_permission("SITETREE_EDIT_ALL"))
        member.groups.append(admins)
        member.update()
        self.assertTrue(member.has_permission("SITETREE_EDIT_ALL"))

    def test_require_default_records(self):
        """It should create the administrator once"""
        Member.require_default_records()
        Member.require_default_records()
        admin = Member.find_by_email("admin")
        self.assertTrue(admin.check_password("password"))
        self.assertEqual([group.title for group in admin.groups], ["Administrators"])
        self.assertEqual(len(Member.all()), 1)
        self.assertEqual(Group.find_by_title("Administrators").codes(), ["ADMIN"])

    def test_repr(self):
        """It should describe records readably"""
        self.assertIn("jane@example.org", repr(Member(email="jane@example.org")))
        self.assertIn("Editors", repr(Group(title="Editors")))
        self.assertIn("ADMIN", repr(Permission(code="ADMIN")))
        self.assertIn("About", repr(Page(title="About")))
