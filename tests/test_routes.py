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
Demo CMS Site Test Suite
"""

import logging
from unittest import TestCase

from wsgi import app
from democms.common import status
from democms.models import Group, Member, Page, Permission, db
from tests.factories import MemberFactory, PageFactory

LOGIN_URL = "/Security/login"
LOGOUT_URL = "/Security/logout/"


######################################################################
#  T E S T   C A S E S
######################################################################
class TestSite(TestCase):
    """Site Server Tests"""

    @classmethod
    def setUpClass(cls):
        """Run once before all tests"""
        app.config["TESTING"] = True
        app.config["DEBUG"] = False
        app.logger.setLevel(logging.CRITICAL)
        app.app_context().push()

    @classmethod
    def tearDownClass(cls):
        """Run once after all tests"""
        db.session.close()

    def setUp(self):
        """Runs before each test"""
        self.client = app.test_client()
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

    def tearDown(self):
        """Runs after each test"""
        db.session.remove()

    ######################################################################
    #  H E L P E R S
    ######################################################################
    def _token(self):
        """Load a page so the session holds a SecurityID, and return it"""
        self.client.get(LOGIN_URL)
        with self.client.session_transaction() as session:
            return session["SecurityID"]

    def _member(self, email="editor@example.org", password="Secret!123", codes=("CMS_ACCESS_CMSMain",)):
        group = Group(title=f"{email} group")
        for code in codes:
            Permission.grant(group, code)
        member = MemberFactory(email=email, password=password)
        member.groups.append(group)
        member.create()
        return member

    def _login(self, email="editor@example.org", password="Secret!123", **extra):
        data = {"Email": email, "Password": password, "SecurityID": self._token()}
        data.update(extra)
        return self.client.post(LOGIN_URL, data=data)

    def _page(self, **kwargs):
        page = PageFactory(**kwargs)
        page.create()
        return page

    ######################################################################
    #  P U B L I C   S I T E
    ######################################################################
    def test_index_home_page(self):
        """It should show the home page at the root URL"""
        Page.require_default_records()
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn(b"<h1 id=\"title\">Home</h1>", resp.data)
        self.assertIn(b"About Us", resp.data)

    def test_index_without_pages(self):
        """It should list nothing when no page is published"""
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn(b"No pages have been published yet.", resp.data)

    def test_show_page(self):
        """It should render a published page by its URL"""
        parent = self._page(url_segment="about", content="<p>Our story</p>")
        self._page(url_segment="team", title="The Team", parent_id=parent.id, content="<p>People</p>")
        resp = self.client.get("/about/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn(b"<p>Our story</p>", resp.data)
        self.assertIn(b"The Team", resp.data)
        resp = self.client.get("/about/team/")
        self.assertIn(b"<p>People</p>", resp.data)

    def test_page_not_found(self):
        """It should render the not found page for unknown URLs"""
        resp = self.client.get("/no-such-page/")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn(b"Page not found", resp.data)
        self.assertIn(b"The requested page could not be found.", resp.data)

    def test_draft_page_hidden(self):
        """It should hide unpublished pages from visitors"""
        self._page(url_segment="draft", published=False)
        resp = self.client.get("/draft/")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_draft_page_visible_to_editors(self):
        """It should show unpublished pages to members who may view them"""
        self._page(url_segment="draft", published=False, content="<p>Work in progress</p>")
        self._member(codes=("SITETREE_VIEW_ALL", "CMS_ACCESS_CMSMain"))
        self._login()
        resp = self.client.get("/draft/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn(b"Work in progress", resp.data)

    def test_method_not_allowed(self):
        """It should not allow unsupported methods"""
        resp = self.client.delete(LOGIN_URL)
        self.assertEqual(resp.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertIn("POST", resp.headers["Allow"])
        self.assertIn(b"Method Not Allowed", resp.data)

    ######################################################################
    #  L O G I N   A N D   L O G O U T
    ######################################################################
    def test_login_form(self):
        """It should render the login form with a SecurityID"""
        resp = self.client.get(LOGIN_URL)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn(b'id="MemberLoginForm_LoginForm"', resp.data)
        self.assertIn(b'name="Email"', resp.data)
        self.assertIn(b'name="Password"', resp.data)
        self.assertIn(b'name="SecurityID"', resp.data)

    def test_login_without_token(self):
        """It should reject a login post without the SecurityID"""
        self._member()
        resp = self.client.post(LOGIN_URL, data={"Email": "editor@example.org", "Password": "Secret!123"})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn(b"Bad Request", resp.data)

    def test_login_wrong_password(self):
        """It should show an error message for bad credentials"""
        self._member()
        resp = self._login(password="wrong")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn(b'class="message error"', resp.data)
        with self.client.session_transaction() as session:
            self.assertNotIn("member_id", session)

    def test_login_success(self):
        """It should log in and land on the admin area"""
        member = self._member()
        resp = self._login()
        self.assertEqual(resp.status_code, status.HTTP_302_FOUND)
        self.assertTrue(resp.headers["Location"].endswith("/admin/"))
        with self.client.session_transaction() as session:
            self.assertEqual(session["member_id"], member.id)
        resp = self.client.get("/admin/")
        self.assertIn(b'class="message good"', resp.data)

    def test_login_back_url(self):
        """It should honour site-relative BackURLs only"""
        self._member()
        resp = self._login(BackURL="/about/")
        self.assertTrue(resp.headers["Location"].endswith("/about/"))
        resp = self._login(BackURL="http://evil.example.org/")
        self.assertTrue(resp.headers["Location"].endswith("/admin/"))

    def test_logout(self):
        """It should show the logout form and log the member out"""
        self._member()
        self._login()
        resp = self.client.get(LOGOUT_URL)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn(b'id="LogoutForm_Form"', resp.data)
        with self.client.session_transaction() as session:
            token = session["SecurityID"]
        resp = self.client.post(LOGOUT_URL, data={"SecurityID": token})
        self.assertEqual(resp.status_code, status.HTTP_302_FOUND)
        self.assertIn(LOGIN_URL, resp.headers["Location"])
        with self.client.session_transaction() as session:
            self.assertNotIn("member_id", session)

    ######################################################################
    #  A D M I N   A R E A
    ######################################################################
    def test_admin_requires_login(self):
        """It should send visitors to the login form"""
        resp = self.client.get("/admin/")
        self.assertEqual(resp.status_code, status.HTTP_302_FOUND)
        self.assertIn(LOGIN_URL, resp.headers["Location"])
        self.assertIn("BackURL", resp.headers["Location"])

    def test_admin_forbidden(self):
        """It should refuse members without CMS access"""
        self._member(codes=())
        self._login()
        resp = self.client.get("/admin/")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn(b"Forbidden", resp.data)

    def test_admin_lists_pages(self):
        """It should list every page for CMS members"""
        self._page(title="Published page")
        self._page(title="Draft page", published=False)
        self._member()
        self._login()
        resp = self.client.get("/admin/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn(b'id="Pages"', resp.data)
        self.assertIn(b"cms", resp.data)
        self.assertIn(b"Published page", resp.data)
        self.assertIn(b"Draft page", resp.data)

    def test_create_page(self):
        """It should add a page from the admin form"""
        self._member()
        self._login()
        self.assertEqual(self.client.get("/admin/pages/new").status_code, status.HTTP_200_OK)
        with self.client.session_transaction() as session:
            token = session["SecurityID"]
        resp = self.client.post(
            "/admin/pages/new",
            data={"Title": "New one", "Content": "<p>Fresh</p>", "Published": "1", "SecurityID": token},
        )
        self.assertEqual(resp.status_code, status.HTTP_302_FOUND)
        db.session.expire_all()
        page = Page.find_by_link("/new-one/")
        self.assertIsNotNone(page)
        self.assertTrue(page.published)

    def test_edit_page(self):
        """It should save the edit form"""
        page = self._page(title="About", url_segment="about")
        self._member()
        self._login()
        resp = self.client.get(f"/admin/pages/{page.id}")
        self.assertIn(b'id="Form_EditForm"', resp.data)
        with self.client.session_transaction() as session:
            token = session["SecurityID"]
        resp = self.client.post(
            f"/admin/pages/{page.id}",
            data={"Title": "About the company", "URL": "about", "Content": "<p>Hi</p>", "SecurityID": token},
            follow_redirects=True,
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn(b"Saved", resp.data)
        db.session.expire_all()
        self.assertEqual(Page.find(page.id).title, "About the company")
        self.assertFalse(Page.find(page.id).published)

    def test_edit_page_validation(self):
        """It should reject a page without a title"""
        page = self._page()
        self._member()
        self._login()
        self.client.get(f"/admin/pages/{page.id}")
        with self.client.session_transaction() as session:
            token = session["SecurityID"]
        resp = self.client.post(f"/admin/pages/{page.id}", data={"Title": "", "SecurityID": token})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn(b"is required", resp.data)

    def test_edit_missing_page(self):
        """It should return 404 for pages that do not exist"""
        self._member()
        self._login()
        resp = self.client.get("/admin/pages/0")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_page(self):
        """It should delete a page"""
        page = self._page()
        self._member()
        self._login()
        self.client.get("/admin/")
        with self.client.session_transaction() as session:
            token = session["SecurityID"]
        resp = self.client.post(f"/admin/pages/{page.id}/delete", data={"SecurityID": token})
        self.assertEqual(resp.status_code, status.HTTP_302_FOUND)
        db.session.expire_all()
        self.assertIsNone(Page.find(page.id))

    def test_default_admin_can_log_in(self):
        """It should let the default administrator in"""
        Member.require_default_records()
        resp = self._login("admin", "password")
        self.assertEqual(resp.status_code, status.HTTP_302_FOUND)
