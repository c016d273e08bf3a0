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
Demo CMS

Serves the public page tree, the Security login/logout forms and a small
admin area for editing pages. Every form carries a SecurityID token that
must match the one stored in the session.
"""

import secrets
from typing import Optional

from flask import abort, current_app as app, flash, redirect, render_template, request, session, url_for

from democms.common import status
from democms.models import DataValidationError, Member, Page

CMS_ACCESS = "CMS_ACCESS_CMSMain"
VIEW_ALL = "SITETREE_VIEW_ALL"


######################################################################
# Helpers
######################################################################
def security_token() -> str:
    """The per-session SecurityID token rendered into forms"""
    if "SecurityID" not in session:
        session["SecurityID"] = secrets.token_hex(16)
    return session["SecurityID"]


def check_security_token():
    """Abort with 400 unless the posted SecurityID matches the session's"""
    posted = request.form.get("SecurityID", "")
    if not posted or posted != session.get("SecurityID"):
        app.logger.warning("Invalid SecurityID submitted to %s", request.path)
        abort(status.HTTP_400_BAD_REQUEST, "Your session has expired. Please re-submit the form.")


def current_member() -> Optional[Member]:
    member_id = session.get("member_id")
    if member_id is None:
        return None
    return Member.find(member_id)


def _safe_back_url(value: Optional[str]) -> Optional[str]:
    # site-relative paths only
    if value and value.startswith("/") and not value.startswith("//"):
        return value
    return None


def require_cms_access() -> Member:
    member = current_member()
    if member is None:
        abort(redirect(url_for("login", BackURL=request.path)))
    if not member.has_permission(CMS_ACCESS):
        abort(status.HTTP_403_FORBIDDEN, "You do not have access to the CMS.")
    return member


@app.context_processor
def inject_globals():
    return {"security_id": security_token(), "member": current_member()}


######################################################################
# Public site
######################################################################
@app.route("/", methods=["GET"])
def index():
    """Root URL response: the home page, or a list of top level pages"""
    page = Page.find_by_link("/")
    if page is not None and page.published:
        return render_template("page.html", page=page, menu=Page.find_top_level()), status.HTTP_200_OK
    return render_template("index.html", menu=Page.find_top_level()), status.HTTP_200_OK


@app.route("/<path:path>", methods=["GET"])
def show_page(path: str):
    """Render a page found by its URL segments"""
    app.logger.info("Request for page [%s]", path)
    page = Page.find_by_link(path)
    if page is None:
        abort(status.HTTP_404_NOT_FOUND, f"Page '{path}' was not found.")
    if not page.published:
        member = current_member()
        if member is None or not member.has_permission(VIEW_ALL):
            abort(status.HTTP_404_NOT_FOUND, f"Page '{path}' is not published.")
    return render_template("page.html", page=page, menu=Page.find_top_level()), status.HTTP_200_OK


######################################################################
# Security
######################################################################
@app.route("/Security/login", methods=["GET", "POST"])
def login():
    """Show the login form, or log a member in"""
    back_url = _safe_back_url(request.values.get("BackURL"))
    if request.method == "GET":
        return render_template("login.html", back_url=back_url), status.HTTP_200_OK

    check_security_token()
    email = request.form.get("Email", "").strip()
    app.logger.info("Login attempt for %s", email)
    member = Member.authenticate(email, request.form.get("Password", ""))
    if member is None:
        return (
            render_template(
                "login.html",
                back_url=back_url,
                email=email,
                error="The provided details don't seem to be correct. Please try again.",
            ),
            status.HTTP_200_OK,
        )

    session["member_id"] = member.id
    session["SecurityID"] = secrets.token_hex(16)
    flash(f"Welcome Back, {member.first_name or member.email}", "good")
    return redirect(back_url or url_for("admin"))


@app.route("/Security/logout/", methods=["GET", "POST"])
def logout():
    """Show the logout confirmation form, or log the member out"""
    if request.method == "GET":
        return render_template("logout.html"), status.HTTP_200_OK

    check_security_token()
    app.logger.info("Logging out member %s", session.get("member_id"))
    session.clear()
    flash("You have been logged out", "good")
    return redirect(url_for("login"))


######################################################################
# Admin area
######################################################################
@app.route("/admin/", methods=["GET"])
def admin():
    """List every page in the site tree"""
    require_cms_access()
    pages = Page.query.order_by(Page.parent_id.is_not(None), Page.id).all()
    return render_template("admin.html", pages=pages), status.HTTP_200_OK


@app.route("/admin/pages/new", methods=["GET", "POST"])
def create_page():
    """Add a new page"""
    require_cms_access()
    page = Page(title="", url_segment="", content="", published=False)
    if request.method == "GET":
        return render_template("edit_page.html", page=page), status.HTTP_200_OK

    check_security_token()
    try:
        page.deserialize(request.form)
    except DataValidationError as error:
        return render_template("edit_page.html", page=page, error=str(error)), status.HTTP_400_BAD_REQUEST
    page.create()
    flash("Saved", "good")
    return redirect(url_for("edit_page", page_id=page.id))


@app.route("/admin/pages/<int:page_id>", methods=["GET", "POST"])
def edit_page(page_id: int):
    """Show or save the edit form of a page"""
    require_cms_access()
    page = Page.find(page_id)
    if page is None:
        abort(status.HTTP_404_NOT_FOUND, f"Page with id '{page_id}' was not found.")
    if request.method == "GET":
        return render_template("edit_page.html", page=page), status.HTTP_200_OK

    check_security_token()
    app.logger.info("Saving page [%s]", page_id)
    try:
        page.deserialize(request.form)
    except DataValidationError as error:
        return render_template("edit_page.html", page=page, error=str(error)), status.HTTP_400_BAD_REQUEST
    page.update()
    flash("Saved", "good")
    return redirect(url_for("edit_page", page_id=page.id))


@app.route("/admin/pages/<int:page_id>/delete", methods=["POST"])
def delete_page(page_id: int):
    """Delete a page (and, through the cascade, its children)"""
    require_cms_access()
    check_security_token()
    page = Page.find(page_id)
    if page is not None:
        title = page.title
        page.delete()
        flash(f"Deleted '{title}'", "good")
    return redirect(url_for("admin"))
