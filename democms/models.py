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
Models for the demo CMS

Members log in and belong to Groups; Groups hold Permission codes. Pages
form a tree through parent_id and are addressed by their URL segments.
Files live in Folders under the asset store.

All of the models can be used with:

    create()  -- insert and commit
    update()  -- commit pending changes
    delete()  -- remove and commit
    all() / find(id)
"""

import logging
import re
from typing import Dict, List, Optional, Union

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger("flask.app")

# SQLAlchemy handle; bound to the app in democms/__init__.py
db = SQLAlchemy()


class DataValidationError(Exception):
    """Used for data validation errors when saving a form"""


class DatabaseError(Exception):
    """Used for database operation failures (commit/connection/constraint errors)."""


def slugify(text: Optional[str]) -> str:
    """'About Us!' -> 'about-us'"""
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
    return slug or "new-page"


######################################################################
#  P E R S I S T E N T   B A S E   M O D E L
######################################################################
class PersistentBase:
    """Base class added persistent methods"""


    def create(self):
        """Creates this record in the database"""
        logger.info("Creating %s", self)
        self.id = None  # make sure id is None so SQLAlchemy will assign one
        try:
            db.session.add(self)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error("Error creating record: %s", self)
            raise DatabaseError(e) from e

    def update(self):
        """Updates this record in the database"""
        logger.info("Saving %s", self)
        if not self.id:
            raise DataValidationError("Field 'id' is required for update")
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error("Error updating record: %s", self)
            raise DatabaseError(e) from e

    def delete(self):
        """Removes this record from the data store"""
        logger.info("Deleting %s", self)
        try:
            db.session.delete(self)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error("Error deleting record: %s", self)
            raise DatabaseError(e) from e

    @classmethod
    def all(cls) -> list:
        """Returns all of the records in the database"""
        logger.info("Processing all %s records", cls.__name__)
        return list(cls.query.all())

    @classmethod
    def find(cls, by_id: Union[int, str]):
        """Finds a record by its ID (single object or None)"""
        logger.info("Processing %s lookup for id %s ...", cls.__name__, by_id)
        try:
            pid = int(by_id)
        except (TypeError, ValueError):
            return None
        return db.session.get(cls, pid)


member_groups = db.Table(
    "member_groups",
    db.Column("member_id", db.Integer, db.ForeignKey("member.id", ondelete="CASCADE"), primary_key=True),
    db.Column("group_id", db.Integer, db.ForeignKey("group.id", ondelete="CASCADE"), primary_key=True),
)


######################################################################
#  P E R M I S S I O N
######################################################################
class Permission(db.Model, PersistentBase):
    """
    A permission code granted to a Group
    """

    # code -> human readable name
    CODES: Dict[str, str] = {
        "ADMIN": "Full administrative rights",
        "CMS_ACCESS_CMSMain": "Access to 'Pages' section",
        "CMS_ACCESS_AssetAdmin": "Access to 'Files' section",
        "SITETREE_VIEW_ALL": "View any page",
        "SITETREE_EDIT_ALL": "Edit any page",
    }

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(63), nullable=False)
    group_id = db.Column(db.Integer, db.ForeignKey("group.id", ondelete="CASCADE"), nullable=False)
    group = db.relationship("Group", back_populates="permissions")

    def __repr__(self):
        return f"<Permission {self.code} id=[{self.id}]>"

    @classmethod
    def catalogue(cls) -> Dict[str, str]:
        return dict(cls.CODES)

    @classmethod
    def grant(cls, group: "Group", code: str) -> "Permission":
        """Give ``group`` the ``code`` permission unless it already has it"""
        for permission in group.permissions:
            if permission.code == code:
                return permission
        logger.info("Granting %s to group %s", code, group.title)
        permission = cls(code=code)
        group.permissions.append(permission)
        return permission


######################################################################
#  G R O U P
######################################################################
class Group(db.Model, PersistentBase):
    """
    A security group of Members
    """

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(127), nullable=False, unique=True)
    description = db.Column(db.Text)
    members = db.relationship("Member", secondary=member_groups, back_populates="groups")
    permissions = db.relationship("Permission", back_populates="group", cascade="all, delete-orphan")

    field_labels = {"title": "Title", "description": "Description"}

    def __repr__(self):
        return f"<Group {self.title} id=[{self.id}]>"

    def codes(self) -> List[str]:
        return [permission.code for permission in self.permissions]

    @classmethod
    def find_by_title(cls, title: str) -> Optional["Group"]:
        logger.info("Processing title query for %s ...", title)
        return cls.query.filter(cls.title == title).first()


######################################################################
#  M E M B E R
######################################################################
class Member(db.Model, PersistentBase):
    """
    Class that represents a Member who can log in
    """

    ##################################################
    # Table Schema
    ##################################################
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    first_name = db.Column(db.String(63))
    surname = db.Column(db.String(63))
    password_hash = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)
    last_updated = db.Column(db.DateTime, default=db.func.now(), onupdate=db.func.now(), nullable=False)
    groups = db.relationship("Group", secondary=member_groups, back_populates="members")

    field_labels = {
        "email": "Email",
        "first_name": "FirstName",
        "surname": "Surname",
        "password": "Password",
    }

    def __repr__(self):
        return f"<Member {self.email} id=[{self.id}]>"

    @property
    def password(self):
        """Passwords are write-only; only the hash is stored"""
        return None

    @password.setter
    def password(self, value: str):
        self.set_password(value)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def name(self) -> str:
        return " ".join(part for part in (self.first_name, self.surname) if part)

    def has_permission(self, code: str) -> bool:
        """True if any of the member's groups holds ``code`` (ADMIN implies everything)"""
        for group in self.groups:
            codes = group.codes()
            if "ADMIN" in codes or code in codes:
                return True
        return False

    @classmethod
    def find_by_email(cls, email: str) -> Optional["Member"]:
        logger.info("Processing email query for %s ...", email)
        return cls.query.filter(cls.email == email).first()

    @classmethod
    def authenticate(cls, email: str, password: str) -> Optional["Member"]:
        member = cls.find_by_email(email)
        if member is None or not member.check_password(password):
            logger.warning("Failed login for %s", email)
            return None
        return member

    @classmethod
    def require_default_records(cls, email: str = "admin", password: str = "password"):
        """Make sure an administrator can log in"""
        group = Group.find_by_title("Administrators")
        if group is None:
            group = Group(title="Administrators")
            db.session.add(group)
        Permission.grant(group, "ADMIN")

        member = cls.find_by_email(email)
        if member is None:
            logger.info("Creating default administrator %s", email)
            member = cls(email=email, first_name="Default Admin")
            member.set_password(password)
            db.session.add(member)
        if group not in member.groups:
            member.groups.append(group)
        db.session.commit()


######################################################################
#  P A G E
######################################################################
class Page(db.Model, PersistentBase):
    """
    A page in the site tree
    """

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    url_segment = db.Column(
        db.String(255),
        nullable=False,
        default=lambda ctx: slugify(ctx.get_current_parameters().get("title")),
    )
    content = db.Column(db.Text, default="")
    published = db.Column(db.Boolean, nullable=False, default=False)
    parent_id = db.Column(db.Integer, db.ForeignKey("page.id", ondelete="CASCADE"))
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)
    last_updated = db.Column(db.DateTime, default=db.func.now(), onupdate=db.func.now(), nullable=False)
    parent = db.relationship("Page", remote_side=[id], back_populates="children")
    children = db.relationship("Page", back_populates="parent", cascade="all, delete")

    field_labels = {"title": "Title", "url_segment": "URL", "content": "Content"}

    def __repr__(self):
        return f"<Page {self.title} id=[{self.id}]>"

    def relative_link(self) -> str:
        """Site-relative URL built from the URL segments up the tree"""
        if self.parent_id is None and self.url_segment == "home":
            return "/"
        segments = []
        page = self
        while page is not None:
            segments.append(page.url_segment)
            page = page.parent
        return "/" + "/".join(reversed(segments)) + "/"

    def deserialize(self, data: dict):
        """Update the page from a submitted edit form"""
        title = (data.get("Title") or "").strip()
        if not title:
            raise DataValidationError("Field 'Title' is required")
        self.title = title
        self.url_segment = slugify(data.get("URL") or title)
        self.content = data.get("Content", "")
        self.published = bool(data.get("Published"))
        return self

    @classmethod
    def find_by_link(cls, path: str) -> Optional["Page"]:
        """Walk the tree along the segments of ``path``"""
        segments = [segment for segment in path.strip("/").split("/") if segment]
        if not segments:
            segments = ["home"]
        page = None
        for segment in segments:
            parent_id = page.id if page is not None else None
            page = cls.query.filter(cls.url_segment == segment, cls.parent_id == parent_id).first()
            if page is None:
                return None
        return page

    @classmethod
    def find_top_level(cls, published_only: bool = True) -> List["Page"]:
        query = cls.query.filter(cls.parent_id.is_(None))
        if published_only:
            query = query.filter(cls.published.is_(True))
        return list(query.order_by(cls.id).all())

    @classmethod
    def require_default_records(cls):
        """An empty site gets Home, About Us and Contact Us"""
        if cls.query.first() is not None:
            return
        logger.info("Creating default pages")
        for title, segment in (("Home", "home"), ("About Us", "about-us"), ("Contact Us", "contact-us")):
            db.session.add(cls(title=title, url_segment=segment, content=f"<p>{title}</p>", published=True))
        db.session.commit()


######################################################################
#  A S S E T S
######################################################################
class Folder(db.Model, PersistentBase):
    """A folder in the asset store"""

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    parent_id = db.Column(db.Integer, db.ForeignKey("folder.id", ondelete="CASCADE"))
    files = db.relationship("File", back_populates="folder")

    def __repr__(self):
        return f"<Folder {self.name} id=[{self.id}]>"


class File(db.Model, PersistentBase):
    """A file in the asset store, identified by its path and content hash"""

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    filename = db.Column(db.String(1024), nullable=False)
    file_hash = db.Column(db.String(40))
    parent_id = db.Column(db.Integer, db.ForeignKey("folder.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)
    last_updated = db.Column(db.DateTime, default=db.func.now(), onupdate=db.func.now(), nullable=False)
    folder = db.relationship("Folder", back_populates="files")

    field_labels = {"name": "Name", "filename": "Filename"}

    def __repr__(self):
        return f"<File {self.filename} id=[{self.id}]>"

    def relative_link(self) -> str:
        return f"/assets/{self.filename}"
