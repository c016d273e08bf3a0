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
Fixture store

Creates records in the host application's database from Gherkin phrases
and remembers them by the symbolic name used in the feature file, so a
later step can say ``the "page" "About us"`` and get the same row back.

Records are built through factory_boy's SQLAlchemyModelFactory, one factory
per model, committed on the host's Flask-SQLAlchemy session. Hosts can
register richer factories (or before-create callbacks) with define().

The host models are found by role ("member", "group", "permission", "file",
"folder"); by default a role maps to the model class of the same name.
"""

import hashlib
import logging
import os
import re
import shutil
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from dateutil import parser as dateparser
from factory.alchemy import SQLAlchemyModelFactory
from sqlalchemy import inspect, update

from uisteps.transforms import resolve_datetime

logger = logging.getLogger("uisteps")

TRUTHY = {"1", "true", "yes", "on", "y"}
TIMESTAMP_COLUMNS = {"created": "created_at", "last edited": "last_updated"}
NATURAL_KEYS = ("name", "title")


######################################################################
# Model helpers
######################################################################
def model_classes(db) -> List[type]:
    """All mapped classes of the host's declarative base."""
    return [mapper.class_ for mapper in db.Model.registry.mappers]


def primary_key(obj) -> Any:
    identity = inspect(obj).identity
    return identity[0] if identity else None


def singular_name(model: type) -> str:
    """Human name of a model: its ``singular_name`` or the spaced class name."""
    name = getattr(model, "singular_name", None)
    if name:
        return name
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", model.__name__)


def coerce_value(model: type, key: str, value: Any) -> Any:
    """Convert a string from a feature file into the column's Python type."""
    if not isinstance(value, str):
        return value
    columns = inspect(model).columns
    if key not in columns:
        return value
    try:
        python_type = columns[key].type.python_type
    except NotImplementedError:
        return value
    if python_type is bool:
        return value.strip().lower() in TRUTHY
    if python_type is int:
        return int(value)
    if python_type is float:
        return float(value)
    if python_type is datetime:
        return dateparser.parse(value)
    if python_type is date:
        return dateparser.parse(value).date()
    return value


def lookup_column(model: type) -> str:
    """Column a related record is found by: ``name``, ``title``, else the primary key."""
    mapper = inspect(model)
    for key in NATURAL_KEYS:
        if key in mapper.columns:
            return key
    return mapper.primary_key[0].key


######################################################################
# F I X T U R E   F A C T O R Y
######################################################################
class FixtureFactory:
    """Creates records and tracks them by (model, identifier)"""

    def __init__(self, db):
        self.db = db
        self._factories: Dict[type, type] = {}
        self._callbacks: Dict[type, List[Callable]] = {}
        self._ids: Dict[type, Dict[str, Any]] = {}

    def define(self, model: type, factory_class: Optional[type] = None, before_create: Optional[Callable] = None):
        """Register a factory class and/or a before-create callback for a model.

        ``before_create(identifier, data)`` may fill in ``data`` in place.
        """
        if factory_class is not None:
            self._factories[model] = factory_class
        if before_create is not None:
            self._callbacks.setdefault(model, []).append(before_create)

    def factory_for(self, model: type) -> type:
        if model not in self._factories:
            meta = type(
                "Meta",
                (),
                {
                    "model": model,
                    "sqlalchemy_session": self.db.session,
                    "sqlalchemy_session_persistence": "commit",
                },
            )
            self._factories[model] = type(f"{model.__name__}Fixture", (SQLAlchemyModelFactory,), {"Meta": meta})
        return self._factories[model]

    def create_object(self, model: type, identifier: str, data: Optional[dict] = None):
        """Create and commit a record, remembering it as ``identifier``."""
        data = dict(data or {})
        if "title" in inspect(model).columns and "title" not in data:
            data["title"] = identifier
        for callback in self._callbacks.get(model, []):
            callback(identifier, data)
        for key in list(data):
            if not hasattr(model, key):
                raise ValueError(f'Field "{key}" does not exist on {model.__name__}')
            data[key] = coerce_value(model, key, data[key])

        logger.info("Creating %s fixture %r", model.__name__, identifier)
        obj = self.factory_for(model).create(**data)
        self.remember(model, identifier, obj)
        return obj

    def remember(self, model: type, identifier: str, obj):
        self._ids.setdefault(model, {})[identifier] = primary_key(obj)

    def get(self, model: type, identifier: str):
        pk = self._ids.get(model, {}).get(identifier)
        if pk is None:
            return None
        return self.db.session.get(model, pk)

    def get_id(self, model, identifier: str):
        """Id of a fixture; ``model`` may be a class or a class name."""
        if isinstance(model, str):
            matches = [cls for cls in self._ids if cls.__name__.lower() == model.lower()]
            if not matches:
                return None
            model = matches[0]
        return self._ids.get(model, {}).get(identifier)

    def clear(self):
        self._ids.clear()


######################################################################
# F I X T U R E   S T O R E
######################################################################
class FixtureStore:
    """Natural-language fixture operations used by the fixture and login steps"""

    def __init__(self, db, files_path: str, assets_path: str, models: Optional[Dict[str, type]] = None):
        if not files_path:
            raise ValueError("files_path is required")
        self.db = db
        self.files_path = files_path
        self.assets_path = assets_path
        self.models = dict(models or {})
        self.factory = FixtureFactory(db)
        self.created_assets: List[str] = []

        member = self.role("member", required=False)
        if member is not None:
            self.factory.define(member, before_create=_default_member_fields)

    ##################################################
    # Type and field resolution
    ##################################################
    def role(self, name: str, required: bool = True) -> Optional[type]:
        """The host model playing ``name`` (member, group, permission, file, folder)."""
        model = self.models.get(name)
        if model is None:
            for cls in model_classes(self.db):
                if cls.__name__.lower() == name.lower():
                    model = cls
                    break
        if model is None and required:
            raise ValueError(f'No model is registered for "{name}"')
        return model

    def convert_type_to_class(self, type_name: str) -> type:
        """Map "redirector page" to the RedirectorPage model (or a singular_name match)."""
        type_name = type_name.strip()
        class_name = "".join(word[:1].upper() + word[1:] for word in type_name.split())
        classes = model_classes(self.db)
        for cls in classes:
            if cls.__name__ == class_name:
                return cls
        for cls in classes:
            if singular_name(cls).lower() == type_name.lower():
                return cls
        raise ValueError(f'Class "{class_name}" does not exist, or is not a model')

    @staticmethod
    def convert_fields(model: type, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Replace field label aliases (``Model.field_labels``) with column names."""
        labels = getattr(model, "field_labels", {}) or {}
        by_label = {label: column for column, label in labels.items()}
        return {by_label.get(key, key): value for key, value in fields.items()}

    ##################################################
    # Records
    ##################################################
    def create_record(self, type_name: str, identifier: str):
        model = self.convert_type_to_class(type_name)
        return self._create(model, identifier, {})

    def create_or_update(self, type_name: str, identifier: str, fields: Dict[str, Any]):
        """Create the fixture, or merge ``fields`` into it when it already exists."""
        model = self.convert_type_to_class(type_name)
        fields = self.convert_fields(model, fields)
        existing = self.factory.get(model, identifier)
        if existing is None:
            return self._create(model, identifier, fields)

        for key, value in fields.items():
            if not hasattr(model, key):
                raise ValueError(f'Field "{key}" does not exist on {model.__name__}')
            setattr(existing, key, coerce_value(model, key, value))
        self.db.session.commit()
        return existing

    def get_or_create(self, model: type, identifier: str, fields: Optional[Dict[str, Any]] = None):
        obj = self.factory.get(model, identifier)
        if obj is None:
            obj = self._create(model, identifier, fields or {})
        return obj

    def get_record(self, type_name: str, identifier: str):
        model = self.convert_type_to_class(type_name)
        obj = self.factory.get(model, identifier)
        if obj is None:
            raise ValueError(f'Can not find record "{type_name}" with identifier "{identifier}"')
        return obj

    def update_relation(self, type_name: str, identifier: str, relation: str, relation_type: str, relation_id: str):
        """Make a record the parent or child of another one (via ``parent_id``)."""
        if relation not in ("parent", "child"):
            raise ValueError(f'Invalid relation "{relation}"')
        model = self.convert_type_to_class(type_name)
        relation_model = self.convert_type_to_class(relation_type)
        child_model = model if relation == "child" else relation_model
        if not hasattr(child_model, "parent_id"):
            raise ValueError(f"{child_model.__name__} records have no parent")
        related = self.get_or_create(relation_model, relation_id)

        if relation == "child":
            obj = self.factory.get(model, identifier)
            if obj is None:
                obj = self._create(model, identifier, {"parent_id": primary_key(related)})
            else:
                obj.parent_id = primary_key(related)
        else:
            obj = self.get_or_create(model, identifier)
            related.parent_id = primary_key(obj)
        self.db.session.commit()
        return obj

    def assign(self, type_name: str, value: str, relation_type: str, relation_id: str, relation_name: Optional[str] = None):
        """Attach a ``type_name`` record called ``value`` to another fixture.

        Collection relationships are preferred over many-to-one ones; a
        ``relation_name`` picks a specific relationship.
        """
        model = self.convert_type_to_class(type_name)
        relation_model = self.convert_type_to_class(relation_type)
        related = self.get_or_create(relation_model, relation_id)

        candidates = [rel for rel in inspect(relation_model).relationships if rel.mapper.class_ is model]
        if relation_name:
            candidates = [rel for rel in candidates if rel.key == relation_name] or candidates
        candidates.sort(key=lambda rel: not rel.uselist)
        if not candidates:
            raise ValueError(f"'{relation_model.__name__}' has no relationship with '{model.__name__}'!")
        relationship = candidates[0]

        obj = self.factory.get(model, value)
        if obj is None:
            field = lookup_column(model)
            if field in NATURAL_KEYS:
                obj = self.db.session.query(model).filter(getattr(model, field) == value).first()
            elif value.isdigit():
                obj = self.db.session.get(model, int(value))
            if obj is None:
                obj = self._create(model, value, {field: value} if field in NATURAL_KEYS else {})

        if relationship.uselist:
            collection = getattr(related, relationship.key)
            if obj not in collection:
                collection.append(obj)
        else:
            setattr(related, relationship.key, obj)
        self.db.session.commit()
        return obj

    def update_state(self, type_name: str, identifier: str, state: str):
        obj = self.get_record(type_name, identifier)
        if state == "deleted":
            self.db.session.delete(obj)
        elif state in ("published", "not published", "unpublished"):
            if not hasattr(obj, "published"):
                raise ValueError(f'"{type_name}" records cannot be published')
            obj.published = state == "published"
        else:
            raise ValueError(f'Invalid state: "{state}"')
        self.db.session.commit()

    def set_timestamp(self, type_name: str, identifier: str, which: str, expr: str):
        """Create a fixture whose created / last edited time is backdated to ``expr``."""
        model = self.convert_type_to_class(type_name)
        column = TIMESTAMP_COLUMNS[which]
        if not hasattr(model, column):
            raise ValueError(f"{model.__name__} has no {column} column")
        obj = self._create(model, identifier, {})
        pk = inspect(model).primary_key[0]
        self.db.session.execute(
            update(model).where(pk == primary_key(obj)).values({column: resolve_datetime(expr)})
        )
        self.db.session.commit()
        self.db.session.refresh(obj)
        return obj

    def link_for(self, type_name: str, identifier: str) -> str:
        """Site-relative URL of a fixture, from its ``relative_link()``."""
        model = self.convert_type_to_class(type_name)
        obj = self.factory.get(model, identifier)
        if obj is None:
            raise ValueError(f'Cannot resolve reference "{identifier}", no matching fixture found')
        if not callable(getattr(obj, "relative_link", None)):
            raise ValueError("URL for record cannot be determined, missing relative_link() method")
        return obj.relative_link()

    ##################################################
    # Members, groups and permissions
    ##################################################
    def member_in_group(self, identifier: str, group_identifier: str, fields: Optional[Dict[str, Any]] = None):
        member_model = self.role("member")
        group = self.get_or_create(self.role("group"), group_identifier)
        member = self.get_or_create(member_model, identifier, self.convert_fields(member_model, fields or {}))
        if group not in member.groups:
            member.groups.append(group)
        self.db.session.commit()
        return member

    def group_with_permissions(self, identifier: str, permissions: List[str]):
        """Grant permissions given by code or by their human-readable name."""
        permission_model = self.role("permission")
        group = self.get_or_create(self.role("group"), identifier)
        catalogue = permission_model.catalogue()
        for wanted in permissions:
            codes = [code for code, name in catalogue.items() if wanted in (code, name)]
            if not codes:
                raise ValueError(f'No permission found for "{wanted}"')
            for code in codes:
                permission_model.grant(group, code)
        self.db.session.commit()
        return group

    def member_with_permission(self, email: str, password: str, code: str):
        """Get or create a member in a "<code> group" that holds ``code``."""
        group_model = self.role("group")
        member_model = self.role("member")
        group = self.db.session.query(group_model).filter_by(title=f"{code} group").first()
        if group is None:
            group = group_model(title=f"{code} group")
            self.db.session.add(group)
        self.role("permission").grant(group, code)

        member = self.db.session.query(member_model).filter_by(email=email).first()
        if member is None:
            member = member_model(email=email)
            self.db.session.add(member)
        member.first_name = code
        member.surname = "User"
        member.set_password(password)
        if group not in member.groups:
            member.groups.append(group)
        self.db.session.commit()
        return member

    def find_member(self, email: str):
        return self.db.session.query(self.role("member")).filter_by(email=email).first()

    ##################################################
    # Assets
    ##################################################
    def _create(self, model: type, identifier: str, data: Dict[str, Any]):
        folder_model = self.role("folder", required=False)
        file_model = self.role("file", required=False)
        if folder_model is not None and model is folder_model:
            folder = self.find_or_make_folder(data.get("filename") or identifier)
            self.factory.remember(model, identifier, folder)
            return folder
        if file_model is not None and model is file_model:
            data = self.prepare_file(identifier, data)
        return self.factory.create_object(model, identifier, data)

    def _relative_asset_path(self, path: str) -> str:
        return re.sub(r"^assets/?", "", path).strip("/")

    def find_or_make_folder(self, path: str):
        folder_model = self.role("folder")
        parent = None
        for name in self._relative_asset_path(path).split("/"):
            parent_id = primary_key(parent) if parent is not None else None
            folder = self.db.session.query(folder_model).filter_by(name=name, parent_id=parent_id).first()
            if folder is None:
                folder = folder_model(name=name, parent_id=parent_id)
                self.db.session.add(folder)
                self.db.session.commit()
            parent = folder
        os.makedirs(os.path.join(self.assets_path, self._relative_asset_path(path)), exist_ok=True)
        return parent

    def prepare_file(self, identifier: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Copy the fixture's source file into the asset store and describe it."""
        relative = self._relative_asset_path(data.get("filename") or identifier)
        source = os.path.join(self.files_path, os.path.basename(relative))
        if not os.path.isfile(source):
            raise ValueError(f'Source file for "{relative}" cannot be found in "{source}"')

        data = dict(data)
        if "/" in relative:
            data["parent_id"] = primary_key(self.find_or_make_folder(os.path.dirname(relative)))
        target = os.path.join(self.assets_path, relative)
        os.makedirs(os.path.dirname(target) or ".", exist_ok=True)
        shutil.copyfile(source, target)
        self.created_assets.append(target)

        data["filename"] = relative
        data["file_hash"] = file_hash(target)
        data.setdefault("name", os.path.basename(relative))
        return data

    def file_exists(self, filename: str, hash_prefix: str) -> bool:
        target = os.path.join(self.assets_path, self._relative_asset_path(filename))
        return os.path.isfile(target) and file_hash(target).startswith(hash_prefix.lower())

    ##################################################
    # Lifecycle
    ##################################################
    def reset(self):
        """Delete every row, forget every fixture and remove written assets."""
        logger.info("Resetting fixture data")
        self.db.session.rollback()
        for table in reversed(self.db.metadata.sorted_tables):
            self.db.session.execute(table.delete())
        self.db.session.commit()
        self.factory.clear()
        for path in self.created_assets:
            if os.path.isfile(path):
                os.remove(path)
        self.created_assets = []

    def require_default_records(self):
        for cls in model_classes(self.db):
            hook = getattr(cls, "require_default_records", None)
            if callable(hook):
                hook()
        self.db.session.commit()

    def clean_assets(self):
        """Remove the whole asset directory (``@assets`` scenarios)."""
        file_model = self.role("file", required=False)
        if file_model is not None:
            self.db.session.query(file_model).delete()
            self.db.session.commit()
        shutil.rmtree(self.assets_path, ignore_errors=True)


def file_hash(path: str) -> str:
    digest = hashlib.sha1()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()[:10]


def _default_member_fields(identifier: str, data: dict):
    """Members need an email; "Jane Doe" gets jane.doe@example.org unless one is given."""
    data.setdefault("first_name", identifier)
    if not data.get("email"):
        local_part = re.sub(r"[^a-z0-9]+", ".", identifier.lower()).strip(".") or "member"
        data["email"] = f"{local_part}@example.org"
