# catalog_app/models/base.py

from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _utcnow():
    return datetime.now(timezone.utc)


class BaseModel(db.Model):
    """Abstract base carrying audit timestamps shared by every table."""

    __abstract__ = True

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


def is_blank(value):
    """Blank in the spreadsheet sense: missing, empty text, empty collection or False."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


class AttributeAssignmentMixin:
    """
    Bulk attribute helpers used by the importer.

    Unknown attribute names are ignored so one defaults table can serve products,
    variants and inventory overrides alike.
    """

    ATTRIBUTE_ALIASES: dict = {}

    def _resolve_attribute(self, name):
        name = self.ATTRIBUTE_ALIASES.get(name, name)
        column_keys = {column.key for column in self.__table__.columns}
        if name in column_keys:
            return self, name
        return None, None

    def has_import_attribute(self, name):
        target, _ = self._resolve_attribute(name)
        return target is not None

    def read_attribute(self, name):
        target, resolved = self._resolve_attribute(name)
        if target is None:
            return None
        return getattr(target, resolved)

    def write_attribute(self, name, value):
        target, resolved = self._resolve_attribute(name)
        if target is None:
            return False
        setattr(target, resolved, value)
        return True

    def assign_attributes(self, values):
        for name, value in values.items():
            self.write_attribute(name, value)
        return self
