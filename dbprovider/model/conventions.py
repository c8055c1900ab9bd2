"""
Model Conventions (SQLAlchemy 2.0)
==================================

Schema-level conventions a provider applies while the host builds its model.

Contents
--------
- `to_snake_case`
    Deterministic mapping from domain identifiers (``UserId``, ``HTTPServer``)
    to schema identifiers (``user_id``, ``http_server``).
- `SnakeCaseNamingConvention`
    Table/column name mapping plus constraint name templates for
    ``MetaData(naming_convention=...)``.
- `SnakeCaseTableMixin`
    Declarative mixin deriving ``__tablename__`` from the class name.
- `UtcDateTime` / `apply_utc_datetime_default`
    Treat every timestamp column declared without a timezone as UTC.
"""

import re
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import declared_attr
from sqlalchemy.types import TypeDecorator

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[\s\-]+")


def to_snake_case(identifier: str) -> str:
    """
    Convert an identifier to snake_case.

    >>> to_snake_case("UserId")
    'user_id'
    >>> to_snake_case("HTTPServer")
    'http_server'
    >>> to_snake_case("already_snake")
    'already_snake'
    """
    name = _SEPARATORS.sub("_", identifier.strip())
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    name = _WORD_BOUNDARY.sub(r"\1_\2", name)
    return re.sub(r"_+", "_", name).lower()


class SnakeCaseNamingConvention:
    """
    Snake-case naming for tables, columns and constraints.

    Constraint templates follow SQLAlchemy's ``naming_convention`` tokens so
    generated DDL gets deterministic names (``pk_user_account``, ...).
    """

    constraint_names: Dict[str, str] = {
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }

    def table_name(self, name: str) -> str:
        return to_snake_case(name)

    def column_name(self, name: str) -> str:
        return to_snake_case(name)

    def create_metadata(self, schema: Optional[str] = None) -> MetaData:
        """Fresh `MetaData` carrying the constraint naming templates."""
        return MetaData(schema=schema, naming_convention=dict(self.constraint_names))


class SnakeCaseTableMixin:
    """Declarative mixin: ``class UserAccount(Base, SnakeCaseTableMixin)`` maps to ``user_account``."""

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return to_snake_case(cls.__name__)


class UtcDateTime(TypeDecorator):
    """
    `DateTime` column whose naive values are UTC.

    - Values read back are tagged with ``timezone.utc``.
    - Aware values written are converted to UTC and stored naive.
    - Naive values written are assumed to already be UTC.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def apply_utc_datetime_default(metadata: MetaData) -> int:
    """
    Swap `UtcDateTime` into every timezone-naive `DateTime` column.

    Columns declared with ``DateTime(timezone=True)`` and columns already using
    `UtcDateTime` are left alone.

    Parameters
    ----------
    metadata : MetaData
        Model metadata the host is building.

    Returns
    -------
    int
        Number of columns changed.
    """
    changed = 0
    for table in metadata.tables.values():
        for column in table.columns:
            column_type = column.type
            if isinstance(column_type, UtcDateTime):
                continue
            if isinstance(column_type, DateTime) and not column_type.timezone:
                column.type = UtcDateTime()
                changed += 1
    return changed
