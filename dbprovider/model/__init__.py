"""
The `model` package holds the schema conventions providers apply while the
host builds its SQLAlchemy model.

Contents
--------
- conventions
    - `to_snake_case` / `SnakeCaseNamingConvention` / `SnakeCaseTableMixin`: deterministic snake_case schema names and constraint name templates
    - `UtcDateTime` / `apply_utc_datetime_default`: timestamp columns without a timezone are read and written as UTC
"""

from .conventions import (
    SnakeCaseNamingConvention,
    SnakeCaseTableMixin,
    UtcDateTime,
    apply_utc_datetime_default,
    to_snake_case,
)
