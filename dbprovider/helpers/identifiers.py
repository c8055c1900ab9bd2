"""
SQL identifier quoting.

Every statement that embeds a caller-supplied table name goes through
`quote_identifier`, so the escaping rule lives in one place.
"""

from typing import Iterable, List, Optional


def quote_identifier(name: str) -> str:
    """
    Quote `name` as a PostgreSQL identifier.

    Embedded double quotes are doubled and the result is wrapped in double
    quotes, so the name is used verbatim (case and all).

    >>> quote_identifier('a"b')
    '"a""b"'
    """
    return '"' + name.replace('"', '""') + '"'


def quote_identifiers(names: Iterable[str]) -> List[str]:
    """Quote each name, preserving input order."""
    return [quote_identifier(name) for name in names]


def build_truncate_statement(table_names: Iterable[str]) -> Optional[str]:
    """
    One `TRUNCATE` emptying every table, restarting identities and cascading
    to referencing tables. None when there is nothing to truncate.
    """
    quoted = quote_identifiers(table_names)
    if not quoted:
        return None
    return f"TRUNCATE TABLE {', '.join(quoted)} RESTART IDENTITY CASCADE;"
