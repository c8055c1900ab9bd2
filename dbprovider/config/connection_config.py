"""
Connection Config Builder
=========================

Purpose
-------
Turns the single `DATABASE_URL` environment variable (plus two optional pool
size overrides) into an immutable, fully specified `ConnectionConfig`.

Parsing rules
-------------
- `DATABASE_URL` must be present, non-blank and an absolute URL with a host.
- Port defaults to 5432 when the URL names none.
- Database name is the URL path with its leading `/` characters removed.
- User info is split on the first `:`; both parts are trimmed and
  percent-decoded. Missing parts become empty strings.
- `DATABASE_MAX_POOL_SIZE` / `DATABASE_MIN_POOL_SIZE` apply only when they are
  plain ASCII digits within the 32-bit range. Anything else silently keeps the
  default (20 / 0).
- Query options: `sslmode` (one of `SslMode`) and `trustservercertificate`
  (`true`/`false`), both case-insensitive. Unknown keys, malformed pairs and
  unparsable values are ignored.

No network access happens here.
"""

import ssl
from enum import Enum
from typing import Any, Dict, Mapping, Optional
from urllib.parse import unquote, urlsplit

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import URL

from dbprovider.config.config import (
    DATABASE_URL_VARIABLE,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_PORT,
    DatabaseEnvironment,
)
from dbprovider.exceptions import ConfigurationError

SSL_MODE_OPTION = "sslmode"
TRUST_SERVER_CERTIFICATE_OPTION = "trustservercertificate"

_INT32_MAX = 2**31 - 1


class SslMode(str, Enum):
    """SSL negotiation modes understood by PostgreSQL clients."""

    DISABLE = "disable"
    ALLOW = "allow"
    PREFER = "prefer"
    REQUIRE = "require"
    VERIFY_CA = "verify-ca"
    VERIFY_FULL = "verify-full"

    @classmethod
    def parse(cls, value: str) -> Optional["SslMode"]:
        """
        Case-insensitive lookup that also ignores `-` and `_`.

        Returns ``None`` when the value names no known mode, so that
        `verify-full`, `VerifyFull` and `VERIFY_FULL` all resolve to
        `SslMode.VERIFY_FULL` while `bogus` resolves to nothing.
        """
        normalized = _normalize_mode(value)
        for mode in cls:
            if _normalize_mode(mode.value) == normalized:
                return mode
        return None


def _normalize_mode(value: str) -> str:
    return value.strip().lower().replace("-", "").replace("_", "")


class ConnectionConfig(BaseModel):
    """
    Fully specified, immutable PostgreSQL connection configuration.

    Attributes
    ----------
    host : str
        Server host name or address. Empty when the URL has no authority
        (`postgresql:///mydb`), which leaves the choice to the driver.
    port : int
        Server port (5432 unless the URL names one).
    database : str
        Database name.
    username : str
        Login role (may be empty).
    password : str
        Password (may be empty). Hidden from `repr`.
    pooling_enabled : bool
        Always True.
    connect_timeout_seconds : int
        Time allowed to establish a connection.
    command_timeout_seconds : int
        Time allowed for a single statement.
    max_pool_size : int
        Upper bound of pooled connections.
    min_pool_size : int
        Lower bound of pooled connections.
    ssl_mode : SslMode | None
        Only set when the URL carries a recognized `sslmode`.
    trust_server_certificate : bool | None
        Only set when the URL carries a boolean `trustservercertificate`.
    """

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = DEFAULT_PORT
    database: str = ""
    username: str = ""
    password: str = Field("", repr=False)
    pooling_enabled: bool = True
    connect_timeout_seconds: int = DEFAULT_CONNECT_TIMEOUT
    command_timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT
    max_pool_size: int = DEFAULT_MAX_POOL_SIZE
    min_pool_size: int = DEFAULT_MIN_POOL_SIZE
    ssl_mode: Optional[SslMode] = None
    trust_server_certificate: Optional[bool] = None

    def to_parameters(self) -> Dict[str, Any]:
        """
        Backend key/value connection parameters, in a stable order.

        Optional SSL entries are present only when they were set.
        """
        parameters: Dict[str, Any] = {
            "Host": self.host,
            "Port": self.port,
            "Database": self.database,
            "Username": self.username,
            "Password": self.password,
            "Pooling": self.pooling_enabled,
            "Timeout": self.connect_timeout_seconds,
            "Command Timeout": self.command_timeout_seconds,
            "Maximum Pool Size": self.max_pool_size,
            "Minimum Pool Size": self.min_pool_size,
        }
        if self.ssl_mode is not None:
            parameters["SSL Mode"] = self.ssl_mode.value
        if self.trust_server_certificate is not None:
            parameters["Trust Server Certificate"] = self.trust_server_certificate
        return parameters

    def to_connection_string(self) -> str:
        """Render the parameters as a `Key=Value;` connection string."""
        return ";".join(
            f"{key}={_quote_value(value)}" for key, value in self.to_parameters().items()
        )

    def to_url(self, drivername: str = "postgresql+asyncpg") -> URL:
        """
        Build the SQLAlchemy URL for this configuration.

        Uses `URL.create(...)` so credentials never have to be re-escaped by
        hand. Timeouts and SSL travel separately in `to_connect_args()`.
        """
        return URL.create(
            drivername=drivername,
            username=self.username or None,
            password=self.password or None,
            host=self.host or None,
            port=self.port,
            database=self.database or None,
        )

    def to_connect_args(self) -> Dict[str, Any]:
        """
        Driver keyword arguments (asyncpg `connect()` signature).

        A trusted server certificate with ``sslmode=require`` becomes an
        `ssl.SSLContext` that skips certificate and host name verification.
        The verify modes keep their checks whatever the trust flag says.
        """
        connect_args: Dict[str, Any] = {
            "timeout": self.connect_timeout_seconds,
            "command_timeout": self.command_timeout_seconds,
        }
        if self.ssl_mode is None:
            return connect_args

        # asyncpg never verifies for prefer/allow, and may for require when a
        # root certificate is installed; only the latter needs the override.
        if self.trust_server_certificate and self.ssl_mode is SslMode.REQUIRE:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            connect_args["ssl"] = context
        else:
            connect_args["ssl"] = self.ssl_mode.value
        return connect_args


def _quote_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    needs_quotes = (
        any(char in text for char in ";='\"")
        or text != text.strip()
    )
    if not needs_quotes:
        return text
    if '"' not in text:
        return f'"{text}"'
    return "'" + text.replace("'", "''") + "'"


def parse_pool_size(raw: Optional[str], fallback: int) -> int:
    """
    Parse a pool size override.

    Only plain ASCII digits (no sign, whitespace or separators) within the
    32-bit signed range are accepted; anything else returns `fallback`.
    """
    if raw is None or not raw.isascii() or not raw.isdigit():
        return fallback
    value = int(raw)
    if value > _INT32_MAX:
        return fallback
    return value


def parse_bool(raw: str) -> Optional[bool]:
    """`true`/`false` in any case, surrounding whitespace allowed; else None."""
    normalized = raw.strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    return None


def parse_query_options(query: str) -> Dict[str, Optional[Any]]:
    """
    Extract the recognized options from a raw URL query string.

    Parameters
    ----------
    query : str
        Query string without the leading `?`.

    Returns
    -------
    dict
        `ssl_mode` and `trust_server_certificate` entries, each None unless
        a recognized value was found. Later occurrences win.
    """
    options: Dict[str, Optional[Any]] = {"ssl_mode": None, "trust_server_certificate": None}
    for pair in query.split("&"):
        if pair.count("=") != 1:
            continue
        raw_key, raw_value = pair.split("=")
        key = unquote(raw_key.strip()).strip()
        value = unquote(raw_value.strip()).strip()

        if key.lower() == SSL_MODE_OPTION:
            ssl_mode = SslMode.parse(value)
            if ssl_mode is not None:
                options["ssl_mode"] = ssl_mode

        if key.lower() == TRUST_SERVER_CERTIFICATE_OPTION:
            trust = parse_bool(value)
            if trust is not None:
                options["trust_server_certificate"] = trust
    return options


def _split_user_info(netloc: str):
    if "@" not in netloc:
        return "", ""
    user_info = netloc.rpartition("@")[0]
    parts = [part.strip() for part in user_info.split(":", 1)]
    username = unquote(parts[0])
    password = unquote(parts[1]) if len(parts) > 1 else ""
    return username, password


def build_connection_config(env: Optional[Mapping[str, str]] = None) -> ConnectionConfig:
    """
    Build the connection configuration from the environment.

    Parameters
    ----------
    env : Mapping[str, str] | None
        Environment snapshot. When None, the process environment (and `.env`)
        is read through `DatabaseEnvironment`.

    Returns
    -------
    ConnectionConfig

    Raises
    ------
    ConfigurationError
        If `DATABASE_URL` is absent, blank, has no scheme, or carries a
        malformed port.
    """
    settings = DatabaseEnvironment() if env is None else DatabaseEnvironment.from_mapping(env)

    database_url = settings.DATABASE_URL
    if database_url is None or not database_url.strip():
        raise ConfigurationError(
            f"{DATABASE_URL_VARIABLE} is required when using the PostgreSQL database provider."
        )

    invalid = ConfigurationError(f"{DATABASE_URL_VARIABLE} is not a valid absolute URI.")
    try:
        parts = urlsplit(database_url.strip())
        port = parts.port
    except ValueError as e:
        raise invalid from e
    if not parts.scheme:
        raise invalid

    username, password = _split_user_info(parts.netloc)
    options = parse_query_options(parts.query)

    return ConnectionConfig(
        host=parts.hostname or "",
        port=DEFAULT_PORT if port is None else port,
        database=parts.path.lstrip("/"),
        username=username,
        password=password,
        max_pool_size=parse_pool_size(settings.DATABASE_MAX_POOL_SIZE, DEFAULT_MAX_POOL_SIZE),
        min_pool_size=parse_pool_size(settings.DATABASE_MIN_POOL_SIZE, DEFAULT_MIN_POOL_SIZE),
        **options,
    )
