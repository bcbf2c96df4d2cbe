"""Engine construction for database steps."""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine
from sqlalchemy.pool import NullPool

DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"


def to_sqlalchemy_url(
    connection_string: str,
    *,
    odbc_driver: str = DEFAULT_ODBC_DRIVER,
) -> str | URL:
    """Map a connection descriptor to something ``create_engine`` accepts.

    Strings with a scheme (``dialect+driver://...``) are SQLAlchemy URLs and
    pass through. Anything else is an ODBC style ``Key=Value;`` string for SQL
    Server, sent verbatim through ``odbc_connect``.
    """

    stripped = connection_string.strip()
    if not stripped:
        raise ValueError("Connection string is empty.")
    if "://" in stripped:
        return stripped

    if "driver=" not in stripped.lower():
        stripped = f"Driver={{{odbc_driver}}};{stripped}"
    return URL.create("mssql+pyodbc", query={"odbc_connect": stripped})


def build_engine(
    connection_string: str,
    *,
    command_timeout_seconds: int,
    odbc_driver: str = DEFAULT_ODBC_DRIVER,
) -> Engine:
    """Build a single-use engine; every step opens and closes its own connection."""

    engine = create_engine(
        to_sqlalchemy_url(connection_string, odbc_driver=odbc_driver),
        poolclass=NullPool,
    )
    if engine.dialect.driver == "pyodbc":
        event.listen(
            engine,
            "connect",
            lambda dbapi_connection, _: _apply_command_timeout(
                dbapi_connection,
                command_timeout_seconds=command_timeout_seconds,
            ),
        )
    return engine


def _apply_command_timeout(dbapi_connection, *, command_timeout_seconds: int) -> None:
    # pyodbc applies Connection.timeout to every statement on the connection
    dbapi_connection.timeout = max(1, command_timeout_seconds)
