"""Database step execution against connection-string-addressed databases."""

from batch_runner.database.engine import build_engine, to_sqlalchemy_url
from batch_runner.database.executor import SqlExecutionError, SqlStepExecutor

__all__ = [
    "SqlExecutionError",
    "SqlStepExecutor",
    "build_engine",
    "to_sqlalchemy_url",
]
