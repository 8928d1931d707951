import datetime
import uuid

from sqlalchemy import TypeDecorator, String
from sqlalchemy.orm import declarative_base


class UUIDChar(TypeDecorator):
    """
    Stores UUIDs as 36-character strings so the same models work on SQLite
    and PostgreSQL, while Python code always sees `uuid.UUID` values.
    """
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, str):
            try:
                return str(uuid.UUID(value))
            except ValueError:
                raise ValueError(f"Invalid UUID string: {value}")
        raise TypeError(f"Expected UUID or string, got {type(value)}")

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            return uuid.UUID(value)
        return value


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


# Shared Base for all models
Base = declarative_base()
