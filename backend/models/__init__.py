from .base import Base, async_engine, async_session_factory, create_tables, get_db
from .image import ImageRecord
from .api_key import ApiKeyRecord

__all__ = [
    "Base",
    "async_engine",
    "async_session_factory",
    "create_tables",
    "get_db",
    "ImageRecord",
    "ApiKeyRecord",
]
