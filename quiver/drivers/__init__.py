"""
Quiver persistence drivers.

- relational-orm          -> RelationalDriver (aiosqlite)
- document-odm            -> DocumentDriver (in-process collection)
- content-repository-odm  -> ContentRepositoryDriver (path-keyed nodes)
"""

from .base import (
    ConcurrentModificationError,
    Driver,
    DriverError,
    DuplicateKeyError,
    ResourceMetadata,
)
from .content import ContentRepositoryDriver
from .document import DocumentDriver
from .relational import RelationalDriver
from .selector import (
    DRIVER_CONTENT_REPOSITORY_ODM,
    DRIVER_DOCUMENT_ODM,
    DRIVER_RELATIONAL_ORM,
    DriverSelector,
    select_driver,
)
from .sqlite import SQLiteDatabase

__all__ = [
    "Driver",
    "DriverError",
    "DuplicateKeyError",
    "ConcurrentModificationError",
    "ResourceMetadata",
    "DocumentDriver",
    "ContentRepositoryDriver",
    "RelationalDriver",
    "SQLiteDatabase",
    "DriverSelector",
    "select_driver",
    "DRIVER_RELATIONAL_ORM",
    "DRIVER_DOCUMENT_ODM",
    "DRIVER_CONTENT_REPOSITORY_ODM",
]
