"""
Quiver Drivers - driver selection.

Maps a declared driver kind to the class that builds it. Selection runs
at wiring time, so a misspelled kind fails before any request is served.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from ..faults import DriverNotFoundFault
from .base import Driver, ResourceMetadata
from .content import ContentRepositoryDriver
from .document import DocumentDriver
from .relational import RelationalDriver

logger = logging.getLogger("quiver.drivers.selector")

__all__ = [
    "DRIVER_RELATIONAL_ORM",
    "DRIVER_DOCUMENT_ODM",
    "DRIVER_CONTENT_REPOSITORY_ODM",
    "DriverSelector",
    "select_driver",
]

DRIVER_RELATIONAL_ORM = "relational-orm"
DRIVER_DOCUMENT_ODM = "document-odm"
DRIVER_CONTENT_REPOSITORY_ODM = "content-repository-odm"

DriverBuilder = Callable[..., Driver]


class DriverSelector:
    """
    Registry of driver builders keyed by kind.

    Usage:
        selector = DriverSelector()
        driver = selector.select("document-odm", ResourceMetadata("article", Article))

        selector.register("redis-odm", RedisDriver)
    """

    def __init__(self, builders: Optional[Dict[str, DriverBuilder]] = None):
        self._builders: Dict[str, DriverBuilder] = {
            DRIVER_RELATIONAL_ORM: RelationalDriver,
            DRIVER_DOCUMENT_ODM: DocumentDriver,
            DRIVER_CONTENT_REPOSITORY_ODM: ContentRepositoryDriver,
        }
        if builders:
            self._builders.update(builders)

    def register(self, kind: str, builder: DriverBuilder) -> None:
        self._builders[kind] = builder

    def supports(self, kind: str) -> bool:
        return kind in self._builders

    @property
    def kinds(self) -> list[str]:
        return sorted(self._builders)

    def select(self, kind: str, metadata: ResourceMetadata, **options: Any) -> Driver:
        """
        Build the driver for ``kind`` bound to ``metadata``.

        Raises:
            DriverNotFoundFault: no builder is registered for ``kind``
        """
        builder = self._builders.get(kind)
        if builder is None:
            raise DriverNotFoundFault(kind, metadata={"supported": self.kinds})
        driver = builder(metadata, **options)
        logger.debug(f"Selected {kind} driver for resource '{metadata.name}'")
        return driver


_default_selector = DriverSelector()


def select_driver(kind: str, metadata: ResourceMetadata, **options: Any) -> Driver:
    """Select using the default builders."""
    return _default_selector.select(kind, metadata, **options)
