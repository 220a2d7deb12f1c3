"""
Domain Manager - transactional create/update/delete with lifecycle
events and flash feedback.

Each write runs as:

    BEGIN
      dispatch pre_<action>          (stopped -> no write, return None)
      driver.<action>(resource)      (failure -> PersistenceFault, ROLLBACK)
      dispatch post_<action>
    COMMIT                           (conflict -> PersistenceFault)
    flash success

The transaction covers exactly one write and its event dispatch and is
closed before the caller composes a response.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from .config import ResourceConfiguration
from .drivers.base import DriverError
from .events import EventDispatcher, LifecycleEvent, Phase
from .faults import Fault, PersistenceFault
from .flash import FlashHelper

logger = logging.getLogger("quiver.manager")

__all__ = ["DomainManager"]

_PHASES = {
    "create": (Phase.PRE_CREATE, Phase.POST_CREATE),
    "update": (Phase.PRE_UPDATE, Phase.POST_UPDATE),
    "delete": (Phase.PRE_DELETE, Phase.POST_DELETE),
}


class DomainManager:
    """
    Wraps driver writes for one resource kind.

    Args:
        driver: Persistence driver for the resource
        dispatcher: Lifecycle event dispatcher
        flash_helper: Feedback recorder
        config: Resource configuration
    """

    def __init__(
        self,
        driver: Any,
        dispatcher: EventDispatcher,
        flash_helper: FlashHelper,
        config: ResourceConfiguration,
    ):
        self.driver = driver
        self.dispatcher = dispatcher
        self.flash_helper = flash_helper
        self.config = config

    async def create(self, resource: Any) -> Optional[Any]:
        """Persist a new resource; ``None`` when a pre-create handler vetoed it."""
        return await self._write("create", self.driver.create, resource)

    async def update(self, resource: Any) -> Optional[Any]:
        """Persist changes; ``None`` when a pre-update handler vetoed them."""
        return await self._write("update", self.driver.update, resource)

    async def delete(self, resource: Any) -> Optional[Any]:
        """Remove a resource; ``None`` when a pre-delete handler vetoed it."""
        return await self._write("delete", self.driver.delete, resource)

    async def _write(
        self,
        action: str,
        operation: Callable[[Any], Awaitable[Any]],
        resource: Any,
    ) -> Optional[Any]:
        pre, post = _PHASES[action]
        name = self.config.resource_name

        try:
            async with self.driver.transaction():
                event = await self.dispatcher.dispatch(pre, resource, name)
                if event.is_stopped():
                    self._record_stop(event)
                    return None

                try:
                    result = await operation(resource)
                except Fault:
                    raise
                except Exception as exc:
                    raise self._persistence_fault(action, exc) from exc

                if action != "delete" and result is not None:
                    resource = result

                await self.dispatcher.dispatch(post, resource, name)
        except DriverError as exc:
            # raised by the commit itself
            raise self._persistence_fault(action, exc) from exc

        self.flash_helper.set_flash("success", action)
        return resource

    def _persistence_fault(self, action: str, exc: Exception) -> PersistenceFault:
        name = self.config.resource_name
        logger.error(f"{action} of {name} failed: {exc}")
        return PersistenceFault(name, action, str(exc))

    def _record_stop(self, event: LifecycleEvent) -> None:
        logger.info(f"{event.phase.value} of {event.resource_name} stopped, nothing persisted")
        if event.message:
            self.flash_helper.set_flash(event.message_type, event.message, event.message_parameters)
