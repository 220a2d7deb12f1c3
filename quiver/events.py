"""
Quiver Lifecycle Events - pre/post create, update and delete hooks.

Handlers are registered per phase, optionally filtered by resource name,
and run in priority order (lower first). A pre-phase handler can veto
the write by stopping the event; later handlers are then skipped.

Usage:
    from quiver.events import EventDispatcher, Phase

    dispatcher = EventDispatcher()

    @dispatcher.listen(Phase.PRE_CREATE, resource="article")
    async def reject_drafts(event):
        if event.resource.title.startswith("DRAFT"):
            event.stop("quiver.article.draft_rejected")

    @dispatcher.listen(Phase.POST_DELETE)
    def audit(event):
        log.info("deleted %s", event.resource.id)
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger("quiver.events")

__all__ = [
    "Phase",
    "LifecycleEvent",
    "EventDispatcher",
]


class Phase(str, Enum):
    """Lifecycle phases around domain writes."""

    PRE_CREATE = "pre_create"
    POST_CREATE = "post_create"
    PRE_UPDATE = "pre_update"
    POST_UPDATE = "post_update"
    PRE_DELETE = "pre_delete"
    POST_DELETE = "post_delete"

    @property
    def is_pre(self) -> bool:
        return self.value.startswith("pre_")


@dataclass
class LifecycleEvent:
    """
    Event passed to handlers.

    Attributes:
        phase: Lifecycle phase being dispatched
        resource: The resource instance being written
        resource_name: Name of the resource kind
        stopped: Set by ``stop()``; vetoes the write in pre phases
        message: Flash message key recorded when stopped
        message_type: Flash severity for the stop message
        message_parameters: Extra interpolation parameters
    """

    phase: Phase
    resource: Any
    resource_name: str
    stopped: bool = False
    message: Optional[str] = None
    message_type: str = "error"
    message_parameters: Dict[str, Any] = field(default_factory=dict)

    def stop(
        self,
        message: Optional[str] = None,
        message_type: str = "error",
        parameters: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.stopped = True
        self.message = message
        self.message_type = message_type
        self.message_parameters = dict(parameters or {})

    def is_stopped(self) -> bool:
        return self.stopped

    @property
    def name(self) -> str:
        return f"{self.resource_name}.{self.phase.value}"


# (handler, resource filter, priority)
_Entry = Tuple[Callable, Optional[str], int]


class EventDispatcher:
    """
    Ordered handler lists per lifecycle phase.

    Handlers may be sync or async callables taking the event. Exceptions
    raised by a handler propagate to the caller, so a failing pre-create
    handler aborts the surrounding transaction.
    """

    def __init__(self):
        self._handlers: Dict[Phase, List[_Entry]] = {phase: [] for phase in Phase}

    def listen(
        self,
        phase: Phase,
        handler: Optional[Callable] = None,
        *,
        resource: Optional[str] = None,
        priority: int = 100,
    ):
        """
        Register a handler. Can be used as a decorator.

        Args:
            phase: Lifecycle phase
            handler: Callable receiving the ``LifecycleEvent``
            resource: Only run for this resource name
            priority: Lower values run first (default: 100)
        """
        phase = Phase(phase)

        def _decorator(fn: Callable) -> Callable:
            self._add(phase, fn, resource, priority)
            return fn

        if handler is not None:
            return _decorator(handler)
        return _decorator

    def _add(self, phase: Phase, fn: Callable, resource: Optional[str], priority: int) -> None:
        entries = self._handlers[phase]
        for existing, existing_resource, _ in entries:
            if existing is fn and existing_resource == resource:
                return
        entries.append((fn, resource, priority))
        # stable sort keeps registration order for equal priorities
        entries.sort(key=lambda entry: entry[2])

    def remove(self, phase: Phase, handler: Callable) -> bool:
        entries = self._handlers[Phase(phase)]
        for i, (fn, _, _) in enumerate(entries):
            if fn is handler:
                entries.pop(i)
                return True
        return False

    def handlers(self, phase: Phase, resource: Optional[str] = None) -> List[Callable]:
        return [
            fn for fn, only, _ in self._handlers[Phase(phase)]
            if only is None or resource is None or only == resource
        ]

    def has_listeners(self, phase: Phase, resource: Optional[str] = None) -> bool:
        return bool(self.handlers(phase, resource))

    async def dispatch(self, phase: Phase, resource: Any, resource_name: str) -> LifecycleEvent:
        """
        Run handlers for ``phase`` and return the event.

        Dispatch stops at the first handler that stops the event.
        """
        event = LifecycleEvent(phase=Phase(phase), resource=resource, resource_name=resource_name)
        for handler in self.handlers(phase, resource_name):
            result = handler(event)
            if inspect.isawaitable(result):
                await result
            if event.stopped:
                logger.info(
                    f"Event '{event.name}' stopped by {getattr(handler, '__name__', handler)!s}"
                )
                break
        return event

    def clear(self) -> None:
        """Remove all handlers (useful for testing)."""
        for entries in self._handlers.values():
            entries.clear()

    def __repr__(self) -> str:
        total = sum(len(entries) for entries in self._handlers.values())
        return f"<EventDispatcher handlers={total}>"
