"""
Flash messages - one-time user feedback stored in the session.

Messages are translated from a key such as ``quiver.resource.create``
with ``%resource%`` interpolated from the resource name, and consumed
on first read.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

from .config import ResourceConfiguration

logger = logging.getLogger("quiver.flash")

__all__ = ["DefaultTranslator", "FlashHelper", "FLASH_KEY"]

FLASH_KEY = "_flash_messages"

DEFAULT_MESSAGES = {
    "quiver.resource.create": "%resource% has been successfully created.",
    "quiver.resource.update": "%resource% has been successfully updated.",
    "quiver.resource.delete": "%resource% has been successfully deleted.",
}


class DefaultTranslator:
    """
    Catalog lookup with ``%param%`` substitution.

    Unknown keys are returned as-is (after substitution), the usual
    translator fallback.
    """

    def __init__(self, messages: Optional[Mapping[str, str]] = None):
        self.messages = {**DEFAULT_MESSAGES, **(messages or {})}

    def trans(self, key: str, parameters: Optional[Mapping[str, Any]] = None, domain: str = "flashes") -> str:
        text = self.messages.get(key, key)
        for name, value in (parameters or {}).items():
            text = text.replace(name, str(value))
        return text


class FlashHelper:
    """
    Records flash messages for one resource kind.

    Without a session, messages are dropped with a warning; feedback is
    never a reason to fail a write.
    """

    def __init__(
        self,
        config: ResourceConfiguration,
        session: Optional[MutableMapping[str, Any]] = None,
        translator: Any = None,
    ):
        self.config = config
        self.session = session
        self.translator = translator or DefaultTranslator()

    def set_flash(self, type: str, event: str, parameters: Optional[Mapping[str, Any]] = None) -> None:
        """
        Record a message of severity ``type``.

        ``event`` is either a full message key or a short action name
        (``create``) expanded to ``quiver.resource.<action>``.
        """
        key = event if "." in event else f"quiver.resource.{event}"
        message = self.translator.trans(
            key,
            {"%resource%": self.config.humanized_name, **(parameters or {})},
            "flashes",
        )
        if self.session is None:
            logger.warning(f"Dropped flash message without session: {message}")
            return
        self.session.setdefault(FLASH_KEY, []).append({"type": type, "message": message})

    def get_messages(self) -> List[Dict[str, str]]:
        """Get and consume flash messages."""
        if self.session is None:
            return []
        return self.session.pop(FLASH_KEY, [])

    def peek_messages(self) -> List[Dict[str, str]]:
        if self.session is None:
            return []
        return list(self.session.get(FLASH_KEY, []))
