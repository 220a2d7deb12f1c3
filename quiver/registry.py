"""
Resource Registry - wires configured resource kinds to drivers and
builds per-request controllers.

Drivers are selected when a resource is registered, so an unknown
driver kind or a bad model path fails at startup rather than on the
first request.

Usage:
    loader = ResourceConfigLoader.load(paths=["config/resources.yaml"])
    registry = ResourceRegistry.from_loader(loader)

    controller = registry.controller(
        "app.article",
        checker=checker,
        form_factory=forms,
        renderer=renderer,
        router=routes,
        session=request.session,
    )
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, MutableMapping, Optional

from .authz import AuthorizationGate
from .config import ResourceConfigLoader, ResourceConfiguration
from .controller import ResourceController
from .drivers import DRIVER_DOCUMENT_ODM, Driver, DriverSelector, ResourceMetadata
from .events import EventDispatcher
from .faults import ConfigInvalidFault
from .flash import FlashHelper
from .manager import DomainManager
from .redirect import RedirectHandler
from .views import ViewHandler

logger = logging.getLogger("quiver.registry")

__all__ = ["ResourceRegistry", "RegisteredResource", "import_model"]


def import_model(path: str) -> type:
    """Import ``package.module:Class`` (or ``package.module.Class``)."""
    if ":" in path:
        module_name, _, attr = path.partition(":")
    else:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ConfigInvalidFault("model", f"expected 'module:Class', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigInvalidFault("model", f"cannot import module {module_name!r}: {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigInvalidFault("model", f"module {module_name!r} has no attribute {attr!r}") from exc


@dataclass
class RegisteredResource:
    config: ResourceConfiguration
    driver: Driver


class ResourceRegistry:
    """
    Named resource kinds with their configuration and driver.

    One ``EventDispatcher`` is shared by every resource; handlers filter
    by resource name.
    """

    def __init__(
        self,
        selector: Optional[DriverSelector] = None,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        self.selector = selector or DriverSelector()
        self.dispatcher = dispatcher or EventDispatcher()
        self._resources: Dict[str, RegisteredResource] = {}

    @classmethod
    def from_loader(
        cls,
        loader: ResourceConfigLoader,
        selector: Optional[DriverSelector] = None,
        dispatcher: Optional[EventDispatcher] = None,
        options: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> "ResourceRegistry":
        """
        Register every resource under ``quiver.resources``.

        ``options`` supplies runtime driver options per resource name
        (a shared ``SQLiteDatabase``, for example) that cannot live in
        YAML.
        """
        registry = cls(selector, dispatcher)
        for name, data in loader.resources().items():
            data = data or {}
            model = data.get("model")
            if not model:
                raise ConfigInvalidFault(f"{name}.model", "a model class path is required")
            registry.register(
                name,
                loader.configuration(name),
                driver=data.get("driver", DRIVER_DOCUMENT_ODM),
                model=import_model(model) if isinstance(model, str) else model,
                options={**(data.get("options") or {}), **((options or {}).get(name) or {})},
            )
        return registry

    def register(
        self,
        name: str,
        config: Any,
        *,
        driver: str = DRIVER_DOCUMENT_ODM,
        model: type,
        options: Optional[Mapping[str, Any]] = None,
    ) -> RegisteredResource:
        """
        Register one resource kind.

        ``config`` is a ``ResourceConfiguration`` or its raw settings.

        Raises:
            DriverNotFoundFault: ``driver`` names no known driver kind
        """
        if not isinstance(config, ResourceConfiguration):
            config = ResourceConfiguration.from_dict(name, config or {})
        if name in self._resources:
            logger.warning(f"Resource '{name}' registered twice, replacing")

        metadata = ResourceMetadata(
            name=config.resource_name,
            model=model,
            plural=config.plural_name,
            options=dict(options or {}),
        )
        entry = RegisteredResource(config, self.selector.select(driver, metadata))
        self._resources[name] = entry
        logger.info(f"Registered resource '{name}' ({driver})")
        return entry

    def get(self, name: str) -> RegisteredResource:
        try:
            return self._resources[name]
        except KeyError:
            raise ConfigInvalidFault(name, "resource is not registered") from None

    def __contains__(self, name: str) -> bool:
        return name in self._resources

    def __iter__(self) -> Iterator[str]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def controller(
        self,
        name: str,
        *,
        checker: Any = None,
        form_factory: Any = None,
        renderer: Any = None,
        router: Any = None,
        session: Optional[MutableMapping[str, Any]] = None,
        serializer: Optional[Callable[[Any], Any]] = None,
        translator: Any = None,
    ) -> ResourceController:
        """Build a controller for one request."""
        entry = self.get(name)
        config, driver = entry.config, entry.driver
        return ResourceController(
            config,
            driver,
            manager=DomainManager(
                driver,
                self.dispatcher,
                FlashHelper(config, session, translator),
                config,
            ),
            gate=AuthorizationGate(config, checker),
            view_handler=ViewHandler(config, renderer, serializer),
            redirect_handler=RedirectHandler(config, router),
            form_factory=form_factory,
        )
