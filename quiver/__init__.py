"""
Quiver - generic resource controllers over pluggable persistence drivers.

One controller implements show, index, create, update and delete for any
configured resource kind:

- Config: Immutable per-resource descriptors, layered YAML/.env/env loading
- Drivers: relational-orm, document-odm and content-repository-odm backends
- Resolver: Declarative repository operations
- Manager: Transactional writes with lifecycle events and flash feedback
- Authz: Role-based action gate with attribute voters
- Views: Structured (API) or rendered (Jinja2) responses
- Faults: Typed errors with stable codes and HTTP statuses
"""

__version__ = "0.1.0"

from .config import ACTIONS, ResourceConfigLoader, ResourceConfiguration
from .request import ResourceRequest
from .response import Response

from .faults import (
    AccessDeniedFault,
    ConfigFault,
    ConfigInvalidFault,
    DriverNotFoundFault,
    Fault,
    FaultDomain,
    OperationNotAllowedFault,
    PersistenceFault,
    ResourceNotFoundFault,
    Severity,
    ValidationFault,
)

from .drivers import (
    DRIVER_CONTENT_REPOSITORY_ODM,
    DRIVER_DOCUMENT_ODM,
    DRIVER_RELATIONAL_ORM,
    ContentRepositoryDriver,
    DocumentDriver,
    Driver,
    DriverSelector,
    RelationalDriver,
    ResourceMetadata,
    SQLiteDatabase,
    select_driver,
)

from .pagination import ListAdapter, Paginator, PaginatorAdapter
from .resolver import (
    CreateNew,
    CreatePaginator,
    FindBy,
    FindOneBy,
    OperationResolver,
    operation_from_name,
)

from .events import EventDispatcher, LifecycleEvent, Phase
from .flash import DefaultTranslator, FlashHelper
from .manager import DomainManager

from .authz import AuthorizationGate, Decision, ResourceSubject, RoleHierarchyChecker, owner_only
from .forms import FormField, FormRegistry, MaxLengthValidator, MinLengthValidator, ResourceForm
from .redirect import RedirectHandler, RouteMap
from .templates import Jinja2Renderer
from .views import View, ViewHandler, fault_to_response, serialize

from .contracts import AuthorizationChecker, Form, FormFactory, Renderer, Router, Serializer, Session, Translator
from .controller import ResourceController
from .registry import ResourceRegistry

__all__ = [
    "__version__",
    # Config
    "ACTIONS",
    "ResourceConfiguration",
    "ResourceConfigLoader",
    # Request / response
    "ResourceRequest",
    "Response",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigFault",
    "ConfigInvalidFault",
    "DriverNotFoundFault",
    "OperationNotAllowedFault",
    "ResourceNotFoundFault",
    "ValidationFault",
    "PersistenceFault",
    "AccessDeniedFault",
    # Drivers
    "Driver",
    "ResourceMetadata",
    "DriverSelector",
    "select_driver",
    "RelationalDriver",
    "DocumentDriver",
    "ContentRepositoryDriver",
    "SQLiteDatabase",
    "DRIVER_RELATIONAL_ORM",
    "DRIVER_DOCUMENT_ODM",
    "DRIVER_CONTENT_REPOSITORY_ODM",
    # Pagination / operations
    "Paginator",
    "PaginatorAdapter",
    "ListAdapter",
    "CreateNew",
    "FindOneBy",
    "FindBy",
    "CreatePaginator",
    "OperationResolver",
    "operation_from_name",
    # Writes
    "Phase",
    "LifecycleEvent",
    "EventDispatcher",
    "FlashHelper",
    "DefaultTranslator",
    "DomainManager",
    # Collaborators
    "AuthorizationGate",
    "Decision",
    "ResourceSubject",
    "RoleHierarchyChecker",
    "owner_only",
    "FormField",
    "ResourceForm",
    "FormRegistry",
    "MaxLengthValidator",
    "MinLengthValidator",
    "RouteMap",
    "RedirectHandler",
    "Jinja2Renderer",
    "View",
    "ViewHandler",
    "serialize",
    "fault_to_response",
    # Protocols
    "Form",
    "FormFactory",
    "AuthorizationChecker",
    "Renderer",
    "Router",
    "Translator",
    "Serializer",
    "Session",
    # Orchestration
    "ResourceController",
    "ResourceRegistry",
]
