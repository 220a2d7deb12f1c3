"""
Resource Controller - one implementation of show/index/create/update/delete
for any resource kind.

Every action follows the same shape:

    authorize -> resolve / bind -> write through the domain manager -> respond

Collaborators are injected once through the constructor; the controller
holds no framework state. Instances are meant to be built per request
(see ``ResourceRegistry.controller``) so the flash session is the
request's own.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Mapping, Optional

from .authz import AuthorizationGate, ResourceSubject
from .config import ACTIONS, ResourceConfiguration
from .faults import PersistenceFault, ResourceNotFoundFault
from .manager import DomainManager
from .redirect import RedirectHandler
from .resolver import CreateNew, CreatePaginator, FindBy, FindOneBy, OperationResolver
from .response import Response
from .views import View, ViewHandler

logger = logging.getLogger("quiver.controller")

__all__ = ["ResourceController"]

NON_FIELD_ERRORS = "__all__"


class ResourceController:
    """
    Generic resource controller.

    Args:
        config: Resource configuration
        driver: Persistence driver for the resource kind
        manager: Domain manager wrapping writes
        gate: Authorization gate
        view_handler: Structured/rendered response composer
        redirect_handler: Redirect composer
        form_factory: ``create(form_type, resource)`` collaborator
        resolver: Operation resolver

    Example:
        controller = registry.controller("app.article", checker=checker, ...)
        response = await controller.show(ResourceRequest(attributes={"slug": "hello-world"}))
    """

    def __init__(
        self,
        config: ResourceConfiguration,
        driver: Any,
        *,
        manager: DomainManager,
        gate: AuthorizationGate,
        view_handler: ViewHandler,
        redirect_handler: RedirectHandler,
        form_factory: Any = None,
        resolver: Optional[OperationResolver] = None,
    ):
        self.config = config
        self.driver = driver
        self.manager = manager
        self.gate = gate
        self.view_handler = view_handler
        self.redirect_handler = redirect_handler
        self.form_factory = form_factory
        self.resolver = resolver or OperationResolver()

    def __repr__(self) -> str:
        return f"<ResourceController {self.config.service_name('controller')}>"

    # ── Actions ──────────────────────────────────────────────────────

    async def dispatch(self, action: str, request: Any) -> Response:
        """Run one of the five actions by name."""
        if action not in ACTIONS:
            raise ValueError(f"Unknown resource action: {action!r}")
        logger.debug(f"Dispatching {action} for {self.config.resource_name}")
        return await getattr(self, action)(request)

    async def show(self, request: Any) -> Response:
        self.is_granted_or_403("show", self.subject(request))
        resource = await self.find_or_404(request)
        self._authorize_object("show", resource)

        view = View(
            data=resource,
            template=self.config.template("show"),
            template_var=self.config.resource_name,
        )
        return self.view_handler.handle(view, request)

    async def index(self, request: Any) -> Response:
        self.is_granted_or_403("index")

        criteria = self.config.get_criteria()
        sorting = self.config.get_sorting()

        if self.config.is_paginated():
            resources = await self.resolver.resolve(self.driver, CreatePaginator(criteria, sorting))
            resources.set_current_page(request.page, True, True)
            resources.set_max_per_page(self.config.pagination_max_per_page)
            await resources.fetch()
        else:
            resources = await self.resolver.resolve(
                self.driver, FindBy(criteria, sorting, self.config.limit)
            )

        view = View(
            data=resources,
            template=self.config.template("index"),
            template_var=self.config.plural_name,
        )
        return self.view_handler.handle(view, request)

    async def create(self, request: Any) -> Response:
        self.is_granted_or_403("create")

        resource = await self.create_new()
        form = self.get_form(resource)
        status = 200

        if request.is_method("POST"):
            valid, _ = form.bind(request)
            if valid:
                try:
                    created = await self.manager.create(resource)
                except PersistenceFault as fault:
                    form.add_error(NON_FIELD_ERRORS, fault.message)
                    status = fault.status
                else:
                    return self._after_create(created, request)
            else:
                status = 400

        return self._form_view("create", resource, form, status, request)

    async def update(self, request: Any) -> Response:
        self.is_granted_or_403("update", self.subject(request))

        resource = await self.find_or_404(request)
        self._authorize_object("update", resource)
        form = self.get_form(resource)
        status = 200

        if request.is_method("PUT", "PATCH", "POST"):
            valid, _ = form.bind(request)
            if valid:
                try:
                    updated = await self.manager.update(resource)
                except PersistenceFault as fault:
                    form.add_error(NON_FIELD_ERRORS, fault.message)
                    status = fault.status
                else:
                    return self._after_update(updated, resource, request)
            else:
                status = 400

        return self._form_view("update", resource, form, status, request)

    async def delete(self, request: Any) -> Response:
        self.is_granted_or_403("delete", self.subject(request))

        resource = await self.find_or_404(request)
        self._authorize_object("delete", resource)

        # drivers may clear the identifier on removal
        captured = copy.copy(resource)
        deleted = await self.manager.delete(resource)

        if self.config.is_api_request(request):
            if deleted is None:
                return self._stopped_response("delete")
            return Response.empty(204)
        return self.redirect_handler.redirect_to_index(captured, request)

    # ── Helpers ──────────────────────────────────────────────────────

    async def create_new(self) -> Any:
        return await self.resolver.resolve(self.driver, CreateNew())

    def get_form(self, resource: Any = None) -> Any:
        if self.form_factory is None:
            raise RuntimeError(f"No form factory configured for {self.config.resource_name}")
        return self.form_factory.create(self.config.form_type, resource)

    def lookup_criteria(self, request: Any, criteria: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Slug when the route carries one, id otherwise, plus configured criteria."""
        # route attributes only; a submitted body may carry a new slug
        attributes = getattr(request, "attributes", None)
        param = attributes.get if attributes is not None else request.get
        slug = param("slug")
        default = {"slug": slug} if slug else {"id": param("id")}
        return self.config.get_criteria({**default, **(criteria or {})})

    def subject(self, request: Any, criteria: Optional[Mapping[str, Any]] = None) -> ResourceSubject:
        return ResourceSubject(self.config.resource_name, self.lookup_criteria(request, criteria))

    async def find(self, request: Any, criteria: Optional[Mapping[str, Any]] = None) -> Optional[Any]:
        return await self.resolver.resolve(
            self.driver, FindOneBy(self.lookup_criteria(request, criteria))
        )

    async def find_or_404(self, request: Any, criteria: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Raises:
            ResourceNotFoundFault: nothing matches the lookup criteria
        """
        resource = await self.find(request, criteria)
        if resource is None:
            logger.debug(f"No {self.config.resource_name} matches the lookup")
            raise ResourceNotFoundFault(
                self.config.humanized_name, self.lookup_criteria(request, criteria)
            )
        return resource

    def is_granted_or_403(self, action: str, subject: Any = None) -> None:
        self.gate.authorize_or_fail(action, subject)

    def _authorize_object(self, action: str, resource: Any) -> None:
        if self.config.object_authorization:
            self.gate.authorize_or_fail(action, resource)

    def _form_view(self, action: str, resource: Any, form: Any, status: int, request: Any) -> Response:
        if self.config.is_api_request(request):
            return self.view_handler.handle(View(form=form, status=status), request)

        view = View(
            data={self.config.resource_name: resource, "form": form},
            template=self.config.template(action),
            form=form,
            status=200 if status == 400 else status,
        )
        return self.view_handler.handle(view, request)

    def _after_create(self, created: Optional[Any], request: Any) -> Response:
        if self.config.is_api_request(request):
            if created is None:
                return self._stopped_response("create")
            return self.view_handler.handle(View(data=created, status=201), request)
        if created is None:
            return self.redirect_handler.redirect_to_index(request=request)
        return self.redirect_handler.redirect_to(created, request)

    def _after_update(self, updated: Optional[Any], resource: Any, request: Any) -> Response:
        if self.config.is_api_request(request):
            if updated is None:
                return self._stopped_response("update")
            return self.view_handler.handle(View(data=updated), request)
        return self.redirect_handler.redirect_to(resource, request)

    def _stopped_response(self, action: str) -> Response:
        return Response.json(
            {
                "code": "ACTION_STOPPED",
                "message": f"{self.config.humanized_name} {action} was stopped by a lifecycle handler",
                "messages": self.manager.flash_helper.peek_messages(),
            },
            status=409,
        )
