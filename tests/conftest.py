"""
Shared test fixtures and helpers for the Quiver test suite.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import pytest

from quiver.authz import AuthorizationGate
from quiver.config import ACTIONS, ResourceConfiguration
from quiver.controller import ResourceController
from quiver.drivers import DocumentDriver, ResourceMetadata
from quiver.events import EventDispatcher
from quiver.flash import FlashHelper
from quiver.forms import FormField, FormRegistry, MaxLengthValidator
from quiver.manager import DomainManager
from quiver.redirect import RedirectHandler, RouteMap
from quiver.templates import Jinja2Renderer
from quiver.views import ViewHandler


# ============================================================================
# Models
# ============================================================================


@dataclass
class Article:
    id: Optional[str] = None
    title: str = ""
    slug: Optional[str] = None
    published: bool = False
    owner_id: Optional[int] = None


# ============================================================================
# Fakes
# ============================================================================


WRITES = ("create", "update", "delete")


class SpyDriver(DocumentDriver):
    """Document driver that records every repository call."""

    def __init__(self, metadata: ResourceMetadata, **options: Any):
        super().__init__(metadata, **options)
        self.calls: List[tuple] = []

    @property
    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    @property
    def writes(self) -> List[str]:
        return [name for name in self.call_names if name in WRITES]

    def create_new(self) -> Any:
        self.calls.append(("create_new", None))
        return super().create_new()

    async def find_one_by(self, criteria):
        self.calls.append(("find_one_by", dict(criteria)))
        return await super().find_one_by(criteria)

    async def find_by(self, criteria=None, sorting=None, limit=None, offset=0):
        self.calls.append(("find_by", dict(criteria or {})))
        return await super().find_by(criteria, sorting, limit, offset)

    async def count(self, criteria=None):
        self.calls.append(("count", dict(criteria or {})))
        return await super().count(criteria)

    def create_paginator(self, criteria=None, sorting=None):
        self.calls.append(("create_paginator", dict(criteria or {})))
        return super().create_paginator(criteria, sorting)

    async def create(self, resource):
        self.calls.append(("create", resource))
        return await super().create(resource)

    async def update(self, resource):
        self.calls.append(("update", resource))
        return await super().update(resource)

    async def delete(self, resource):
        self.calls.append(("delete", resource))
        return await super().delete(resource)


class RecordingChecker:
    """Grants a fixed set of roles and remembers what it was asked."""

    def __init__(self, granted: Iterable[str] = ()):
        self.granted = set(granted)
        self.calls: List[tuple] = []

    def is_granted(self, role: str, subject: Any = None) -> bool:
        self.calls.append((role, subject))
        return role in self.granted


# ============================================================================
# Article wiring
# ============================================================================


ALL_ROLES = {f"ROLE_ARTICLE_{action.upper()}" for action in ACTIONS}

FORM_ERRORS = (
    "{% for name, messages in form.errors.items() %}"
    "{{ name }}: {{ messages|join(', ') }}\n"
    "{% endfor %}"
)

TEMPLATES = {
    "article/show.html": "<h1>{{ article.title }}</h1>",
    "article/index.html": "{% for a in articles %}<li>{{ a.title }}</li>{% endfor %}",
    "article/create.html": "<form>new</form>" + FORM_ERRORS,
    "article/update.html": "<form>{{ article.title }}</form>" + FORM_ERRORS,
    "error/404.html": "Not found: {{ message }}",
}

ROUTES = {
    "app_article_show": "/articles/{id}",
    "app_article_index": "/articles",
}

ARTICLE_FIELDS = [
    FormField("title", required=True, validators=[MaxLengthValidator(80)]),
    FormField("slug", required=True),
    FormField("published", type=bool),
]


def article_config(**overrides: Any) -> ResourceConfiguration:
    settings: Dict[str, Any] = dict(
        bundle_prefix="app",
        resource_name="article",
        template_namespace="article",
        paginate=2,
        sorting={"title": "asc"},
        role_prefix="role",
    )
    settings.update(overrides)
    return ResourceConfiguration(**settings)


class Harness:
    """A fully wired article controller with inspectable collaborators."""

    def __init__(
        self,
        config: Optional[ResourceConfiguration] = None,
        *,
        granted: Iterable[str] = ALL_ROLES,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        self.config = config or article_config()
        self.driver = SpyDriver(ResourceMetadata("article", Article, options={"unique": ["slug"]}))
        self.dispatcher = dispatcher or EventDispatcher()
        self.checker = RecordingChecker(granted)
        self.session: Dict[str, Any] = {}
        self.forms = FormRegistry()
        self.forms.register("app_article", ARTICLE_FIELDS)
        self.renderer = Jinja2Renderer.from_mapping(TEMPLATES)
        self.router = RouteMap(ROUTES)
        self.controller = ResourceController(
            self.config,
            self.driver,
            manager=DomainManager(
                self.driver,
                self.dispatcher,
                FlashHelper(self.config, self.session),
                self.config,
            ),
            gate=AuthorizationGate(self.config, self.checker),
            view_handler=ViewHandler(self.config, self.renderer),
            redirect_handler=RedirectHandler(self.config, self.router),
            form_factory=self.forms,
        )

    async def seed(self, *articles: Article) -> List[Article]:
        """Store articles directly and forget the calls it took."""
        for article in articles:
            await self.driver.create(article)
        self.driver.calls.clear()
        return list(articles)


@pytest.fixture
def harness():
    return Harness()


@pytest.fixture
def make_harness():
    return Harness
