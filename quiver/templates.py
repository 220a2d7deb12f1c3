"""
Template rendering - Jinja2 renderer for interactive views.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from jinja2 import BaseLoader, DictLoader, Environment, FileSystemLoader, select_autoescape

__all__ = ["Jinja2Renderer"]


class Jinja2Renderer:
    """
    ``render(template, context) -> str`` over a Jinja2 environment.

    Example:
        renderer = Jinja2Renderer.from_directories(["templates"])
        html = renderer.render("article/show.html", {"article": article})

        # in-memory templates (tests, embedded apps)
        renderer = Jinja2Renderer.from_mapping({"article/show.html": "{{ article.title }}"})
    """

    def __init__(self, loader: BaseLoader, globals: Optional[Mapping[str, Any]] = None):
        self.env = Environment(
            loader=loader,
            autoescape=select_autoescape(["html", "xml"]),
        )
        if globals:
            self.env.globals.update(globals)

    @classmethod
    def from_directories(cls, directories: Iterable[Union[str, Path]], **kwargs: Any) -> "Jinja2Renderer":
        return cls(FileSystemLoader([str(d) for d in directories]), **kwargs)

    @classmethod
    def from_mapping(cls, templates: Mapping[str, str], **kwargs: Any) -> "Jinja2Renderer":
        return cls(DictLoader(dict(templates)), **kwargs)

    def render(self, template: str, context: Optional[Dict[str, Any]] = None) -> str:
        """Raises ``jinja2.TemplateNotFound`` (a ``LookupError``) for unknown templates."""
        return self.env.get_template(template).render(**(context or {}))
