"""
Config system - per-resource configuration descriptors and the layered
loader that builds them from YAML, .env files and the environment.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .faults import ConfigInvalidFault

logger = logging.getLogger("quiver.config")

__all__ = [
    "ResourceConfiguration",
    "ResourceConfigLoader",
    "ACTIONS",
]

ACTIONS = ("show", "index", "create", "update", "delete")


def _freeze(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ResourceConfiguration:
    """
    Immutable descriptor for one resource kind.

    Every derived lookup is a pure function of the descriptor. Optional
    lookups (template, role) return ``None`` instead of raising when the
    key is not configured.

    Attributes:
        bundle_prefix: Application prefix (``app`` in ``app.article``)
        resource_name: Singular resource name (``article``)
        plural_name: Plural name used as the index template variable
        template_namespace: Directory holding ``<action>.html`` templates
        templates: Explicit template per action, overrides the namespace
        form_type: Form type identifier handed to the form factory
        paginate: Page size; ``None`` or ``0`` disables pagination
        limit: Row limit for non-paginated index queries
        criteria: Default criteria merged into every query
        sorting: Default sort order for index queries
        roles: Action to role mapping; ``None`` means no restriction
        role_prefix: Prefix used to derive roles for unmapped actions
        redirect: Action to route name mapping for redirects
        redirect_parameters: Route parameter to ``resource.<attr>`` mapping
        default_format: Request format assumed when the request has none
        object_authorization: Re-check authorization against the loaded resource
    """

    bundle_prefix: str
    resource_name: str
    plural_name: str = ""
    template_namespace: Optional[str] = None
    templates: Mapping[str, str] = field(default_factory=dict)
    form_type: str = ""
    paginate: Optional[int] = 10
    limit: Optional[int] = None
    criteria: Mapping[str, Any] = field(default_factory=dict)
    sorting: Mapping[str, str] = field(default_factory=dict)
    roles: Mapping[str, Any] = field(default_factory=dict)
    role_prefix: Optional[str] = None
    redirect: Mapping[str, str] = field(default_factory=dict)
    redirect_parameters: Mapping[str, str] = field(default_factory=dict)
    default_format: str = "html"
    object_authorization: bool = False

    def __post_init__(self):
        if not self.bundle_prefix or not self.resource_name:
            raise ConfigInvalidFault("resource", "bundle prefix and resource name are required")
        if self.paginate is not None and (not isinstance(self.paginate, int) or self.paginate < 0):
            raise ConfigInvalidFault(
                f"{self.bundle_prefix}.{self.resource_name}.paginate",
                f"expected a positive integer, got {self.paginate!r}",
            )
        for direction in self.sorting.values():
            if str(direction).lower() not in ("asc", "desc"):
                raise ConfigInvalidFault(
                    f"{self.bundle_prefix}.{self.resource_name}.sorting",
                    f"sort direction must be 'asc' or 'desc', got {direction!r}",
                )

        # frozen dataclass: derived defaults go through object.__setattr__
        if not self.plural_name:
            object.__setattr__(self, "plural_name", f"{self.resource_name}s")
        if not self.form_type:
            object.__setattr__(self, "form_type", f"{self.bundle_prefix}_{self.resource_name}")
        for name in ("templates", "criteria", "sorting", "redirect", "redirect_parameters"):
            object.__setattr__(self, name, _freeze(getattr(self, name)))
        object.__setattr__(
            self,
            "roles",
            _freeze({str(k).lower(): v for k, v in self.roles.items()}),
        )

    # ── Construction ─────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "ResourceConfiguration":
        """
        Build a configuration from a ``<prefix>.<resource>`` key and its
        raw (YAML/env) settings.

        ``templates`` may be a namespace string or an action mapping.
        """
        if "." not in name:
            raise ConfigInvalidFault(name, "resource key must look like '<prefix>.<resource>'")
        prefix, resource = name.split(".", 1)

        templates = data.get("templates")
        namespace = None
        template_map: Dict[str, str] = {}
        if isinstance(templates, str):
            namespace = templates
        elif isinstance(templates, Mapping):
            template_map = {str(k): str(v) for k, v in templates.items()}
        elif templates is not None:
            raise ConfigInvalidFault(f"{name}.templates", "expected a string or a mapping")

        paginate = data.get("paginate", 10)
        if paginate is False:
            paginate = None

        known = {
            "plural", "templates", "form", "paginate", "limit", "criteria",
            "sorting", "roles", "role_prefix", "redirect", "redirect_parameters",
            "format", "object_authorization", "driver", "model", "options",
        }
        unknown = set(data) - known
        if unknown:
            raise ConfigInvalidFault(name, f"unknown settings: {', '.join(sorted(unknown))}")

        return cls(
            bundle_prefix=prefix,
            resource_name=resource,
            plural_name=data.get("plural", ""),
            template_namespace=namespace,
            templates=template_map,
            form_type=data.get("form", ""),
            paginate=paginate,
            limit=data.get("limit"),
            criteria=data.get("criteria") or {},
            sorting=data.get("sorting") or {},
            roles=data.get("roles") or {},
            role_prefix=data.get("role_prefix"),
            redirect=data.get("redirect") or {},
            redirect_parameters=data.get("redirect_parameters") or {},
            default_format=data.get("format", "html"),
            object_authorization=bool(data.get("object_authorization", False)),
        )

    # ── Naming ───────────────────────────────────────────────────────

    @property
    def humanized_name(self) -> str:
        """``blog_post`` -> ``Blog post``."""
        return self.resource_name.replace("_", " ").capitalize()

    def service_name(self, service: str) -> str:
        return f"{self.bundle_prefix}.{service}.{self.resource_name}"

    # ── Lookups ──────────────────────────────────────────────────────

    def template(self, action: str) -> Optional[str]:
        """
        Template for an action (``show`` or ``show.html``).

        Explicit mappings win over the namespace convention. Returns
        ``None`` when neither is configured.
        """
        short = action.split(".", 1)[0]
        for key in (action, short):
            if key in self.templates:
                return self.templates[key]
        if self.template_namespace:
            return f"{self.template_namespace}/{short}.html"
        return None

    def role(self, action: str) -> Optional[str]:
        """
        Role required for an action, or ``None`` for no restriction.

        An explicit ``None``/``False`` in the role map always means
        unrestricted, even when a role prefix is set.
        """
        key = action.lower()
        if key in self.roles:
            value = self.roles[key]
            if value is None or value is False:
                return None
            return str(value)
        if self.role_prefix:
            return f"{self.role_prefix}_{self.resource_name}_{key}".upper()
        return None

    def get_criteria(self, extra: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        return {**self.criteria, **(extra or {})}

    def get_sorting(self, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        return {**self.sorting, **(extra or {})}

    def is_paginated(self) -> bool:
        return bool(self.paginate)

    @property
    def pagination_max_per_page(self) -> int:
        return self.paginate or 0

    def is_api_request(self, request: Any = None) -> bool:
        """True when the request asks for anything but rendered html."""
        fmt = getattr(request, "format", None) or self.default_format
        return fmt != "html"

    # ── Redirects ────────────────────────────────────────────────────

    def redirect_route(self, action: str) -> str:
        return self.redirect.get(action) or f"{self.bundle_prefix}_{self.resource_name}_{action}"

    def redirect_params(self, resource: Any = None, action: str = "show") -> Dict[str, Any]:
        """
        Route parameters for a redirect.

        Configured values of the form ``resource.<attr>`` are read from
        the resource; anything else is passed through literally.
        Without configuration, ``show`` redirects use the resource id and
        ``index`` redirects use no parameters.
        """
        if not self.redirect_parameters:
            if action == "index" or resource is None:
                return {}
            return {"id": getattr(resource, "id", None)}

        params: Dict[str, Any] = {}
        for name, expression in self.redirect_parameters.items():
            if isinstance(expression, str) and expression.startswith("resource."):
                if resource is None:
                    continue
                params[name] = getattr(resource, expression[len("resource."):], None)
            else:
                params[name] = expression
        return params


class ResourceConfigLoader:
    """
    Loads and merges resource configuration with precedence:
    overrides > environment variables > .env file > YAML files

    Resource definitions live under ``quiver.resources``::

        quiver:
          resources:
            app.article:
              driver: document-odm
              model: myapp.models:Article
              templates: article
              paginate: 10
    """

    def __init__(self, env_prefix: str = "QUIVER_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[list[str]] = None,
        env_prefix: str = "QUIVER_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ResourceConfigLoader":
        """
        Load configuration from multiple sources.

        Args:
            paths: YAML/JSON config files (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)
            environ: Environment mapping, defaults to ``os.environ``
        """
        loader = cls(env_prefix=env_prefix)

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env(os.environ if environ is None else environ)

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        from glob import glob

        matches = sorted(glob(pattern))
        if not matches:
            logger.debug(f"No config files match {pattern!r}")
        for path_str in matches:
            path = Path(path_str)
            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)

    def _load_json_file(self, path: Path):
        with open(path) as f:
            data = json.load(f)
            self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path):
        import yaml
        with open(path) as f:
            data = yaml.safe_load(f)
            if data:
                self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        from dotenv import dotenv_values

        if not Path(path).exists():
            return
        for key, value in dotenv_values(path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self, environ: Mapping[str, str]):
        for key, value in environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert QUIVER_RESOURCES__APP.ARTICLE__PAGINATE to a nested dict."""
        key = key[len(self.env_prefix):]
        parts = [part.lower() for part in key.split("__")]

        current = self.config_data.setdefault("quiver", {})
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False
        if value.lower() in ("null", "none", "~"):
            return None

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def resources(self) -> Dict[str, Dict[str, Any]]:
        """Raw resource definitions keyed by ``<prefix>.<resource>``."""
        resources = self.config_data.get("quiver", {}).get("resources", {})
        if not isinstance(resources, dict):
            raise ConfigInvalidFault("quiver.resources", "expected a mapping of resource definitions")
        return resources

    def configuration(self, name: str) -> ResourceConfiguration:
        resources = self.resources()
        if name not in resources:
            raise ConfigInvalidFault(name, "resource is not defined")
        return ResourceConfiguration.from_dict(name, resources[name] or {})
