"""
Forms - default form-binding collaborator.

A form binds submitted request data onto a resource instance. Binding
is all-or-nothing: the resource is only touched when every field
validates, so an invalid submission leaves it unchanged.

Validators are callables ``(value) -> None`` raising ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from .faults import ConfigInvalidFault

__all__ = [
    "FormField",
    "ResourceForm",
    "FormRegistry",
    "MaxLengthValidator",
    "MinLengthValidator",
]

BLANK = "This value should not be blank."
INVALID = "This value is not valid."

_TRUE = {"1", "true", "on", "yes"}
_FALSE = {"0", "false", "off", "no", ""}


class MaxLengthValidator:
    """Reject values whose ``len()`` exceeds *limit*."""

    __slots__ = ("limit", "message")

    def __init__(self, limit: int, message: str | None = None):
        self.limit = limit
        self.message = message or f"Ensure this value has at most {limit} characters."

    def __call__(self, value: Any) -> None:
        if hasattr(value, "__len__") and len(value) > self.limit:
            raise ValueError(self.message)


class MinLengthValidator:
    """Reject values whose ``len()`` is below *limit*."""

    __slots__ = ("limit", "message")

    def __init__(self, limit: int, message: str | None = None):
        self.limit = limit
        self.message = message or f"Ensure this value has at least {limit} characters."

    def __call__(self, value: Any) -> None:
        if hasattr(value, "__len__") and len(value) < self.limit:
            raise ValueError(self.message)


@dataclass(frozen=True)
class FormField:
    name: str
    type: Type = str
    required: bool = False
    validators: Sequence[Callable[[Any], None]] = field(default_factory=tuple)

    def convert(self, value: Any) -> Any:
        if self.type is bool:
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            raise ValueError(INVALID)
        if isinstance(value, self.type):
            return value
        try:
            return self.type(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(INVALID) from exc


class ResourceForm:
    """
    Binds request data onto one resource.

    PATCH submissions only bind the fields present in the request;
    other methods treat missing fields as blank.
    """

    fields: Sequence[FormField] = ()

    def __init__(self, resource: Any, fields: Optional[Sequence[FormField]] = None):
        self.resource = resource
        if fields is not None:
            self.fields = tuple(fields)
        self.data: Dict[str, Any] = {}
        self.errors: Dict[str, List[str]] = {}
        self.submitted = False

    def bind(self, request: Any) -> Tuple[bool, Dict[str, List[str]]]:
        self.submitted = True
        raw: Mapping[str, Any] = getattr(request, "data", None) or {}
        partial = getattr(request, "method", "POST") == "PATCH"
        self.data = {f.name: raw[f.name] for f in self.fields if f.name in raw}
        self.errors = {}

        cleaned: Dict[str, Any] = {}
        for form_field in self.fields:
            if form_field.name not in raw and partial:
                continue
            value = raw.get(form_field.name)
            if value is None or value == "":
                if form_field.required:
                    self.add_error(form_field.name, BLANK)
                else:
                    cleaned[form_field.name] = None
                continue
            try:
                value = form_field.convert(value)
                for validator in form_field.validators:
                    validator(value)
            except ValueError as exc:
                self.add_error(form_field.name, str(exc))
                continue
            cleaned[form_field.name] = value

        if not self.errors:
            for name, value in cleaned.items():
                setattr(self.resource, name, value)
        return self.is_valid(), self.errors

    def add_error(self, field_name: str, message: str) -> None:
        self.errors.setdefault(field_name, []).append(message)

    def is_valid(self) -> bool:
        return self.submitted and not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields": [f.name for f in self.fields],
            "data": dict(self.data),
            "errors": {k: list(v) for k, v in self.errors.items()},
        }


class FormRegistry:
    """
    Form factory keyed by form type.

    Usage:
        forms = FormRegistry()
        forms.register("app_article", [FormField("title", required=True)])
        form = forms.create("app_article", article)
    """

    def __init__(self):
        self._forms: Dict[str, Callable[[Any], Any]] = {}

    def register(self, form_type: str, form: Any) -> None:
        """Register a form class or a field list."""
        if isinstance(form, type):
            self._forms[form_type] = form
        else:
            fields = tuple(form)
            self._forms[form_type] = lambda resource: ResourceForm(resource, fields)

    def create(self, form_type: str, resource: Any) -> Any:
        factory = self._forms.get(form_type)
        if factory is None:
            raise ConfigInvalidFault(form_type, "no form registered for this form type")
        return factory(resource)
