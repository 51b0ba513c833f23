"""Helpers for validating JSON request bodies with WTForms.

Every API handler funnels its body through a form before any business rule
runs. JSON scalars are converted to the strings a browser form would post so
the stock WTForms fields coerce and validate them as usual.
"""

from __future__ import annotations

from typing import Any, TypeVar

from flask import request
from flask_wtf import FlaskForm  # type: ignore
from werkzeug.datastructures import MultiDict
from wtforms import Field
from wtforms.widgets import TextInput

from mindmesh.errors import ValidationError
from mindmesh.utils import parse_datetime

F = TypeVar("F", bound="JSONForm")


class JSONForm(FlaskForm):
    """Base form for JSON payloads; CSRF is handled at the request level."""

    class Meta:
        csrf = False

    def submitted_data(self) -> dict[str, Any]:
        """Return coerced values only for keys present in the payload."""
        return {
            name: field.data
            for name, field in self._fields.items()
            if field.raw_data
        }


class IsoDateTimeField(Field):
    """A field that accepts ISO 8601 instants such as ``2024-06-01T10:00:00Z``."""

    widget = TextInput()

    def _value(self) -> str:
        if self.raw_data:
            return " ".join(self.raw_data)
        return self.data.isoformat() if self.data else ""

    def process_formdata(self, valuelist: list[Any]) -> None:
        if not valuelist or not valuelist[0]:
            self.data = None
            return
        try:
            self.data = parse_datetime(valuelist[0])
        except ValueError as e:
            self.data = None
            raise ValueError(self.gettext("Not a valid ISO 8601 datetime.")) from e


class StringListField(Field):
    """A field holding a JSON array of strings."""

    widget = TextInput()

    def __init__(self, label: str | None = None, validators: Any = None, **kwargs: Any):
        kwargs.setdefault("default", list)
        super().__init__(label, validators, **kwargs)

    def _value(self) -> str:
        return ", ".join(self.data or [])

    def process_formdata(self, valuelist: list[Any]) -> None:
        self.data = [str(v).strip() for v in valuelist if v and str(v).strip()]


def _to_form_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return [_to_form_value(v) for v in value if v is not None]
    return str(value)


def json_formdata(payload: Any = None) -> MultiDict:
    """Turn a JSON object (the request body by default) into form data."""
    if payload is None:
        payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return MultiDict(
        {key: _to_form_value(value) for key, value in payload.items() if value is not None}
    )


def form_error_message(form: FlaskForm) -> str:
    """Flatten form errors into one human-readable line."""
    parts = []
    for field_name, errors in form.errors.items():
        for error in errors:
            parts.append(f"{field_name}: {error}" if field_name else str(error))
    return "; ".join(parts) or "Validation failed."


def validate_json(form_class: type[F], payload: Any = None) -> F:
    """Build and validate ``form_class`` from JSON.

    Raises:
        ValidationError: With every field error joined into the message.
    """
    form = form_class(formdata=json_formdata(payload))
    if not form.validate():
        raise ValidationError(form_error_message(form))
    return form
