"""Gemini response schema derived from the audit models."""

from __future__ import annotations

import types as pytypes
from typing import Any, Dict, List, Literal, Type, Union, get_args, get_origin

from pydantic import BaseModel
from pydantic.fields import FieldInfo

from audit.models import AuditPayload

_SCALAR_TYPES = {
    str: "STRING",
    float: "NUMBER",
    int: "INTEGER",
    bool: "BOOLEAN",
}


def _unwrap_optional(annotation: Any) -> Any:
    if get_origin(annotation) in (Union, pytypes.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
        raise TypeError(f"Unsupported union in response schema: {annotation!r}")
    return annotation


def _annotation_schema(annotation: Any) -> Dict[str, Any]:
    annotation = _unwrap_optional(annotation)
    origin = get_origin(annotation)

    if origin is Literal:
        values = list(get_args(annotation))
        if not all(isinstance(value, str) for value in values):
            raise TypeError(f"Only string literals are supported: {annotation!r}")
        return {"type": "STRING", "enum": values}

    if origin in (list, List):
        (item_type,) = get_args(annotation)
        return {"type": "ARRAY", "items": _annotation_schema(item_type)}

    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return build_response_schema(annotation)

    if annotation in _SCALAR_TYPES:
        return {"type": _SCALAR_TYPES[annotation]}

    raise TypeError(f"Unsupported annotation in response schema: {annotation!r}")


def _field_schema(field: FieldInfo) -> Dict[str, Any]:
    schema = _annotation_schema(field.annotation)
    if field.description:
        schema["description"] = field.description
    if schema["type"] in ("NUMBER", "INTEGER"):
        for constraint in field.metadata:
            minimum = getattr(constraint, "ge", None)
            maximum = getattr(constraint, "le", None)
            if minimum is not None:
                schema["minimum"] = minimum
            if maximum is not None:
                schema["maximum"] = maximum
    return schema


def build_response_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """Translate a pydantic model into the Gemini ``Schema`` dict format.

    Keys use the wire aliases, ``required`` lists the fields without defaults
    at each level, and declaration order is preserved in both.
    """

    properties: Dict[str, Any] = {}
    required: List[str] = []
    for name, field in model.model_fields.items():
        key = field.alias or name
        properties[key] = _field_schema(field)
        if field.is_required():
            required.append(key)

    schema: Dict[str, Any] = {"type": "OBJECT", "properties": properties}
    if required:
        schema["required"] = required
    return schema


AUDIT_RESPONSE_SCHEMA: Dict[str, Any] = build_response_schema(AuditPayload)


__all__ = ["AUDIT_RESPONSE_SCHEMA", "build_response_schema"]
