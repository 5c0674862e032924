"""Schema validation gate for request bodies and query strings.

Pydantic is the schema engine; this module only turns its errors into a
``ValidationAppError`` whose message lists field paths, e.g.
``Validation error: address.postal_code: Field required``.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from crm_api.core.errors import ValidationAppError

M = TypeVar("M", bound=BaseModel)

UUID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)
INVALID_UUID_MESSAGE = "must be a valid UUID"


def is_valid_uuid(value: str) -> bool:
    """Canonical 8-4-4-4-12 hex form, case-insensitive.

    Examples:
        >>> is_valid_uuid("0b6f3c1e-8f1d-4c5e-9a55-3f1b2d4c6e7a")
        True
        >>> is_valid_uuid("not-a-uuid")
        False
    """
    return UUID_PATTERN.fullmatch(value) is not None


def format_error_path(loc: Iterable[Any]) -> str:
    return ".".join(str(part) for part in loc)


def collect_errors(exc: ValidationError | Iterable[Mapping[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic/FastAPI error entries to ``{"path", "message"}`` pairs."""
    entries = exc.errors() if isinstance(exc, ValidationError) else exc
    errors = []
    for entry in entries:
        path = format_error_path(entry.get("loc", ()))
        message = str(entry.get("msg", "Invalid value"))
        # Model-level validators report an empty path
        errors.append({"path": path or "body", "message": message})
    return errors


def validation_error(
    errors: list[dict[str, str]], *, prefix: str = "Validation error"
) -> ValidationAppError:
    summary = ", ".join(f"{e['path']}: {e['message']}" for e in errors)
    return ValidationAppError(
        code="validation_error",
        message=f"{prefix}: {summary}",
        details={"errors": errors},
    )


def validate(schema: type[M], data: Any) -> M:
    """Validate arbitrary input against a model.

    Raises:
        ValidationAppError: With one entry per failing field.
    """
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise validation_error(collect_errors(exc)) from exc


def query_to_dict(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Fold multi-valued query params into a plain dict.

    ``tags[]=a&tags[]=b`` and ``tags=a&tags=b`` both become ``{"tags": ["a", "b"]}``.
    """
    params: dict[str, Any] = {}
    for key, value in items:
        if key.endswith("[]"):
            params.setdefault(key[:-2], []).append(value)
        elif key in params:
            existing = params[key]
            params[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


def validate_query(schema: type[M], items: Iterable[tuple[str, str]]) -> M:
    """Validate query-string pairs (``request.query_params.multi_items()``)."""
    try:
        return schema.model_validate(query_to_dict(items))
    except ValidationError as exc:
        raise validation_error(
            collect_errors(exc), prefix="Query parameter validation error"
        ) from exc


def validate_record_id(value: str, *, field: str = "id") -> str:
    """Reject a path id that is not a UUID before it reaches the store.

    Raises:
        ValidationAppError: When ``value`` is malformed.
    """
    if not is_valid_uuid(value):
        raise validation_error([{"path": field, "message": INVALID_UUID_MESSAGE}])
    return value
