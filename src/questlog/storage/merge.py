"""Partial-update helper shared by the storage backends."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from questlog.core.exceptions import InvalidInputError


ModelT = TypeVar("ModelT", bound=BaseModel)

PROTECTED_FIELDS = frozenset({"id", "created_at"})


def merge_fields(record: ModelT, fields: dict[str, Any], *, resource: str) -> ModelT:
    """Return a validated copy of ``record`` with ``fields`` applied.

    Field aliases (``class`` for ``character_class``) are accepted.

    Raises:
        InvalidInputError: For unknown or protected fields, or if the merged
            record fails validation (e.g. health above max_health).
    """
    model_fields = type(record).model_fields
    aliases = {info.alias: name for name, info in model_fields.items() if info.alias}

    normalized: dict[str, Any] = {}
    for key, value in fields.items():
        name = aliases.get(key, key)
        if name not in model_fields:
            raise InvalidInputError(
                f"Unknown {resource} field: {key}",
                field_name=key,
            )
        if name in PROTECTED_FIELDS:
            raise InvalidInputError(
                f"{resource} field {key} cannot be changed",
                field_name=key,
            )
        normalized[name] = value

    data = record.model_dump(exclude=set(type(record).model_computed_fields))
    data.update(normalized)
    try:
        return type(record).model_validate(data)
    except ValidationError as exc:
        raise InvalidInputError(
            f"Invalid {resource} update: {exc.errors()[0]['msg']}",
            details={"fields": sorted(normalized)},
        ) from exc


__all__ = ["merge_fields", "PROTECTED_FIELDS"]
