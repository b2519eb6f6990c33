from __future__ import annotations

import datetime as _dt
from collections.abc import Mapping
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic_core import PydanticCustomError

from taskboard.errors import RequestValidationError
from taskboard.models.task import TaskPriority, TaskStatus

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


def _utf16_length(value: str) -> int:
    return len(value.encode("utf-16-le")) // 2


class CreateTaskRequest(BaseModel):
    """Body accepted by the create endpoint.

    Unknown keys are rejected. Optional keys may be omitted but not sent as
    ``null``. String lengths are counted in UTF-16 code units, so astral
    characters such as emoji count twice.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    title: StrictStr = Field(min_length=1)
    description: StrictStr | None = Field(default=None, min_length=1)
    priority: TaskPriority
    due_date: _dt.datetime | None = Field(default=None, alias="dueDate")

    @field_validator("description", mode="before")
    @classmethod
    def _reject_null_description(cls, value: Any) -> Any:
        # Only runs for keys that are present; omission keeps the default.
        if value is None:
            raise PydanticCustomError("string_type", "must be a string")
        return value

    @field_validator("title", "description")
    @classmethod
    def _check_length(cls, value: str | None, info: ValidationInfo) -> str | None:
        limit = TITLE_MAX_LENGTH if info.field_name == "title" else DESCRIPTION_MAX_LENGTH
        if value is not None and _utf16_length(value) > limit:
            raise PydanticCustomError(
                "string_too_long",
                "String should have at most {max_length} characters",
                {"max_length": limit},
            )
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def _parse_iso_date(cls, value: Any) -> Any:
        if not isinstance(value, str):
            raise PydanticCustomError("iso_date", "must be in ISO 8601 date format")
        try:
            parsed = _dt.datetime.fromisoformat(value)
        except ValueError:
            raise PydanticCustomError("iso_date", "must be in ISO 8601 date format") from None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=_dt.UTC)
        return parsed


class ListTasksQuery(BaseModel):
    """Filters accepted by the list endpoint. Unknown parameters are ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    status: TaskStatus | None = None
    priority: TaskPriority | None = None


def _field_name(loc: tuple[Any, ...]) -> str:
    if not loc:
        return "value"
    return ".".join(str(part) for part in loc)


def _describe(error: Mapping[str, Any]) -> str:
    kind = error.get("type", "")
    ctx = error.get("ctx") or {}
    if kind == "missing":
        reason = "is required"
    elif kind == "extra_forbidden":
        reason = "is not allowed"
    elif kind == "string_type":
        reason = "must be a string"
    elif kind == "string_too_short":
        reason = "is not allowed to be empty"
    elif kind == "string_too_long":
        reason = (
            f"length must be less than or equal to {ctx.get('max_length')} characters long"
        )
    elif kind == "enum":
        reason = f"must be one of {ctx.get('expected')}"
    elif kind in {"model_type", "dict_type"}:
        reason = "must be of type object"
    else:
        reason = str(error.get("msg", "is invalid"))
    return f'"{_field_name(tuple(error.get("loc", ())))}" {reason}'


def format_validation_error(exc: ValidationError) -> str:
    """Render the first schema violation as a short, client-safe sentence."""
    errors = exc.errors(include_url=False, include_input=False)
    if not errors:
        return "Invalid request"
    return _describe(errors[0])


def _first(params: Any, key: str) -> Any:
    getlist = getattr(params, "getlist", None)
    if callable(getlist):
        values = getlist(key)
        return values[0] if values else None
    value = params.get(key) if isinstance(params, Mapping) else None
    if isinstance(value, list | tuple):
        return value[0] if value else None
    return value


async def validate_create_request(data: Any) -> CreateTaskRequest:
    try:
        return CreateTaskRequest.model_validate(data)
    except ValidationError as exc:
        raise RequestValidationError(format_validation_error(exc)) from None


async def validate_list_query(params: Any) -> ListTasksQuery:
    """Validate list filters; repeated parameters only count their first value."""
    raw: dict[str, Any] = {}
    for key in ("status", "priority"):
        value = _first(params, key)
        if value is not None:
            raw[key] = value
    try:
        return ListTasksQuery.model_validate(raw)
    except ValidationError as exc:
        raise RequestValidationError(format_validation_error(exc)) from None


__all__ = [
    "CreateTaskRequest",
    "DESCRIPTION_MAX_LENGTH",
    "ListTasksQuery",
    "TITLE_MAX_LENGTH",
    "format_validation_error",
    "validate_create_request",
    "validate_list_query",
]
