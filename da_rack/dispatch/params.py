"""Typed parameter models for actions with a fixed payload shape.

Column-carrying payloads (``post``, ``put``, ``get``, ``delete``) are open
dicts and are validated against the column allow-list by the query layer
instead.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from da_rack.dispatch.actions import Action
from da_rack.exceptions import InvalidPayloadError


def _truthy(value: Any) -> bool:
    """Loose flag coercion: null, false, 0 and "" are off; anything else is on.

    Objects and arrays count as on even when empty.
    """
    if isinstance(value, (dict, list)):
        return True
    return bool(value)


class _ActionParams(BaseModel):
    model_config = ConfigDict(extra="allow")

    table_name: str


class ExecParams(_ActionParams):
    query: Any = Field(default=None, description="Raw SQL statement.")
    params: Any = Field(
        default=None,
        description="Positional bind values; ignored unless a list.",
    )


class CreateTableParams(_ActionParams):
    c1_unique: bool = False

    @field_validator("c1_unique", mode="before")
    @classmethod
    def coerce_c1_unique(cls, v: Any) -> bool:
        return _truthy(v)


class BatchPostParams(_ActionParams):
    data: list[dict[str, Any]]


class CreateIndexParams(_ActionParams):
    column: Any = None
    unique: bool = False

    @field_validator("unique", mode="before")
    @classmethod
    def coerce_unique(cls, v: Any) -> bool:
        return _truthy(v)


class DropIndexParams(_ActionParams):
    column: Any = None


class UpdateC1Params(_ActionParams):
    id: Any = None
    new_c1: Any = None


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

PARAMS_MAP: dict[Action, type[_ActionParams]] = {
    Action.EXEC: ExecParams,
    Action.CREATE_TABLE: CreateTableParams,
    Action.BATCH_POST: BatchPostParams,
    Action.CREATE_INDEX: CreateIndexParams,
    Action.DROP_INDEX: DropIndexParams,
    Action.UPDATE_C1: UpdateC1Params,
}

# Messages for a top-level field of the wrong type, keyed by (action, field).
_SHAPE_ERRORS: dict[tuple[Action, str], str] = {
    (Action.BATCH_POST, "data"): "Payload 'data' must be an array",
}


def parse_params(action: Action, payload: dict[str, Any]) -> Any:
    """Validate *payload* against the model registered for *action*."""
    model = PARAMS_MAP[action]
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        errors = exc.errors()
        fields = sorted({str(err["loc"][0]) for err in errors if err["loc"]})
        message = f"Invalid field(s): {', '.join(fields)}"
        for err in errors:
            if len(err["loc"]) == 1 and (action, err["loc"][0]) in _SHAPE_ERRORS:
                message = _SHAPE_ERRORS[(action, err["loc"][0])]
                break
        raise InvalidPayloadError(message, context={"fields": fields}) from exc
