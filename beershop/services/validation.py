"""Validation of client input against the declared request models.

``validate`` is a pure function: bad input never raises, it comes back as
``Invalid`` with every rejected field. Route code that wants an exception
calls ``validated`` instead.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import pydantic

from beershop.core.errors import FieldError, ValidationError

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


@dataclass(frozen=True)
class Valid(Generic[ModelT]):
    value: ModelT


@dataclass(frozen=True)
class Invalid:
    errors: tuple[FieldError, ...] = field(default_factory=tuple)


def field_path(loc: Sequence[int | str]) -> str:
    """("beers", 1, "price") -> "beers[1].price"; an empty location is the body itself."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path or "body"


def validate(payload: Any, model: type[ModelT]) -> Valid[ModelT] | Invalid:
    """Check ``payload`` against ``model``; return the parsed model or all field errors."""
    try:
        return Valid(model.model_validate(payload))
    except pydantic.ValidationError as e:
        return Invalid(
            tuple(
                FieldError(field_path(err["loc"]), err["msg"])
                for err in e.errors(include_url=False, include_input=False)
            )
        )


def validated(payload: Any, model: type[ModelT]) -> ModelT:
    """Like ``validate`` but raise ``ValidationError`` on failure."""
    result = validate(payload, model)
    if isinstance(result, Invalid):
        raise ValidationError(list(result.errors))
    return result.value
