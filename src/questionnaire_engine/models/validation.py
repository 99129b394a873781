"""Field-scoped validation result returned by the validation engine."""

from typing import Literal

from pydantic import BaseModel

ValidationKind = Literal["required", "format", "length", "range", "custom"]


class ValidationError(BaseModel):
    """A single failing answer.  A value, never raised."""

    field: str
    message: str
    type: ValidationKind
