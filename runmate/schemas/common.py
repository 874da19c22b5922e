# runmate/schemas/common.py
# Base model for every API schema and the success envelope.

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase on the wire; snake_case is accepted on input too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def ok(data: Any = None, **extra: Any) -> Dict[str, Any]:
    """{"success": true, "data": ...} plus optional top-level keys (message, pagination, ...)."""
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body
