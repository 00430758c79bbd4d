# clinic_portal/schemas/base.py

from typing import Any

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire; accepts either on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @classmethod
    def render(cls, obj: Any) -> dict:
        return cls.model_validate(obj).model_dump(by_alias=True, mode="json")
