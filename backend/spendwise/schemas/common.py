from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Direction = Literal["income", "expense"]
DIRECTIONS: tuple[Direction, ...] = ("income", "expense")


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase keys, dumps camelCase with by_alias=True."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
