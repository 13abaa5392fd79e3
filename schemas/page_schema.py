from typing import Generic, TypeVar
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    total: int
    page_index: int
    page_size: int
    data: list[T]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
