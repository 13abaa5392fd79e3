from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ProjectBase(BaseModel):
    name: str = ""
    author_id: str = ""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectSave(ProjectBase):
    """Client payload for SaveProject. An empty id creates a new project.

    A replace with no ``name`` keeps the stored one.
    """
    id: str = ""
    name: Optional[str] = None


class ProjectResponse(ProjectBase):
    id: str
    address: str
    is_public: int
    status: int
    version: int
    c_time: datetime | None = None
    u_time: datetime | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
