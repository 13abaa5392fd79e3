from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class AssetBase(BaseModel):
    name: str = ""
    author_id: str = ""
    category: str = ""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssetSave(AssetBase):
    """Client payload for SaveAsset (sound assets). An empty id creates one.

    On replace, a ``name`` or ``category`` left as None keeps the stored value.
    """
    id: str = ""
    name: Optional[str] = None
    category: Optional[str] = None
    is_public: int = 0


class AssetResponse(AssetBase):
    id: str
    is_public: int
    address: str
    asset_type: str
    # decimal string on the wire, unsigned integer in the database
    click_count: str
    status: int
    c_time: datetime | None = None
    u_time: datetime | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    @field_validator("click_count", mode="before")
    @classmethod
    def _count_as_string(cls, v):
        return str(v if v is not None else 0)
