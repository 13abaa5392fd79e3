import uuid
from sqlalchemy import Column, String, Integer, Text, Index
from models.base import Base, TimestampMixin
from models.project import PERSONAL, STATUS_ACTIVE

SPRITE = "0"
BACKGROUND = "1"
SOUND = "2"
ASSET_TYPES = (SPRITE, BACKGROUND, SOUND)


class Asset(Base, TimestampMixin):
    __tablename__ = "asset"

    id = Column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    name = Column(String(255), nullable=False, default="")
    author_id = Column(String(64), nullable=False)
    category = Column(String(128), nullable=False, default="")
    is_public = Column(Integer, nullable=False, default=PERSONAL)
    # JSON manifest, opaque to the database; see schemas.manifest_schema
    address = Column(Text, nullable=False)
    asset_type = Column(String(8), nullable=False)
    click_count = Column(Integer, nullable=False, default=0)
    status = Column(Integer, nullable=False, default=STATUS_ACTIVE)

Index("idx_asset_type_public", Asset.asset_type, Asset.is_public, Asset.status)
Index("idx_asset_author_id", Asset.author_id)
