import uuid
from sqlalchemy import Column, String, Integer, Index
from models.base import Base, TimestampMixin

PERSONAL = 0
PUBLIC = 1

STATUS_DELETED = 0
STATUS_ACTIVE = 1


class Project(Base, TimestampMixin):
    __tablename__ = "project"

    id = Column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    name = Column(String(255), nullable=False, default="")
    author_id = Column(String(64), nullable=False)
    # Relative blob key, e.g. projects/<token>.zip
    address = Column(String(512), nullable=False, default="")
    is_public = Column(Integer, nullable=False, default=PERSONAL)
    status = Column(Integer, nullable=False, default=STATUS_ACTIVE)
    version = Column(Integer, nullable=False, default=1)

Index("idx_project_author_id", Project.author_id)
Index("idx_project_is_public_status", Project.is_public, Project.status)
