from sqlalchemy.orm import Session

from crud import query
from crud.query import FilterCondition, PageResult
from models.base import utcnow
from models.project import Project, PUBLIC, STATUS_ACTIVE

_ACTIVE = FilterCondition("status", "=", STATUS_ACTIVE)


def get_project(db: Session, project_id: str) -> Project | None:
    proj = query.query_by_id(db, Project, project_id)
    if proj is None or proj.status != STATUS_ACTIVE:
        return None
    return proj


def list_public_projects(db: Session, page_index, page_size) -> PageResult:
    wheres = [FilterCondition("is_public", "=", PUBLIC), _ACTIVE]
    return query.query_by_page(db, Project, page_index, page_size, wheres)


def list_user_projects(db: Session, page_index, page_size, user_id: str) -> PageResult:
    wheres = [FilterCondition("author_id", "=", user_id), _ACTIVE]
    return query.query_by_page(db, Project, page_index, page_size, wheres)


def add_project(db: Session, proj: Project) -> Project:
    return query.insert(db, proj)


def replace_project_content(db: Session, project_id: str, name: str, address: str, old_version: int) -> bool:
    """Point the row at a new blob; False when the version moved underneath us."""
    count = query.update(
        db,
        Project,
        project_id,
        {"name": name, "address": address, "version": old_version + 1, "u_time": utcnow()},
        where={"version": old_version},
    )
    return count == 1


def update_project_is_public(db: Session, project_id: str, is_public: int, user_id: str) -> int:
    return query.update(
        db,
        Project,
        project_id,
        {"is_public": is_public, "u_time": utcnow()},
        where={"author_id": user_id, "status": STATUS_ACTIVE},
    )


def delete_project(db: Session, project_id: str) -> bool:
    return query.delete_by_id(db, Project, project_id) == 1
