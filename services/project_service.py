"""Project bundles: one blob per project, replaced wholesale on every save.

Write ordering between the two stores:

* create: put blob, then insert row
* replace: delete old blob, put new blob, then update row (guarded on version)
* delete: delete blob, then delete row

The row is always written last, so it never points at a key that was not
stored. A crash in between leaves orphaned blobs for the external sweeper.
"""
import logging
from typing import Optional

from core.blob import BlobStore
from core.cancel import CancelToken, check
from core.config import Settings
from core.database import session_scope
from core.errors import BadInputError, ConflictError, ForbiddenError, NotFoundError
from crud import project_crud
from models.project import Project, PERSONAL, PUBLIC, STATUS_ACTIVE
from schemas.page_schema import Page
from schemas.project_schema import ProjectResponse, ProjectSave

logger = logging.getLogger(__name__)


def parse_is_public(value) -> int:
    try:
        flag = int(value)
    except (TypeError, ValueError):
        raise BadInputError(f"invalid isPublic value: {value!r}") from None
    if flag not in (PERSONAL, PUBLIC):
        raise BadInputError(f"invalid isPublic value: {value!r}")
    return flag


class ProjectService:
    def __init__(self, sessions, blob: BlobStore, settings: Settings):
        self._sessions = sessions
        self._blob = blob
        self._settings = settings

    def _public(self, row: Project) -> ProjectResponse:
        resp = ProjectResponse.model_validate(row)
        if resp.address:
            resp.address = self._blob.public_url(resp.address)
        return resp

    def _page(self, result) -> Page[ProjectResponse]:
        return Page[ProjectResponse](
            total=result.total,
            page_index=result.page_index,
            page_size=result.page_size,
            data=[self._public(row) for row in result.data],
        )

    def get(self, project_id: str, cancel: Optional[CancelToken] = None) -> ProjectResponse:
        if not project_id:
            raise NotFoundError("project id is empty")
        check(cancel)
        with session_scope(self._sessions) as db:
            row = project_crud.get_project(db, project_id)
            if row is None:
                raise NotFoundError(f"project {project_id} not found")
            return self._public(row)

    def list_public(self, page_index, page_size, cancel: Optional[CancelToken] = None) -> Page[ProjectResponse]:
        check(cancel)
        with session_scope(self._sessions) as db:
            return self._page(project_crud.list_public_projects(db, page_index, page_size))

    def list_by_user(self, page_index, page_size, user_id: str,
                     cancel: Optional[CancelToken] = None) -> Page[ProjectResponse]:
        check(cancel)
        with session_scope(self._sessions) as db:
            return self._page(project_crud.list_user_projects(db, page_index, page_size, user_id))

    def save(self, project: ProjectSave, data: bytes, filename: str,
             cancel: Optional[CancelToken] = None) -> ProjectResponse:
        if not project.author_id:
            raise BadInputError("authorId is required")
        prefix = self._settings.PROJECT_PREFIX

        if not project.id:
            key = self._blob.put(prefix, filename, data, cancel)
            check(cancel)
            with session_scope(self._sessions) as db:
                row = project_crud.add_project(db, Project(
                    name=project.name or "",
                    author_id=project.author_id,
                    address=key,
                    version=1,
                    status=STATUS_ACTIVE,
                    is_public=PERSONAL,
                ))
                logger.info("created project %s for %s at %s", row.id, row.author_id, key)
                return ProjectResponse.model_validate(row)

        check(cancel)
        with session_scope(self._sessions) as db:
            current = project_crud.get_project(db, project.id)
            if current is None:
                raise NotFoundError(f"project {project.id} not found")
            if current.author_id != project.author_id:
                raise ForbiddenError(f"project {project.id} belongs to another user")
            old_address, old_version = current.address, current.version
            name = current.name if project.name is None else project.name

        self._blob.delete(old_address, cancel)
        key = self._blob.put(prefix, filename, data, cancel)
        check(cancel)
        with session_scope(self._sessions) as db:
            if not project_crud.replace_project_content(db, project.id, name, key, old_version):
                raise ConflictError(f"project {project.id} changed while saving")
            row = project_crud.get_project(db, project.id)
            logger.info("replaced project %s, version %d -> %d", project.id, old_version, row.version)
            return ProjectResponse.model_validate(row)

    def delete(self, project_id: str, user_id: str, cancel: Optional[CancelToken] = None):
        check(cancel)
        with session_scope(self._sessions) as db:
            row = project_crud.get_project(db, project_id) if project_id else None
            if row is None:
                raise NotFoundError(f"project {project_id} not found")
            if row.author_id != user_id:
                raise ForbiddenError(f"project {project_id} belongs to another user")
            address = row.address

        self._blob.delete(address, cancel)
        check(cancel)
        with session_scope(self._sessions) as db:
            project_crud.delete_project(db, project_id)
        logger.info("deleted project %s", project_id)

    def update_public(self, project_id: str, is_public, user_id: str, cancel: Optional[CancelToken] = None):
        flag = parse_is_public(is_public)
        check(cancel)
        with session_scope(self._sessions) as db:
            if project_crud.update_project_is_public(db, project_id, flag, user_id):
                return
            if project_crud.get_project(db, project_id) is None:
                raise NotFoundError(f"project {project_id} not found")
            raise ForbiddenError(f"project {project_id} belongs to another user")
