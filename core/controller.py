"""Controller facade consumed by the HTTP layer.

Holds the two process-wide store handles and hands them to the services.
Construction opens and checks both; any failure aborts it.
"""
import logging
from typing import Optional, Sequence

from fastapi import Request
from sqlalchemy.engine import Engine

from core.blob import BlobStore, open_bucket
from core.cancel import CancelToken
from core.config import Settings
from core.database import check_connection, create_db_engine, make_session_factory
from schemas.asset_schema import AssetResponse, AssetSave
from schemas.page_schema import Page
from schemas.project_schema import ProjectResponse, ProjectSave
from services.asset_service import AssetService, Upload
from services.formatter import Formatter, FormatResponse
from services.media import MediaService
from services.project_service import ProjectService

logger = logging.getLogger(__name__)


class Controller:
    def __init__(self, settings: Settings, engine: Optional[Engine] = None, blob: Optional[BlobStore] = None):
        self.settings = settings
        self.blob = blob if blob is not None else open_bucket(settings.BLOB_US, settings.CDN_PREFIX)
        self.engine = engine if engine is not None else create_db_engine(settings)
        try:
            check_connection(self.engine)
        except Exception:
            self.blob.close()
            raise
        sessions = make_session_factory(self.engine)

        self.projects = ProjectService(sessions, self.blob, settings)
        self.assets = AssetService(sessions, self.blob, settings)
        self.media = MediaService(self.blob, settings)
        self.formatter = Formatter(
            settings.FORMATTER_EXECUTABLE,
            settings.FORMATTER_TIMEOUT,
            go_executable=settings.GO_EXECUTABLE,
            goimports_executable=settings.GOIMPORTS_EXECUTABLE,
        )
        logger.info("controller ready (blob=%s)", self.blob.scheme)

    def close(self):
        self.blob.close()
        self.engine.dispose()

    # Projects

    def get_project(self, id: str, cancel: Optional[CancelToken] = None) -> ProjectResponse:
        return self.projects.get(id, cancel)

    def list_projects_public(self, page, size, cancel: Optional[CancelToken] = None) -> Page[ProjectResponse]:
        return self.projects.list_public(page, size, cancel)

    def list_projects_by_user(self, page, size, user_id: str,
                              cancel: Optional[CancelToken] = None) -> Page[ProjectResponse]:
        return self.projects.list_by_user(page, size, user_id, cancel)

    def save_project(self, project: ProjectSave, file_bytes: bytes, filename: str,
                     cancel: Optional[CancelToken] = None) -> ProjectResponse:
        return self.projects.save(project, file_bytes, filename, cancel)

    def delete_project(self, id: str, user_id: str, cancel: Optional[CancelToken] = None):
        self.projects.delete(id, user_id, cancel)

    def update_project_public(self, id: str, is_public, user_id: str, cancel: Optional[CancelToken] = None):
        self.projects.update_public(id, is_public, user_id, cancel)

    # Assets

    def update_asset_public(self, id: str, is_public, user_id: str, cancel: Optional[CancelToken] = None):
        self.assets.update_public(id, is_public, user_id, cancel)

    def get_asset(self, id: str, cancel: Optional[CancelToken] = None) -> AssetResponse:
        return self.assets.get(id, cancel)

    def list_assets_public(self, page, size, asset_type, category: Optional[str] = None,
                           by_time: bool = False, by_hot: bool = False,
                           cancel: Optional[CancelToken] = None) -> Page[AssetResponse]:
        return self.assets.list_public(page, size, asset_type, category, by_time, by_hot, cancel)

    def list_assets_by_user(self, page, size, asset_type, user_id: str, category: Optional[str] = None,
                            by_time: bool = False, by_hot: bool = False,
                            cancel: Optional[CancelToken] = None) -> Page[AssetResponse]:
        return self.assets.list_by_user(page, size, asset_type, user_id, category, by_time, by_hot, cancel)

    def search_assets(self, query: str, asset_type, user_id: Optional[str] = None,
                      cancel: Optional[CancelToken] = None) -> list[AssetResponse]:
        return self.assets.search(query, asset_type, user_id, cancel)

    def increment_asset_click_count(self, id: str, asset_type, cancel: Optional[CancelToken] = None):
        self.assets.increment_click_count(id, asset_type, cancel)

    def save_sound_asset(self, asset: AssetSave, file_bytes: bytes, filename: str,
                         cancel: Optional[CancelToken] = None) -> AssetResponse:
        return self.assets.save_sound(asset, file_bytes, filename, cancel)

    def upload_sprite(self, name: str, files: Sequence[Upload], animated_url: str, user_id: str,
                      category: str, is_public, cancel: Optional[CancelToken] = None) -> AssetResponse:
        return self.assets.upload_sprite(name, files, animated_url, user_id, category, is_public, cancel)

    # Helpers

    def frames_to_animated(self, frames: Sequence[bytes], cancel: Optional[CancelToken] = None) -> str:
        return self.media.frames_to_animated(frames, cancel)

    def format_code(self, body: str, cancel: Optional[CancelToken] = None,
                    fix_imports: bool = False) -> FormatResponse:
        return self.formatter.format(body, cancel, fix_imports)


def get_controller(request: Request) -> Controller:
    """FastAPI dependency returning the app-wide controller."""
    return request.app.state.controller
