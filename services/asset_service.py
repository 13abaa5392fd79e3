"""Sprites, backgrounds and sounds.

An asset row stores its blobs in a JSON manifest (``asset.address``); see
``schemas.manifest_schema``. Reads rewrite the manifest keys into public URLs,
writes store relative keys.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from core.blob import BlobStore
from core.cancel import CancelToken, check
from core.config import Settings
from core.database import session_scope
from core.errors import BadInputError, ForbiddenError, NotFoundError
from crud import asset_crud
from models.asset import Asset, ASSET_TYPES, SOUND, SPRITE
from models.project import STATUS_ACTIVE
from schemas.asset_schema import AssetResponse, AssetSave
from schemas.manifest_schema import (
    GIF,
    IMAGE,
    INDEX_JSON,
    Manifest,
    decode_manifest,
    encode_manifest,
    relative_key,
    rewrite_manifest,
)
from schemas.page_schema import Page
from services.project_service import parse_is_public

logger = logging.getLogger(__name__)


@dataclass
class Upload:
    filename: str
    data: bytes


def parse_asset_type(value) -> str:
    value = str(value)
    if value not in ASSET_TYPES:
        raise BadInputError(f"invalid assetType: {value!r}")
    return value


class AssetService:
    def __init__(self, sessions, blob: BlobStore, settings: Settings):
        self._sessions = sessions
        self._blob = blob
        self._settings = settings

    def _public(self, row: Asset) -> AssetResponse:
        resp = AssetResponse.model_validate(row)
        manifest = rewrite_manifest(decode_manifest(row.address), self._blob.public_url)
        resp.address = encode_manifest(manifest)
        return resp

    def _page(self, result) -> Page[AssetResponse]:
        return Page[AssetResponse](
            total=result.total,
            page_index=result.page_index,
            page_size=result.page_size,
            data=[self._public(row) for row in result.data],
        )

    def get(self, asset_id: str, cancel: Optional[CancelToken] = None) -> AssetResponse:
        if not asset_id:
            raise NotFoundError("asset id is empty")
        check(cancel)
        with session_scope(self._sessions) as db:
            row = asset_crud.get_asset(db, asset_id)
            if row is None:
                raise NotFoundError(f"asset {asset_id} not found")
            return self._public(row)

    def list_public(self, page_index, page_size, asset_type, category: Optional[str] = None,
                    order_by_time: bool = False, order_by_hot: bool = False,
                    cancel: Optional[CancelToken] = None) -> Page[AssetResponse]:
        asset_type = parse_asset_type(asset_type)
        check(cancel)
        with session_scope(self._sessions) as db:
            result = asset_crud.list_assets(
                db, page_index, page_size, asset_type, category, order_by_time, order_by_hot
            )
            return self._page(result)

    def list_by_user(self, page_index, page_size, asset_type, user_id: str, category: Optional[str] = None,
                     order_by_time: bool = False, order_by_hot: bool = False,
                     cancel: Optional[CancelToken] = None) -> Page[AssetResponse]:
        asset_type = parse_asset_type(asset_type)
        check(cancel)
        with session_scope(self._sessions) as db:
            result = asset_crud.list_assets(
                db, page_index, page_size, asset_type, category, order_by_time, order_by_hot, user_id=user_id
            )
            return self._page(result)

    def search(self, name: str, asset_type, user_id: Optional[str] = None,
               cancel: Optional[CancelToken] = None) -> list[AssetResponse]:
        asset_type = parse_asset_type(asset_type)
        check(cancel)
        with session_scope(self._sessions) as db:
            rows = asset_crud.search_assets(db, name or "", asset_type, user_id or None)
            return [self._public(row) for row in rows]

    def increment_click_count(self, asset_id: str, asset_type, cancel: Optional[CancelToken] = None):
        asset_type = parse_asset_type(asset_type)
        check(cancel)
        with session_scope(self._sessions) as db:
            if not asset_crud.increment_click_count(db, asset_id, asset_type):
                raise NotFoundError(f"asset {asset_id} of type {asset_type} not found")

    def update_public(self, asset_id: str, is_public, user_id: str, cancel: Optional[CancelToken] = None):
        flag = parse_is_public(is_public)
        check(cancel)
        with session_scope(self._sessions) as db:
            if asset_crud.update_asset_is_public(db, asset_id, flag, user_id):
                return
            if asset_crud.get_asset(db, asset_id) is None:
                raise NotFoundError(f"asset {asset_id} not found")
            raise ForbiddenError(f"asset {asset_id} belongs to another user")

    def save_sound(self, asset: AssetSave, data: bytes, filename: str,
                   cancel: Optional[CancelToken] = None) -> AssetResponse:
        if not asset.author_id:
            raise BadInputError("authorId is required")
        prefix = self._settings.SOUND_PREFIX

        if not asset.id:
            key = self._blob.put(prefix, filename, data, cancel)
            check(cancel)
            with session_scope(self._sessions) as db:
                row = asset_crud.add_asset(db, Asset(
                    name=asset.name or "",
                    author_id=asset.author_id,
                    category=asset.category or "",
                    is_public=parse_is_public(asset.is_public),
                    address=encode_manifest(Manifest(assets={"sound": key})),
                    asset_type=SOUND,
                    click_count=0,
                    status=STATUS_ACTIVE,
                ))
                logger.info("created sound asset %s at %s", row.id, key)
                return AssetResponse.model_validate(row)

        check(cancel)
        with session_scope(self._sessions) as db:
            current = asset_crud.get_asset(db, asset.id)
            if current is None:
                raise NotFoundError(f"asset {asset.id} not found")
            if current.author_id != asset.author_id:
                raise ForbiddenError(f"asset {asset.id} belongs to another user")
            if current.asset_type != SOUND:
                raise BadInputError(f"asset {asset.id} is not a sound")
            old = decode_manifest(current.address)
            name = current.name if asset.name is None else asset.name
            category = current.category if asset.category is None else asset.category
        if len(old.assets) != 1:
            raise BadInputError(f"sound asset {asset.id} has {len(old.assets)} slots, expected one")
        old_key = next(iter(old.assets.values()))

        self._blob.delete(old_key, cancel)
        key = self._blob.put(prefix, filename, data, cancel)
        check(cancel)
        with session_scope(self._sessions) as db:
            address = encode_manifest(Manifest(assets={"sound": key}))
            asset_crud.update_asset_content(db, asset.id, name, category, address)
            logger.info("replaced sound of asset %s: %s -> %s", asset.id, old_key, key)
            return AssetResponse.model_validate(asset_crud.get_asset(db, asset.id))

    def upload_sprite(self, name: str, files: Sequence[Upload], animated_url: str, user_id: str,
                      category: str, is_public, cancel: Optional[CancelToken] = None) -> AssetResponse:
        if not files:
            raise BadInputError("a sprite needs at least one image")
        flag = parse_is_public(is_public)
        prefix = self._settings.SPRITE_PREFIX

        if len(files) == 1:
            key = self._blob.put(prefix, files[0].filename, files[0].data, cancel)
            manifest = Manifest(assets={IMAGE: key}, index_json=INDEX_JSON, type=IMAGE)
        else:
            try:
                url = relative_key(animated_url or "", self._settings.CDN_PREFIX)
            except ValueError as exc:
                raise BadInputError(str(exc)) from exc
            slots = {}
            for i, upload in enumerate(files):
                slots[f"image{i}"] = self._blob.put(prefix, upload.filename, upload.data, cancel)
            manifest = Manifest(assets=slots, index_json=INDEX_JSON, type=GIF, url=url)

        check(cancel)
        with session_scope(self._sessions) as db:
            row = asset_crud.add_asset(db, Asset(
                name=name,
                author_id=user_id,
                category=category or "",
                is_public=flag,
                address=encode_manifest(manifest),
                asset_type=SPRITE,
                click_count=0,
                status=STATUS_ACTIVE,
            ))
            logger.info("ingested sprite %s (%d frames) for %s", row.id, len(files), user_id)
            return AssetResponse.model_validate(row)
