from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from core.auth import get_current_user_id, get_optional_user_id
from core.cancel import CancelToken, request_cancel_token
from core.controller import Controller, get_controller
from schemas.asset_schema import AssetResponse, AssetSave
from schemas.page_schema import Page
from services.asset_service import Upload


router = APIRouter(prefix="/assets", tags=["Assets"])


@router.get("/public", response_model=Page[AssetResponse])
def list_public(
    asset_type: str = Query(..., alias="assetType"),
    page_index: int = Query(1, alias="pageIndex"),
    page_size: int = Query(10, alias="pageSize"),
    category: Optional[str] = None,
    by_time: bool = Query(False, alias="isOrderByTime"),
    by_hot: bool = Query(False, alias="isOrderByHot"),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    return ctrl.list_assets_public(page_index, page_size, asset_type, category, by_time, by_hot, cancel)


@router.get("/mine", response_model=Page[AssetResponse])
def list_mine(
    asset_type: str = Query(..., alias="assetType"),
    page_index: int = Query(1, alias="pageIndex"),
    page_size: int = Query(10, alias="pageSize"),
    category: Optional[str] = None,
    by_time: bool = Query(False, alias="isOrderByTime"),
    by_hot: bool = Query(False, alias="isOrderByHot"),
    user_id: str = Depends(get_current_user_id),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    return ctrl.list_assets_by_user(page_index, page_size, asset_type, user_id, category, by_time, by_hot, cancel)


@router.get("/search", response_model=list[AssetResponse])
def search(
    asset_type: str = Query(..., alias="assetType"),
    q: str = Query("", alias="search"),
    user_id: Optional[str] = Depends(get_optional_user_id),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    return ctrl.search_assets(q, asset_type, user_id, cancel)


@router.get("/{asset_id}", response_model=AssetResponse)
def read_one(
    asset_id: str,
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    return ctrl.get_asset(asset_id, cancel)


@router.post("/{asset_id}/click", status_code=204)
def click(
    asset_id: str,
    asset_type: str = Query(..., alias="assetType"),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    ctrl.increment_asset_click_count(asset_id, asset_type, cancel)
    return None


@router.patch("/{asset_id}/public", status_code=204)
def update_public(
    asset_id: str,
    is_public: int = Form(..., alias="isPublic"),
    user_id: str = Depends(get_current_user_id),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    ctrl.update_asset_public(asset_id, is_public, user_id, cancel)
    return None


@router.post("/sound", response_model=AssetResponse)
def save_sound(
    file: UploadFile = File(...),
    id: str = Form(""),
    name: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    is_public: int = Form(0, alias="isPublic"),
    user_id: str = Depends(get_current_user_id),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    payload = AssetSave(id=id, name=name, category=category, is_public=is_public, author_id=user_id)
    return ctrl.save_sound_asset(payload, file.file.read(), file.filename or "sound.wav", cancel)


@router.post("/sprite", response_model=AssetResponse, status_code=201)
def upload_sprite(
    files: list[UploadFile] = File(...),
    name: str = Form(...),
    gif_path: str = Form("", alias="gifPath"),
    category: str = Form(""),
    is_public: str = Form("0", alias="isPublic"),
    user_id: str = Depends(get_current_user_id),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    uploads = [Upload(f.filename or "image.png", f.file.read()) for f in files]
    return ctrl.upload_sprite(name, uploads, gif_path, user_id, category, is_public, cancel)
