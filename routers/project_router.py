from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from core.auth import get_current_user_id
from core.cancel import CancelToken, request_cancel_token
from core.controller import Controller, get_controller
from schemas.page_schema import Page
from schemas.project_schema import ProjectResponse, ProjectSave


router = APIRouter(prefix="/projects", tags=["Projects"])


@router.get("/public", response_model=Page[ProjectResponse])
def list_public(
    page_index: int = Query(1, alias="pageIndex"),
    page_size: int = Query(10, alias="pageSize"),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    return ctrl.list_projects_public(page_index, page_size, cancel)


@router.get("/mine", response_model=Page[ProjectResponse])
def list_mine(
    page_index: int = Query(1, alias="pageIndex"),
    page_size: int = Query(10, alias="pageSize"),
    user_id: str = Depends(get_current_user_id),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    return ctrl.list_projects_by_user(page_index, page_size, user_id, cancel)


@router.get("/{project_id}", response_model=ProjectResponse)
def read_one(
    project_id: str,
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    return ctrl.get_project(project_id, cancel)


@router.post("/", response_model=ProjectResponse)
def save(
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    id: str = Form(""),
    user_id: str = Depends(get_current_user_id),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    payload = ProjectSave(id=id, name=name, author_id=user_id)
    return ctrl.save_project(payload, file.file.read(), file.filename or "project.zip", cancel)


@router.patch("/{project_id}/public", status_code=204)
def update_public(
    project_id: str,
    is_public: int = Form(..., alias="isPublic"),
    user_id: str = Depends(get_current_user_id),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    ctrl.update_project_public(project_id, is_public, user_id, cancel)
    return None


@router.delete("/{project_id}", status_code=204)
def delete(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    ctrl.delete_project(project_id, user_id, cancel)
    return None
