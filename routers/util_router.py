from dataclasses import asdict

from fastapi import APIRouter, Depends, File, Form, UploadFile

from core.cancel import CancelToken, request_cancel_token
from core.controller import Controller, get_controller


router = APIRouter(prefix="/util", tags=["Util"])


@router.post("/fmt")
def format_code(
    body: str = Form(...),
    fiximport: str = Form(""),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    # any non-empty fiximport value turns the option on
    res = ctrl.format_code(body, cancel, fix_imports=bool(fiximport))
    return {"body": res.body, "error": asdict(res.error)}


@router.post("/to-gif")
def frames_to_gif(
    files: list[UploadFile] = File(...),
    ctrl: Controller = Depends(get_controller),
    cancel: CancelToken = Depends(request_cancel_token),
):
    url = ctrl.frames_to_animated([f.file.read() for f in files], cancel)
    return {"url": url}
