from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile, status

from taketwo.auth import Principal, get_current_principal
from taketwo.schemas import UploadResponse
from taketwo.services.storage_service import store_upload

router = APIRouter(prefix='/upload', tags=['uploads'])


async def _store(upload: UploadFile, kind: str) -> UploadResponse:
    payload = await upload.read()
    url = store_upload(upload.filename or '', payload, upload.content_type or '', kind=kind)
    return UploadResponse(url=url)


@router.post('/photo', response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_photo(
    file: UploadFile = File(...),
    _: Principal = Depends(get_current_principal),
):
    return await _store(file, 'photo')


@router.post('/waiver', response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_waiver(
    file: UploadFile = File(...),
    _: Principal = Depends(get_current_principal),
):
    return await _store(file, 'waiver')
