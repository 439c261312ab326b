from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field, ValidationError

from gaptrack.api.v1.deps import get_session, raise_storage_error, raise_validation_error
from gaptrack.schemas import Category, dump_category
from gaptrack.storage import StorageError, StorageSession

router = APIRouter()


class FolderRequest(BaseModel):
    path: str = Field(min_length=1)


def _document_response(session: StorageSession) -> dict[str, Any]:
    return {"status": session.status(), "data": session.document.to_json_dict()}


@router.get("/storage/status")
async def storage_status(session: StorageSession = Depends(get_session)):
    return session.status()


@router.get("/storage/document")
async def storage_document(session: StorageSession = Depends(get_session)):
    try:
        session.require_ready()
    except StorageError as exc:
        raise_storage_error(exc)
    return _document_response(session)


@router.put("/storage/{category}")
async def replace_category(
    category: Category,
    value: Any = Body(default=None),
    session: StorageSession = Depends(get_session),
):
    try:
        stored = session.require_ready().replace_category(category, value)
    except StorageError as exc:
        raise_storage_error(exc)
    except ValidationError as exc:
        raise_validation_error(exc)
    return {"category": category.value, "value": dump_category(category, stored), "status": session.status()}


@router.post("/storage/setup")
async def setup_folder(payload: FolderRequest, session: StorageSession = Depends(get_session)):
    try:
        await session.setup_directory(payload.path)
    except StorageError as exc:
        raise_storage_error(exc)
    return _document_response(session)


@router.post("/storage/open")
async def open_folder(payload: FolderRequest, session: StorageSession = Depends(get_session)):
    try:
        await session.open_directory(payload.path)
    except StorageError as exc:
        raise_storage_error(exc)
    return _document_response(session)


@router.post("/storage/reconnect")
async def reconnect(session: StorageSession = Depends(get_session)):
    try:
        await session.reconnect()
    except StorageError as exc:
        raise_storage_error(exc)
    return _document_response(session)


@router.post("/storage/reset")
async def reset(session: StorageSession = Depends(get_session)):
    try:
        await session.reset()
    except StorageError as exc:
        raise_storage_error(exc)
    return _document_response(session)
