from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, Field, ValidationError

from gaptrack.api.v1.deps import get_session, raise_storage_error, raise_validation_error
from gaptrack.services import tracker_service
from gaptrack.storage import DocumentSync, StorageError, StorageSession

router = APIRouter()


def _ready(session: StorageSession) -> DocumentSync:
    try:
        return session.require_ready()
    except StorageError as exc:
        raise_storage_error(exc)


def _run(action, *args):
    try:
        return action(*args)
    except tracker_service.RecordNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValidationError as exc:
        raise_validation_error(exc)


@router.post("/applications", status_code=status.HTTP_201_CREATED)
async def create_application(
    payload: dict[str, Any] = Body(...),
    session: StorageSession = Depends(get_session),
):
    record = _run(tracker_service.add_application, _ready(session), payload)
    return record.to_json_dict()


@router.patch("/applications/{application_id}")
async def update_application(
    application_id: str,
    payload: dict[str, Any] = Body(...),
    session: StorageSession = Depends(get_session),
):
    record = _run(tracker_service.update_application, _ready(session), application_id, payload)
    return record.to_json_dict()


@router.delete("/applications/{application_id}")
async def delete_application(application_id: str, session: StorageSession = Depends(get_session)):
    if not tracker_service.delete_application(_ready(session), application_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found.")
    return {"deleted": application_id}


@router.get("/applications/{application_id}/contacts")
async def application_contacts(application_id: str, session: StorageSession = Depends(get_session)):
    contacts = _run(tracker_service.linked_contacts, _ready(session), application_id)
    return [contact.to_json_dict() for contact in contacts]


@router.post("/applications/{application_id}/contacts/{contact_id}")
async def link_contact(application_id: str, contact_id: str, session: StorageSession = Depends(get_session)):
    record = _run(tracker_service.link_contact, _ready(session), application_id, contact_id)
    return record.to_json_dict()


@router.delete("/applications/{application_id}/contacts/{contact_id}")
async def unlink_contact(application_id: str, contact_id: str, session: StorageSession = Depends(get_session)):
    record = _run(tracker_service.unlink_contact, _ready(session), application_id, contact_id)
    return record.to_json_dict()


@router.post("/contacts")
async def upsert_contact(payload: dict[str, Any] = Body(...), session: StorageSession = Depends(get_session)):
    record = _run(tracker_service.upsert_contact, _ready(session), payload)
    return record.to_json_dict()


@router.delete("/contacts/{contact_id}")
async def delete_contact(contact_id: str, session: StorageSession = Depends(get_session)):
    if not tracker_service.delete_contact(_ready(session), contact_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found.")
    return {"deleted": contact_id}


class ResumeUpload(BaseModel):
    file_name: str | None = Field(default=None, alias="fileName")
    content: str = Field(min_length=1)


@router.put("/resume")
async def upload_resume(payload: ResumeUpload, session: StorageSession = Depends(get_session)):
    record = _run(tracker_service.save_resume, _ready(session), payload.file_name, payload.content)
    return record.to_json_dict()


@router.patch("/settings")
async def update_settings(payload: dict[str, Any] = Body(...), session: StorageSession = Depends(get_session)):
    record = _run(tracker_service.update_settings, _ready(session), payload)
    return record.to_json_dict()
