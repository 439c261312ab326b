from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, Request, status
from pydantic import ValidationError

from gaptrack.services.ai_service import AIService
from gaptrack.storage import StorageError, StorageSession

_CONFLICT_CODES = {"needs_setup", "reconnect_needed", "storage_locked"}


def get_session(request: Request) -> StorageSession:
    return request.app.state.storage


def get_ai(request: Request) -> AIService:
    return request.app.state.ai


def raise_storage_error(exc: StorageError) -> NoReturn:
    code = status.HTTP_409_CONFLICT if exc.code in _CONFLICT_CODES else status.HTTP_500_INTERNAL_SERVER_ERROR
    raise HTTPException(status_code=code, detail={"code": exc.code, "message": str(exc)}) from exc


def raise_validation_error(exc: ValidationError) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=exc.errors(include_url=False, include_context=False),
    ) from exc
