from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from gaptrack.ai.lifecycle import RequestLifecycle
from gaptrack.ai.providers.ollama_provider import OllamaProvider
from gaptrack.ai.types import AIResult, ErrorKind, Failure
from gaptrack.api.v1.deps import get_ai, get_session
from gaptrack.services import tracker_service
from gaptrack.services.ai_service import AIService
from gaptrack.storage import StorageError, StorageSession

router = APIRouter()


class TextRequest(BaseModel):
    text: str = Field(min_length=1)


class ParseResumeRequest(TextRequest):
    save: bool = False


class ParseJobRequest(TextRequest):
    application_id: str | None = Field(default=None, alias="applicationId")


class MatchRequest(BaseModel):
    resume: dict[str, Any] | None = None
    job: dict[str, Any] | None = None
    application_id: str | None = Field(default=None, alias="applicationId")


class FeedbackRequest(BaseModel):
    resume: dict[str, Any] | None = None
    mode: Literal["normal", "roast"] = "normal"


class ChatTurn(BaseModel):
    role: Literal["system", "user", "assistant"] = "user"
    content: str = ""


class ChatRequest(BaseModel):
    history: list[ChatTurn] = Field(min_length=1)
    context: dict[str, Any] | None = None
    mode: Literal["normal", "roast"] = "normal"


async def _lifecycle(session: StorageSession, ai: AIService) -> RequestLifecycle:
    return await ai.lifecycle_for(session.document.settings)


def _stored_resume(session: StorageSession) -> dict[str, Any] | None:
    resume = session.document.resume
    return resume.parsed_data or None


def _stored_job(session: StorageSession, application_id: str | None) -> dict[str, Any] | None:
    if not application_id:
        return None
    for app in session.document.applications:
        if app.id == application_id:
            return app.parsed_jd
    return None


def _persist(result: AIResult, action, session: StorageSession, *args) -> AIResult:
    """Store a successful result; a storage problem replaces it with a persistence failure."""
    try:
        action(session.require_ready(), *args)
    except StorageError as exc:
        return Failure(kind=ErrorKind.PERSISTENCE, error=str(exc), code=exc.code)
    except tracker_service.RecordNotFound as exc:
        return Failure(kind=ErrorKind.PERSISTENCE, error=str(exc), code="not_found", recoverable=False)
    return result


@router.post("/ai/parse-resume")
async def parse_resume(
    payload: ParseResumeRequest,
    session: StorageSession = Depends(get_session),
    ai: AIService = Depends(get_ai),
):
    lifecycle = await _lifecycle(session, ai)
    result = await lifecycle.invoke("parse_resume", payload.text)
    if result.success and payload.save:
        result = _persist(result, tracker_service.save_parsed_resume, session, result.data)
    return result.to_dict()


@router.post("/ai/parse-job-description")
async def parse_job_description(
    payload: ParseJobRequest,
    session: StorageSession = Depends(get_session),
    ai: AIService = Depends(get_ai),
):
    lifecycle = await _lifecycle(session, ai)
    result = await lifecycle.invoke("parse_job_description", payload.text)
    if result.success and payload.application_id:
        result = _persist(
            result,
            tracker_service.update_application,
            session,
            payload.application_id,
            {"parsedJD": result.data},
        )
    return result.to_dict()


@router.post("/ai/analyze-gap")
async def analyze_gap(
    payload: MatchRequest,
    session: StorageSession = Depends(get_session),
    ai: AIService = Depends(get_ai),
):
    resume = payload.resume or _stored_resume(session)
    job = payload.job or _stored_job(session, payload.application_id)
    lifecycle = await _lifecycle(session, ai)
    result = await lifecycle.invoke("analyze_gap", resume, job)
    if result.success and payload.application_id:
        result = _persist(
            result,
            tracker_service.update_application,
            session,
            payload.application_id,
            {"gapAnalysis": result.data},
        )
    return result.to_dict()


@router.post("/ai/tailored-summary")
async def tailored_summary(
    payload: MatchRequest,
    session: StorageSession = Depends(get_session),
    ai: AIService = Depends(get_ai),
):
    resume = payload.resume or _stored_resume(session)
    job = payload.job or _stored_job(session, payload.application_id)
    lifecycle = await _lifecycle(session, ai)
    result = await lifecycle.invoke("generate_tailored_summary", resume, job)
    return result.to_dict()


@router.post("/ai/analyze-resume")
async def analyze_resume(
    payload: FeedbackRequest,
    session: StorageSession = Depends(get_session),
    ai: AIService = Depends(get_ai),
):
    resume = payload.resume or _stored_resume(session)
    lifecycle = await _lifecycle(session, ai)
    result = await lifecycle.invoke("analyze_resume", resume, payload.mode)
    return result.to_dict()


@router.post("/ai/chat")
async def chat(
    payload: ChatRequest,
    session: StorageSession = Depends(get_session),
    ai: AIService = Depends(get_ai),
):
    context = payload.context
    if context is None:
        document = session.document
        context = {
            "resume": _stored_resume(session),
            "jobs": [app.to_json_dict() for app in document.applications],
        }
    history = [turn.model_dump() for turn in payload.history]
    lifecycle = await _lifecycle(session, ai)
    result = await lifecycle.invoke("chat", history, context, payload.mode)
    return result.to_dict()


@router.post("/ai/test-connection")
async def test_connection(session: StorageSession = Depends(get_session), ai: AIService = Depends(get_ai)):
    lifecycle = await _lifecycle(session, ai)
    result = await lifecycle.invoke("test_connection")
    return result.to_dict()


@router.post("/ai/cancel")
async def cancel(session: StorageSession = Depends(get_session), ai: AIService = Depends(get_ai)):
    lifecycle = await _lifecycle(session, ai)
    lifecycle.cancel()
    return {"isProcessing": lifecycle.is_processing}


@router.get("/ai/status")
async def ai_status(session: StorageSession = Depends(get_session), ai: AIService = Depends(get_ai)):
    lifecycle = await _lifecycle(session, ai)
    gateway = lifecycle.gateway
    return {
        "configured": lifecycle.is_configured,
        "provider": gateway.provider if gateway else None,
        "isProcessing": lifecycle.is_processing,
        "error": lifecycle.error,
    }


@router.get("/ai/ollama/status")
async def ollama_status(model: str | None = None, session: StorageSession = Depends(get_session)):
    wanted = model or session.document.settings.ollama_model
    ollama = await OllamaProvider(model=wanted).check_status(wanted)
    return ollama.to_dict()
