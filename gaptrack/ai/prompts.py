from __future__ import annotations

import json
from typing import Any, Sequence

from gaptrack.ai.types import ChatMessage

_JSON_ONLY = "Return ONLY valid JSON (no markdown, no explanation)."


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def resume_parse_prompt(resume_text: str) -> str:
    return (
        "You are a resume parser. Extract structured information from this resume.\n\n"
        f"RESUME:\n{resume_text}\n\n"
        f"{_JSON_ONLY} Use this shape:\n"
        '{"name": string, "email": string|null, "phone": string|null, "location": string|null, '
        '"summary": string, "skills": {"technical": [string], "tools": [string], "soft": [string]}, '
        '"experience": [{"title": string, "company": string, "duration": string, "highlights": [string]}], '
        '"education": [{"degree": string, "institution": string, "year": string}], '
        '"certifications": [string]}\n\n'
        "Extract only what is in the resume. Use null or an empty list when something is missing."
    )


def job_description_prompt(job_description: str) -> str:
    return (
        "You are a job description analyzer. Extract structured requirements from this posting.\n\n"
        f"JOB DESCRIPTION:\n{job_description}\n\n"
        f"{_JSON_ONLY} Use this shape:\n"
        '{"company": string|null, "role": string, "location": string, "salary": string|null, '
        '"requirements": {"mustHave": [string], "niceToHave": [string], "experience": string, '
        '"education": string|null}, "responsibilities": [string], "redFlags": [string], '
        '"keywords": [string]}'
    )


def gap_analysis_prompt(parsed_resume: Any, parsed_jd: Any) -> str:
    return (
        "Compare the candidate's resume against the job requirements.\n\n"
        f"RESUME:\n{_dump(parsed_resume)}\n\n"
        f"JOB:\n{_dump(parsed_jd)}\n\n"
        f"{_JSON_ONLY} Use this shape:\n"
        '{"matchScore": 0-100, "summary": string, '
        '"strengths": [{"skill": string, "evidence": string, "relevance": string}], '
        '"gaps": [{"requirement": string, "status": "missing"|"weak", "suggestion": string}], '
        '"resumeTips": [string], "interviewTips": [string], '
        '"keywords": {"present": [string], "missing": [string]}}\n\n'
        "Search the whole resume, not only the skills list. Treat acronyms and synonyms as matches."
    )


def tailored_summary_prompt(parsed_resume: Any, parsed_jd: Any) -> str:
    return (
        "Write a professional summary tailored to this job.\n\n"
        f"CANDIDATE:\n{_dump(parsed_resume)}\n\n"
        f"TARGET JOB:\n{_dump(parsed_jd)}\n\n"
        "Keep it under 50 words. Return ONLY the summary text, no JSON."
    )


def resume_feedback_prompt(parsed_resume: Any, mode: str = "normal") -> str:
    if mode == "roast":
        tone = "Be blunt and sarcastic about weak spots, but keep every point actionable."
    else:
        tone = "Be direct and clinical. Treat the resume as code that needs debugging."
    return (
        f"You review resumes. {tone}\n\n"
        f"RESUME:\n{_dump(parsed_resume)}\n\n"
        f"{_JSON_ONLY} Use this shape:\n"
        '{"score": 0-100, "summary": string, "strengths": [string], '
        '"improvements": [string], "tips": [string]}'
    )


def chat_prompt(
    history: Sequence[ChatMessage],
    context: dict[str, Any] | None = None,
    mode: str = "normal",
) -> str:
    persona = (
        "You are a sharp, sarcastic career coach."
        if mode == "roast"
        else "You are a concise, practical career coach."
    )
    history_lines: list[str] = []
    for msg in history:
        content = (msg.content or "").strip()
        if not content:
            continue
        label = "User" if msg.role == "user" else "Assistant"
        history_lines.append(f"{label}: {content}")

    parts = [persona, "Reply in plain text. Do not return JSON or markdown code blocks."]
    if context:
        parts.append(f"CONTEXT:\n{_dump(context)}")
    parts.append("CONVERSATION:\n" + "\n".join(history_lines))
    parts.append("Assistant:")
    return "\n\n".join(parts)
