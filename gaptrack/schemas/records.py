from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from .common import CamelModel, new_id, utc_now

MAX_NOTE_WORDS = 200


class ApplicationStatus(str, Enum):
    DISCOVERED = "discovered"
    APPLIED = "applied"
    SCREENING = "screening"
    INTERVIEW = "interview"
    OFFER = "offer"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class WorkType(str, Enum):
    ONSITE = "onsite"
    HYBRID = "hybrid"
    REMOTE = "remote"


def _lower(value: Any) -> Any:
    if isinstance(value, str):
        normalized = value.strip().lower()
        return normalized or None
    return value


class JobApplication(CamelModel):
    id: str = Field(default_factory=new_id)
    company: str = ""
    role: str = ""
    status: ApplicationStatus = ApplicationStatus.DISCOVERED
    work_type: WorkType | None = None
    parsed_jd: dict[str, Any] | None = Field(default=None, alias="parsedJD")
    gap_analysis: dict[str, Any] | None = None
    linked_contacts: list[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        return _lower(value) or ApplicationStatus.DISCOVERED

    @field_validator("work_type", mode="before")
    @classmethod
    def _normalize_work_type(cls, value: Any) -> Any:
        return _lower(value)

    @field_validator("linked_contacts", mode="before")
    @classmethod
    def _dedupe_contacts(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (list, tuple, set)):
            seen: list[str] = []
            for item in value:
                if item and item not in seen:
                    seen.append(item)
            return seen
        return value


class Contact(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str
    role: str | None = None
    company: str | None = None
    email: str | None = None
    phone: str | None = None
    linkedin: str | None = None
    twitter: str | None = None
    github: str | None = None
    notes: str | None = None
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("name is required")
        return stripped

    @field_validator("notes")
    @classmethod
    def _validate_notes(cls, value: str | None) -> str | None:
        if value is not None and len(value.split()) > MAX_NOTE_WORDS:
            raise ValueError(f"notes must be at most {MAX_NOTE_WORDS} words")
        return value
