from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from .common import CamelModel, utc_now


class Resume(CamelModel):
    version: int = 1
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)
    file_name: str | None = None
    content: str | None = None
    parsed_data: dict[str, Any] | None = None
    uploaded_at: str | None = None
    parsed_at: str | None = None
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    summary: str | None = None
    skills: Any = Field(default_factory=list)
    experience: list[Any] = Field(default_factory=list)
    education: list[Any] = Field(default_factory=list)
    certifications: list[Any] = Field(default_factory=list)

    @field_validator("experience", "education", "certifications", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value
