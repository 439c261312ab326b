from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field, TypeAdapter

from .common import CamelModel, utc_now
from .records import Contact, JobApplication
from .resume import Resume
from .settings import UserSettings


class Category(str, Enum):
    APPLICATIONS = "applications"
    CONTACTS = "contacts"
    RESUME = "resume"
    SETTINGS = "settings"


class Document(CamelModel):
    applications: list[JobApplication] = Field(default_factory=list)
    contacts: list[Contact] = Field(default_factory=list)
    resume: Resume = Field(default_factory=Resume)
    settings: UserSettings = Field(default_factory=UserSettings)
    updated_at: str = Field(default_factory=utc_now)


_ADAPTERS: dict[Category, TypeAdapter] = {
    Category.APPLICATIONS: TypeAdapter(list[JobApplication]),
    Category.CONTACTS: TypeAdapter(list[Contact]),
    Category.RESUME: TypeAdapter(Resume),
    Category.SETTINGS: TypeAdapter(UserSettings),
}


def to_category(name: str | Category) -> Category:
    try:
        return Category(name)
    except ValueError:
        raise ValueError(f"Unknown data type: {name}") from None


def validate_category(name: str | Category, value: Any) -> Any:
    """Coerce a raw category value into its model form.

    ``None`` resets resume/settings to their defaults and list categories to
    an empty list. Raises ``pydantic.ValidationError`` on invalid input.
    """
    category = to_category(name)
    if value is None:
        value = [] if category in (Category.APPLICATIONS, Category.CONTACTS) else {}
    return _ADAPTERS[category].validate_python(value)


def dump_category(name: str | Category, value: Any) -> Any:
    category = to_category(name)
    return _ADAPTERS[category].dump_python(value, mode="json", by_alias=True)
