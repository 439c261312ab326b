from .common import CamelModel, new_id, utc_now
from .document import Category, Document, dump_category, to_category, validate_category
from .records import ApplicationStatus, Contact, JobApplication, WorkType
from .resume import Resume
from .settings import ProviderName, UserSettings

__all__ = [
    "CamelModel",
    "new_id",
    "utc_now",
    "Category",
    "Document",
    "dump_category",
    "to_category",
    "validate_category",
    "ApplicationStatus",
    "Contact",
    "JobApplication",
    "WorkType",
    "Resume",
    "ProviderName",
    "UserSettings",
]
