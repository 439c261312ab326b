from __future__ import annotations

from typing import Any, Mapping

from gaptrack.schemas import Category, Contact, JobApplication, Resume, UserSettings, new_id, utc_now
from gaptrack.storage.sync import DocumentSync

_IMMUTABLE = ("id", "createdAt", "created_at")


class RecordNotFound(LookupError):
    pass


def _dump(model: Any) -> dict[str, Any]:
    return model.to_json_dict()


def _clean_updates(updates: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in updates.items() if key not in _IMMUTABLE}


def add_application(sync: DocumentSync, application: Mapping[str, Any]) -> JobApplication:
    now = utc_now()
    record = {**_clean_updates(application), "id": new_id(), "createdAt": now, "updatedAt": now}
    items = [_dump(app) for app in sync.document.applications] + [record]
    stored = sync.replace_category(Category.APPLICATIONS, items)
    return stored[-1]


def update_application(sync: DocumentSync, application_id: str, updates: Mapping[str, Any]) -> JobApplication:
    items: list[dict[str, Any]] = []
    found = False
    for app in sync.document.applications:
        data = _dump(app)
        if app.id == application_id:
            data = {**data, **_clean_updates(updates), "updatedAt": utc_now()}
            found = True
        items.append(data)
    if not found:
        raise RecordNotFound(f"Application '{application_id}' not found")
    stored = sync.replace_category(Category.APPLICATIONS, items)
    return next(app for app in stored if app.id == application_id)


def delete_application(sync: DocumentSync, application_id: str) -> bool:
    current = sync.document.applications
    remaining = [app for app in current if app.id != application_id]
    if len(remaining) == len(current):
        return False
    sync.replace_category(Category.APPLICATIONS, remaining)
    return True


def link_contact(sync: DocumentSync, application_id: str, contact_id: str) -> JobApplication:
    app = _find_application(sync, application_id)
    return update_application(sync, application_id, {"linkedContacts": [*app.linked_contacts, contact_id]})


def unlink_contact(sync: DocumentSync, application_id: str, contact_id: str) -> JobApplication:
    app = _find_application(sync, application_id)
    linked = [cid for cid in app.linked_contacts if cid != contact_id]
    return update_application(sync, application_id, {"linkedContacts": linked})


def _find_application(sync: DocumentSync, application_id: str) -> JobApplication:
    for app in sync.document.applications:
        if app.id == application_id:
            return app
    raise RecordNotFound(f"Application '{application_id}' not found")


def linked_contacts(sync: DocumentSync, application_id: str) -> list[Contact]:
    """Contacts an application links to; ids with no matching contact are skipped."""
    wanted = _find_application(sync, application_id).linked_contacts
    by_id = {contact.id: contact for contact in sync.document.contacts}
    return [by_id[cid] for cid in wanted if cid in by_id]


def upsert_contact(sync: DocumentSync, contact: Mapping[str, Any]) -> Contact:
    """Update the contact with a matching ``id``, or create one when ``id`` is absent."""
    now = utc_now()
    contact_id = contact.get("id")
    items = [_dump(c) for c in sync.document.contacts]

    if contact_id:
        for index, existing in enumerate(items):
            if existing["id"] == contact_id:
                items[index] = {**existing, **_clean_updates(contact), "updatedAt": now}
                break
        else:
            raise RecordNotFound(f"Contact '{contact_id}' not found")
    else:
        contact_id = new_id()
        items.append({**_clean_updates(contact), "id": contact_id, "createdAt": now, "updatedAt": now})

    stored = sync.replace_category(Category.CONTACTS, items)
    return next(c for c in stored if c.id == contact_id)


def delete_contact(sync: DocumentSync, contact_id: str) -> bool:
    current = sync.document.contacts
    remaining = [c for c in current if c.id != contact_id]
    if len(remaining) == len(current):
        return False
    sync.replace_category(Category.CONTACTS, remaining)
    return True


def save_resume(sync: DocumentSync, file_name: str | None, content: str) -> Resume:
    resume = {**_dump(sync.document.resume), "fileName": file_name, "content": content, "uploadedAt": utc_now()}
    return sync.replace_category(Category.RESUME, resume)


def save_parsed_resume(sync: DocumentSync, parsed: Mapping[str, Any]) -> Resume:
    """Store AI-parsed fields next to the raw text, flattened onto the resume."""
    current = _dump(sync.document.resume)
    resume = {**current, **dict(parsed), "parsedData": dict(parsed), "parsedAt": utc_now()}
    for key in ("version", "createdAt", "fileName", "content", "uploadedAt"):
        resume[key] = current.get(key)
    return sync.replace_category(Category.RESUME, resume)


def update_settings(sync: DocumentSync, updates: Mapping[str, Any]) -> UserSettings:
    settings = {**_dump(sync.document.settings), **_clean_updates(updates)}
    return sync.replace_category(Category.SETTINGS, settings)
