"""
Project and contact record lifecycles on top of the document store.

Services never keep collections between calls: each operation opens a store
session, which re-reads the document.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional, Sequence, Set, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from database import DocumentStore, new_id, utc_timestamp
from errors import NotFound, StorageUnavailable, ValidationError
from notifications import NotificationDispatcher
from schemas import Contact, Project

logger = logging.getLogger(__name__)

UPDATABLE_PROJECT_FIELDS = ("title", "description", "url", "tags")

Record = TypeVar("Record", bound=BaseModel)


def _find_index(records: list, record_id: str) -> Optional[int]:
    for idx, record in enumerate(records):
        if isinstance(record, dict) and record.get("id") == record_id:
            return idx
    return None


def _record(model: Type[Record], data: Any) -> Record:
    """Validate a stored record; one that does not fit the schema means a damaged document."""
    try:
        return model.model_validate(data)
    except SchemaError as exc:
        record_id = data.get("id") if isinstance(data, dict) else None
        raise StorageUnavailable(
            f"Malformed {model.__name__.lower()} record {record_id!r}: {exc.error_count()} error(s)"
        ) from exc


class ProjectsService:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def list(self) -> List[Project]:
        async with self.store.session() as cols:
            return [_record(Project, p) for p in cols.projects]

    async def get(self, project_id: str) -> Project:
        async with self.store.session() as cols:
            idx = _find_index(cols.projects, project_id)
            if idx is None:
                raise NotFound()
            return _record(Project, cols.projects[idx])

    async def create(
        self,
        title: Optional[str],
        description: Optional[str] = None,
        url: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Project:
        if not title:
            raise ValidationError("Title required")
        project = Project(
            id=new_id(),
            title=title,
            description=description or "",
            url=url or "",
            tags=list(tags or []),
        )
        async with self.store.session(write=True) as cols:
            cols.projects.append(project.model_dump())
        logger.info("Created project %s", project.id)
        return project

    async def update(self, project_id: str, fields: Mapping[str, Any]) -> Project:
        """
        Shallow-merge `fields` over the stored project.

        Keys present in `fields` overwrite, even when empty; absent keys are
        left alone. `id` and unknown keys are ignored. A null description,
        url or tags resets that field to its default.
        """
        changes = {k: v for k, v in fields.items() if k in UPDATABLE_PROJECT_FIELDS}
        if "title" in changes and not changes["title"]:
            raise ValidationError("Title required")
        for key in ("description", "url", "tags"):
            if key in changes and changes[key] is None:
                changes[key] = [] if key == "tags" else ""

        async with self.store.session(write=True) as cols:
            idx = _find_index(cols.projects, project_id)
            if idx is None:
                raise NotFound()
            merged = {**cols.projects[idx], **changes}
            project = _record(Project, merged)
            cols.projects[idx] = merged
        logger.info("Updated project %s (%s)", project_id, ", ".join(sorted(changes)) or "no changes")
        return project

    async def remove(self, project_id: str) -> bool:
        async with self.store.session(write=True) as cols:
            idx = _find_index(cols.projects, project_id)
            while idx is not None:
                del cols.projects[idx]
                idx = _find_index(cols.projects, project_id)
        logger.info("Removed project %s", project_id)
        return True


class ContactsService:
    def __init__(self, store: DocumentStore, dispatcher: Optional[NotificationDispatcher] = None):
        self.store = store
        self.dispatcher = dispatcher
        self._pending: Set[asyncio.Task] = set()

    async def list(self) -> List[Contact]:
        async with self.store.session() as cols:
            return [_record(Contact, c) for c in cols.contacts]

    async def create(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        message: Optional[str] = None,
    ) -> Contact:
        if not message or not (name or email):
            raise ValidationError("Provide at least message and one contact field (name or email)")
        contact = Contact(
            id=new_id(),
            name=name or "",
            email=email or "",
            message=message,
            created_at=utc_timestamp(),
        )
        async with self.store.session(write=True) as cols:
            cols.contacts.append(contact.model_dump(by_alias=True))
        logger.info("Stored contact %s", contact.id)
        self._dispatch(contact)
        return contact

    def _dispatch(self, contact: Contact) -> None:
        if self.dispatcher is None:
            return
        task = asyncio.create_task(self.dispatcher.notify(contact))
        self._pending.add(task)
        task.add_done_callback(self._on_dispatch_done)

    def _on_dispatch_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Notification task failed", exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for notifications still in flight."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
