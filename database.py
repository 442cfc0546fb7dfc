"""
Document store

The whole site state lives in one JSON document holding two ordered
collections:
- "projects": portfolio entries, in display order
- "contacts": messages submitted through the contact form

Every operation reads the document, optionally mutates it, and writes it
back whole. Sessions are serialized through a single lock so two concurrent
writers can never overwrite each other's changes.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, NamedTuple, Optional

import aiofiles
import aiofiles.os
from bson import ObjectId

from config import Settings
from errors import StorageUnavailable

logger = logging.getLogger(__name__)

COLLECTIONS = ("projects", "contacts")


class Collections(NamedTuple):
    projects: list
    contacts: list


def empty_document() -> dict:
    return {name: [] for name in COLLECTIONS}


def new_id() -> str:
    return str(ObjectId())


def utc_timestamp() -> str:
    """ISO-8601 UTC time with millisecond precision, e.g. 2024-01-31T09:15:00.123Z"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DocumentStore:
    """
    Owns the in-memory copy of the document and its durable backing.

    Subclasses only implement raw text access; parsing, initialization and
    locking live here.
    """

    backend = "abstract"

    def __init__(self):
        self._data: Optional[dict] = None
        self._lock = asyncio.Lock()

    async def _read_raw(self) -> Optional[str]:
        """Return the stored text, or None when nothing has been stored yet."""
        raise NotImplementedError

    async def _write_raw(self, text: str) -> None:
        raise NotImplementedError

    def describe(self) -> str:
        return self.backend

    async def load(self) -> None:
        try:
            raw = await self._read_raw()
        except OSError as exc:
            raise StorageUnavailable(f"Cannot read {self.describe()}: {exc}") from exc

        if raw is None:
            logger.info("Initializing empty document store at %s", self.describe())
            self._data = empty_document()
            await self.save()
            return

        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise StorageUnavailable(f"Corrupt document in {self.describe()}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageUnavailable(f"Corrupt document in {self.describe()}: root is not an object")
        for name in COLLECTIONS:
            if data.get(name) is None:
                data[name] = []
            elif not isinstance(data[name], list):
                raise StorageUnavailable(
                    f"Corrupt document in {self.describe()}: '{name}' is not a list"
                )
        self._data = data

    async def save(self) -> None:
        if self._data is None:
            raise StorageUnavailable("Document store has not been loaded")
        text = json.dumps(self._data, indent=2, ensure_ascii=False)

        # A save that has started finishes even if the caller is cancelled, and
        # the caller (still holding the session lock) waits for it to land.
        write = asyncio.ensure_future(self._write_raw(text))
        cancelled = False
        while not write.done():
            try:
                await asyncio.wait({write})
            except asyncio.CancelledError:
                cancelled = True
        try:
            write.result()
        except OSError as exc:
            raise StorageUnavailable(f"Cannot write {self.describe()}: {exc}") from exc
        if cancelled:
            raise asyncio.CancelledError()

    def collections(self) -> Collections:
        if self._data is None:
            raise StorageUnavailable("Document store has not been loaded")
        return Collections(self._data["projects"], self._data["contacts"])

    @asynccontextmanager
    async def session(self, write: bool = False) -> AsyncIterator[Collections]:
        """
        Load the document and hand out its collections under the store lock.

        With write=True the document is saved when the block exits cleanly;
        an exception raised inside the block leaves the stored copy untouched.
        """
        async with self._lock:
            await self.load()
            yield self.collections()
            if write:
                await self.save()


class JsonFileDocumentStore(DocumentStore):
    """Document kept in a local JSON file, replaced atomically on save."""

    backend = "file"

    def __init__(self, path: str | os.PathLike):
        super().__init__()
        self.path = Path(path)

    def describe(self) -> str:
        return str(self.path)

    async def _read_raw(self) -> Optional[str]:
        if not await aiofiles.os.path.exists(self.path):
            return None
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            text = await f.read()
        # A zero-length file holds no document yet.
        return text if text.strip() else None

    async def _write_raw(self, text: str) -> None:
        await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(text)
                await f.flush()
            await aiofiles.os.replace(tmp_path, self.path)
        except OSError:
            with suppress(OSError):
                await aiofiles.os.remove(tmp_path)
            raise


class InMemoryDocumentStore(DocumentStore):
    """Test double keeping the serialized document in memory."""

    backend = "memory"

    def __init__(self, initial: Optional[dict] = None):
        super().__init__()
        self.raw: Optional[str] = None if initial is None else json.dumps(initial)

    async def _read_raw(self) -> Optional[str]:
        return self.raw

    async def _write_raw(self, text: str) -> None:
        self.raw = text

    def reset(self) -> None:
        self.raw = None
        self._data = None


def create_store(settings: Settings) -> DocumentStore:
    if settings.use_in_memory_store:
        return InMemoryDocumentStore()
    return JsonFileDocumentStore(settings.db_file)
