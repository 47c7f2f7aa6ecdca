"""Submission store: append-only persistence with read-all retrieval.

Two backends share the ``SubmissionStore`` interface:

- ``JsonFileSubmissionStore`` keeps the whole collection as one
  pretty-printed JSON array. Appends are serialised by an asyncio lock and
  written through a temp file + fsync + atomic rename, so concurrent
  requests in one process never lose each other's records.
- ``SqlSubmissionStore`` inserts one row per submission via SQLAlchemy's
  async engine, listed back in insertion order.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from . import models
from .config import StoreBackend, StoreSettings
from .db import create_engine, create_session_maker, redact_url
from .schemas import Submission

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for submission store failures."""
    pass


class StoreWriteError(StoreError):
    """Raised when a submission cannot be durably appended."""
    pass


class StoreReadError(StoreError):
    """Raised when the stored collection cannot be read."""
    pass


class SubmissionStore(ABC):
    """Durable, ordered collection of submissions."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Where the collection lives, safe to log."""

    @abstractmethod
    async def init(self) -> None:
        """Create an empty collection if none exists. Idempotent."""

    @abstractmethod
    async def append(self, record: Submission) -> None:
        """Append ``record``; durable once this returns.

        Raises:
            StoreWriteError: If the record could not be written
        """

    @abstractmethod
    async def list_all(self) -> list[Submission]:
        """All submissions, oldest first.

        Raises:
            StoreReadError: If the collection is missing or unparsable
        """

    async def close(self) -> None:
        return None


class JsonFileSubmissionStore(SubmissionStore):
    """Submissions kept as a JSON array in a single file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path).resolve()
        self._lock = asyncio.Lock()

    @property
    def location(self) -> str:
        return str(self.path)

    async def init(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._init_sync)

    def _init_sync(self) -> None:
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._write_sync([])
        logger.info(f"Created empty submissions file: {self.path}")

    async def append(self, record: Submission) -> None:
        async with self._lock:
            try:
                await asyncio.to_thread(self._append_sync, record)
            except StoreWriteError:
                raise
            except (OSError, ValueError, TypeError) as e:
                logger.error(f"Failed to append submission {record.id}: {e}")
                raise StoreWriteError(f"Could not write submission: {e}") from e

    def _append_sync(self, record: Submission) -> None:
        try:
            existing = self._read_sync()
        except StoreReadError as e:
            raise StoreWriteError(str(e)) from e
        existing.append(record.model_dump(mode="json"))
        self._write_sync(existing)

    async def list_all(self) -> list[Submission]:
        async with self._lock:
            raw = await asyncio.to_thread(self._read_sync)
        try:
            return [Submission.model_validate(item) for item in raw]
        except ValueError as e:
            raise StoreReadError(f"Malformed submission record in {self.path}: {e}") from e

    def _read_sync(self) -> list[dict]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise StoreReadError(f"Submissions file not found: {self.path}") from e
        except (OSError, ValueError) as e:
            raise StoreReadError(f"Could not read submissions file {self.path}: {e}") from e
        if not isinstance(data, list):
            raise StoreReadError(f"Submissions file {self.path} does not hold a JSON array")
        return data

    def _write_sync(self, data: list[dict]) -> None:
        payload = json.dumps(data, indent=2, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class SqlSubmissionStore(SubmissionStore):
    """Submissions stored one row each in ``contact_submissions``."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._session_maker = create_session_maker(engine)

    @classmethod
    def from_settings(cls, config: StoreSettings) -> SqlSubmissionStore:
        return cls(create_engine(config))

    @property
    def location(self) -> str:
        return redact_url(self.engine.url)

    async def init(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(models.Base.metadata.create_all)

    async def append(self, record: Submission) -> None:
        row = models.ContactSubmission(**record.model_dump())
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    session.add(row)
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert submission {record.id}: {e}")
            raise StoreWriteError(f"Could not write submission: {e}") from e

    async def list_all(self) -> list[Submission]:
        query = select(models.ContactSubmission).order_by(models.ContactSubmission.seq)
        try:
            async with self._session_maker() as session:
                result = await session.execute(query)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StoreReadError(f"Could not read submissions: {e}") from e
        return [Submission.model_validate(row) for row in rows]

    async def close(self) -> None:
        await self.engine.dispose()


def build_store(config: StoreSettings) -> SubmissionStore:
    """Instantiate the configured store backend."""
    if config.backend == StoreBackend.SQL:
        return SqlSubmissionStore.from_settings(config)
    return JsonFileSubmissionStore(config.path)
