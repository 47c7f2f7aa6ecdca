"""Submission ingestion workflow.

Accepting one submission means:
1. Build the record from the input fields plus server-assigned id/timestamp
2. Append it to the store (failure fails the request, nothing is sent)
3. Notify; the outcome is logged and never changes the result
4. Return the stored record

Step 3 cannot roll back step 2: a stored submission stays stored even when
its notification fails.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import pydantic

from ..notifier import NotificationResult
from ..schemas import Submission, SubmissionIn, format_timestamp
from ..store import SubmissionStore

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SubmissionValidationError(Exception):
    """Raised when the input is not a contact form payload at all.

    Field contents are never validated; only the payload shape is.
    """
    pass


class Notifier(Protocol):
    async def notify(self, record: Submission) -> NotificationResult: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionIdGenerator:
    """Epoch-millisecond ids, strictly increasing within the process."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self, moment: datetime) -> int:
        candidate = (moment - EPOCH) // timedelta(milliseconds=1)
        with self._lock:
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
        return candidate


class SubmissionWorkflow:
    """Orchestrates store append and notification for one submission."""

    def __init__(
        self,
        store: SubmissionStore,
        notifier: Notifier,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.ids = SubmissionIdGenerator()

    def build_record(self, data: SubmissionIn | Mapping[str, Any]) -> Submission:
        if not isinstance(data, SubmissionIn):
            try:
                data = SubmissionIn.model_validate(data)
            except pydantic.ValidationError as e:
                raise SubmissionValidationError(str(e)) from e
        moment = self.clock()
        return Submission(
            **data.model_dump(),
            timestamp=format_timestamp(moment),
            id=self.ids.next_id(moment),
        )

    async def submit(self, data: SubmissionIn | Mapping[str, Any]) -> Submission:
        """Accept one submission.

        Args:
            data: Contact form fields (name, email, service, message)

        Returns:
            The stored Submission including its assigned id and timestamp

        Raises:
            SubmissionValidationError: If ``data`` is not a form payload
            StoreWriteError: If the record could not be persisted
        """
        record = self.build_record(data)

        await self.store.append(record)
        logger.info(f"New submission saved: id={record.id} service={record.service!r}")

        await self._notify(record)
        return record

    async def _notify(self, record: Submission) -> None:
        try:
            result = await self.notifier.notify(record)
        except Exception as e:
            logger.error(f"Notifier raised for submission {record.id}: {e}", exc_info=True)
            return

        if result.delivered:
            logger.info(f"Email notification sent for submission {record.id}")
        elif not result.attempted:
            logger.debug(f"Email notification skipped for submission {record.id} (notifier disabled)")
        else:
            logger.warning(f"Email sending failed for submission {record.id}: {result.error}")

    async def list_all(self) -> list[Submission]:
        """All stored submissions, oldest first.

        Raises:
            StoreReadError: If the store cannot be read
        """
        return await self.store.list_all()
