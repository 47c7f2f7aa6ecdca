"""Pydantic schemas for contact submissions."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. ``2025-01-01T12:00:00.000Z``."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class SubmissionIn(BaseModel):
    """Inbound contact form payload.

    Field values are stored exactly as sent, whatever their JSON type;
    no type or format checks are applied. Unknown keys (including any
    client supplied ``id`` or ``timestamp``) are dropped.
    """
    model_config = ConfigDict(extra="ignore")

    name: Any = None
    email: Any = None
    service: Any = None
    message: Any = None


class Submission(BaseModel):
    """A stored contact submission."""
    model_config = ConfigDict(from_attributes=True)

    name: Any = None
    email: Any = None
    service: Any = None
    message: Any = None
    timestamp: str
    id: int

    @property
    def received_at(self) -> datetime:
        return parse_timestamp(self.timestamp)
