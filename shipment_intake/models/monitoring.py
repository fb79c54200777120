"""Monitoring and change-notification models.

``RecordChange`` is what the change notifier publishes after every
successful mutation; ``SystemStats`` is the dashboard summary served by the
monitoring service.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChangeAction(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    INSERT = "insert"
    UPDATE = "update"


class RecordChange(BaseModel):
    """A single committed mutation on one row of the record store."""

    model_config = ConfigDict(frozen=True)

    table: str
    action: ChangeAction
    record_id: str
    record: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )


class SystemStats(BaseModel):
    """Dashboard counters for shipments and parsing attempts."""

    model_config = ConfigDict(frozen=True)

    total_shipments: int = 0
    today_shipments: int = 0
    successful_parsing: int = 0
    failed_parsing: int = 0
    processing_parsing: int = 0
