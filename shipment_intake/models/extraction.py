"""Ingestion and extraction models for the shipment intake service.

These models represent the stages of one intake request:
    1. Raw input arrives                     → FileSource / TextSource
    2. The ingestion adapter normalizes it   → NormalizedInput
    3. An audit row is written               → ExtractionAttempt
    4. The model output is validated         → ExtractedShipment
    5. The call resolves                     → ShipmentRecord | ExtractionFailure

ExtractedShipment is the boundary between "untyped model output" and typed
domain data: nothing downstream of the extraction service sees the raw
JSON dict.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shipment_intake.models.shipment import PackageWeight


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------
class FileSource(BaseModel):
    """An uploaded document: raw bytes plus the client's file name."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    name: str = Field(min_length=1)
    content_type: str | None = None


class TextSource(BaseModel):
    """Pasted text, typically the body of an email."""

    model_config = ConfigDict(frozen=True)

    content: str


class NormalizedInput(BaseModel):
    """Single text payload handed from the ingestion adapter to extraction."""

    model_config = ConfigDict(frozen=True)

    text: str
    # Public URL of the stored artifact; None for pasted text.
    file_ref: str | None = None
    file_name: str | None = None


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------
class AttemptStatus(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    """Lifecycle of one extraction attempt.

    PROCESSING is the only non-terminal state; an attempt moves out of it
    exactly once.
    """

    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


class ExtractionAttempt(BaseModel):
    """One audit record of a single extraction call (table ``parsing_logs``)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    file_name: str
    file_url: str | None = None
    status: AttemptStatus = AttemptStatus.PROCESSING
    error_message: str | None = None
    # Raw snapshot of what the model returned; may be invalid by design.
    extracted_data: dict[str, Any] | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ExtractionAttempt:
        """Build an attempt from a record-store row, ignoring unknown columns."""
        return cls.model_validate({k: v for k, v in row.items() if k in cls.model_fields})

    @property
    def is_resolved(self) -> bool:
        return self.status is not AttemptStatus.PROCESSING


# ---------------------------------------------------------------------------
# Validated model output
# ---------------------------------------------------------------------------
REQUIRED_FIELDS: tuple[str, ...] = ("customer_name", "address")


class ExtractedShipment(BaseModel):
    """Schema for the JSON object the extraction call must return.

    Optional string fields treat ``""`` as absent.  Keys outside the schema
    are ignored so a chatty model cannot smuggle columns into the store.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    customer_name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    tracking_id: str | None = None
    delivery_date: date | None = None
    package_weight: PackageWeight | None = None
    notes: str | None = None

    @field_validator("tracking_id", "delivery_date", "notes", "package_weight", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def missing_required_fields(payload: dict[str, Any]) -> list[str]:
    """Return the required keys that are absent, null, or blank in *payload*."""
    missing: list[str] = []
    for name in REQUIRED_FIELDS:
        value = payload.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    return missing


# ---------------------------------------------------------------------------
# Typed failure
# ---------------------------------------------------------------------------
class FailureReason(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    """Why an extraction attempt ended in status FAILED."""

    UPSTREAM_ERROR = "upstream_error"
    INVALID_FORMAT = "invalid_format"
    MISSING_FIELDS = "missing_fields"
    INVALID_FIELDS = "invalid_fields"
    STORE_ERROR = "store_error"


class ExtractionFailure(BaseModel):
    """Typed failure returned by the extraction service.

    Always refers to an attempt that has already been resolved to FAILED
    with the same ``message``.
    """

    model_config = ConfigDict(frozen=True)

    reason: FailureReason
    message: str
    attempt_id: str
    extracted_data: dict[str, Any] | None = None
