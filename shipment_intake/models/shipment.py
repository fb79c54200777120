"""Shipment order models for the shipment intake service.

Defines Pydantic v2 models for persisted shipment records and the partial
update submitted by a manual edit.  Records use frozen config to enforce
immutability; edits produce a new record from the store rather than
mutating an instance in place.

Lifecycle:
    1. A successful extraction inserts a ShipmentRecord (status PENDING,
       parsed_by_ai=True) linked to its parsing log via parsing_log_id.
    2. Back-office staff correct or advance it through ShipmentUpdate.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any
from uuid import uuid4

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _reject_bool(value: Any) -> Any:
    # bool is an int subclass, so lax float parsing would turn true into 1.0.
    if isinstance(value, bool):
        raise ValueError("must be a number, not a boolean")
    return value


# Kilograms; finite and non-negative.
PackageWeight = Annotated[
    float,
    BeforeValidator(_reject_bool),
    Field(ge=0.0, allow_inf_nan=False),
]


class ShipmentStatus(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    """Fulfilment status of a shipment order."""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ShipmentRecord(BaseModel):
    """A validated, persisted shipment order (table ``shipment_orders``)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    customer_name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    tracking_id: str | None = None
    delivery_date: date | None = None
    package_weight: PackageWeight | None = None
    notes: str | None = None
    status: ShipmentStatus = ShipmentStatus.PENDING
    original_file_url: str | None = None
    original_file_name: str | None = None
    parsed_by_ai: bool = True
    # The parsing log entry whose successful extraction created this record.
    parsing_log_id: str | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ShipmentRecord:
        """Build a record from a record-store row, ignoring unknown columns."""
        return cls.model_validate({k: v for k, v in row.items() if k in cls.model_fields})


# Columns a manual edit is allowed to touch.  Identity, timestamps and
# provenance (file reference, parsed_by_ai, parsing_log_id) stay fixed.
EDITABLE_FIELDS = frozenset({
    "customer_name",
    "address",
    "tracking_id",
    "delivery_date",
    "package_weight",
    "notes",
    "status",
})


class ShipmentUpdate(BaseModel):
    """A partial manual edit of a shipment order.

    Only fields explicitly set by the caller are applied (see
    :meth:`changes`).  ``customer_name`` and ``address`` may be changed
    but never blanked.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    customer_name: str | None = None
    address: str | None = None
    tracking_id: str | None = None
    delivery_date: date | None = None
    package_weight: PackageWeight | None = None
    notes: str | None = None
    status: ShipmentStatus | None = None

    @field_validator("customer_name", "address")
    @classmethod
    def _not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("must not be empty")
        return value.strip() if value is not None else None

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller set, in store-ready form."""
        changed = self.model_dump(exclude_unset=True, mode="json")
        # Required columns cannot be nulled out by an explicit null.
        for required in ("customer_name", "address", "status"):
            if required in changed and changed[required] is None:
                del changed[required]
        return {k: v for k, v in changed.items() if k in EDITABLE_FIELDS}
