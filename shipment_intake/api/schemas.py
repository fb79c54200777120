"""Pydantic request/response schemas for the shipment intake API.

The extraction envelope keeps the camelCase keys existing dashboard
clients already consume (``fileContent``, ``shipmentOrder``,
``extractedData``); everything else uses snake_case like the models.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shipment_intake.models.extraction import ExtractionAttempt
from shipment_intake.models.shipment import ShipmentRecord


class ExtractRequest(BaseModel):
    """Body of the passthrough ``/extract`` call: text already read by the client."""

    model_config = ConfigDict(populate_by_name=True)

    file_content: str = Field(alias="fileContent")
    file_name: str = Field(alias="fileName", min_length=1)
    file_url: str | None = Field(default=None, alias="fileUrl")


class TextIntakeRequest(BaseModel):
    """Pasted text, typically an email body."""

    content: str = Field(..., description="Raw text to extract a shipment from")


class ExtractionResponse(BaseModel):
    """Envelope returned by every extraction route.

    Success: ``{success: true, shipmentOrder, extractedData}``.
    Failure: ``{success: false, error}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    shipment_order: ShipmentRecord | None = Field(default=None, alias="shipmentOrder")
    extracted_data: dict[str, Any] | None = Field(default=None, alias="extractedData")
    error: str | None = None

    def to_content(self) -> dict[str, Any]:
        """Serialize with camelCase keys, dropping the half of the envelope not in use."""
        if self.success:
            return self.model_dump(
                mode="json", by_alias=True, include={"success", "shipment_order", "extracted_data"}
            )
        return self.model_dump(mode="json", include={"success", "error"})


class ShipmentListResponse(BaseModel):
    shipments: list[ShipmentRecord] = Field(default_factory=list)
    count: int = 0


class ParsingLogListResponse(BaseModel):
    logs: list[ExtractionAttempt] = Field(default_factory=list)
    count: int = 0


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
