"""Intake pipeline: ingestion followed by extraction.

Both HTTP upload routes and the CLI go through :class:`ShipmentIntakePipeline`
so an upload is always normalized, stored and audited the same way.  The
JSON ``/extract`` route, whose caller has already read and stored the file,
enters at :meth:`ShipmentIntakePipeline.process_text` and skips ingestion.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict

from shipment_intake.interfaces.record_store import PARSING_LOGS, IRecordStore
from shipment_intake.models.extraction import (
    ExtractionFailure,
    FileSource,
    NormalizedInput,
    TextSource,
)
from shipment_intake.models.shipment import ShipmentRecord
from shipment_intake.services.extraction_service import ExtractionService
from shipment_intake.services.ingestion_adapter import IngestionAdapter
from shipment_intake.utils.logging import get_logger


class IntakeOutcome(BaseModel):
    """Result of one pass through the pipeline.

    Exactly one of ``record`` and ``failure`` is set.  ``extracted_data``
    is the parsed model output (or ``{"raw_response": ...}`` for
    unparseable output), and ``None`` when the call itself failed.
    """

    model_config = ConfigDict(frozen=True)

    normalized: NormalizedInput
    record: ShipmentRecord | None = None
    failure: ExtractionFailure | None = None
    extracted_data: dict[str, Any] | None = None

    @property
    def success(self) -> bool:
        return self.record is not None


class ShipmentIntakePipeline:
    """Composes the ingestion adapter and the extraction service."""

    def __init__(
        self,
        ingestion_adapter: IngestionAdapter,
        extraction_service: ExtractionService,
        record_store: IRecordStore,
    ) -> None:
        self._ingestion = ingestion_adapter
        self._extraction = extraction_service
        # Read-only use: recovers the audit snapshot for successful outcomes.
        self._store = record_store
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def process(self, source: FileSource | TextSource) -> IntakeOutcome:
        """Ingest *source* and extract a shipment from it.

        Raises
        ------
        ReadError, StoreError
            From ingestion, before any attempt is recorded.
        LogWriteError
            If the audit attempt cannot be created.
        """
        normalized = await self._ingestion.ingest(source)
        return await self._run(normalized)

    async def process_text(
        self,
        text: str,
        file_name: str,
        file_ref: str | None = None,
    ) -> IntakeOutcome:
        """Extract from text that was already read and stored by the caller."""
        normalized = NormalizedInput(text=text, file_ref=file_ref, file_name=file_name)
        return await self._run(normalized)

    async def _run(self, normalized: NormalizedInput) -> IntakeOutcome:
        file_name = normalized.file_name or "untitled"
        result = await self._extraction.extract(
            normalized.text, file_name, normalized.file_ref
        )

        if isinstance(result, ExtractionFailure):
            return IntakeOutcome(
                normalized=normalized,
                failure=result,
                extracted_data=result.extracted_data,
            )

        extracted_data = None
        if result.parsing_log_id:
            attempt = await self._store.get(PARSING_LOGS, result.parsing_log_id)
            extracted_data = attempt.get("extracted_data") if attempt else None
        self._logger.info("intake_complete", shipment_id=result.id, file_name=file_name)
        return IntakeOutcome(normalized=normalized, record=result, extracted_data=extracted_data)
