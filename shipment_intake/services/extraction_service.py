"""LLM-based shipment extraction with an audit trail.

Sends normalized document text to an LLM provider with a fixed extraction
prompt, validates the JSON reply against :class:`ExtractedShipment`, and
persists the resulting shipment order.

Every call is recorded as an :class:`ExtractionAttempt` in the
``parsing_logs`` table *before* the model is contacted:

    insert attempt (processing)
        → LLM call ──any provider error─────→ attempt failed  → ExtractionFailure
        → json.loads ──not a JSON object────→ attempt failed  → ExtractionFailure
        → required fields ──missing/blank───→ attempt failed  → ExtractionFailure
        → schema ──bad date/weight──────────→ attempt failed  → ExtractionFailure
        → insert shipment ──StoreError──────→ attempt failed  → ExtractionFailure
        → attempt success                                     → ShipmentRecord

Each path after the insert resolves the attempt exactly once, and a
resolution only applies while the stored status is still ``processing``.
Only a failure to create the attempt itself is raised (``LogWriteError``);
everything after that is returned as a value so callers can report it.
"""

from __future__ import annotations

import json
import math
from typing import Any

from pydantic import ValidationError

from shipment_intake.interfaces.llm_provider import ILLMProvider
from shipment_intake.interfaces.record_store import PARSING_LOGS, SHIPMENT_ORDERS, IRecordStore
from shipment_intake.models.extraction import (
    AttemptStatus,
    ExtractedShipment,
    ExtractionFailure,
    FailureReason,
    missing_required_fields,
)
from shipment_intake.models.monitoring import ChangeAction, RecordChange
from shipment_intake.models.shipment import ShipmentRecord, ShipmentStatus
from shipment_intake.pipeline.change_notifier import ChangeNotifier
from shipment_intake.utils.errors import LogWriteError, StoreError, UpstreamError
from shipment_intake.utils.logging import get_logger

SYSTEM_PROMPT = (
    "You are an expert data extraction assistant. Extract shipment "
    "information accurately and return only valid JSON."
)

_USER_PROMPT_TEMPLATE = """\
Extract shipment order information from the following document content.
Return a JSON object with these exact fields:
- customer_name: string (required)
- address: string (required)
- tracking_id: string (optional)
- delivery_date: string in YYYY-MM-DD format (optional)
- package_weight: number (optional, in kg)
- notes: string (optional)

Document content:
{content}

Return only valid JSON, no other text."""

INVALID_JSON_MESSAGE = "Failed to parse AI response as JSON"
MISSING_FIELDS_MESSAGE = "Missing required fields: customer_name and address"


def build_user_prompt(content: str) -> str:
    """Embed *content* in the extraction instruction."""
    return _USER_PROMPT_TEMPLATE.format(content=content)


class ExtractionService:
    """Runs one audited extraction call per document.

    Parameters
    ----------
    record_store:
        Persistence for ``parsing_logs`` and ``shipment_orders``.
    llm_provider:
        The LLM backend used for the completion.
    change_notifier:
        Optional notifier; receives a :class:`RecordChange` after each
        successful write.
    temperature, max_tokens:
        Decoding parameters for the extraction call.
    """

    def __init__(
        self,
        record_store: IRecordStore,
        llm_provider: ILLMProvider,
        change_notifier: ChangeNotifier | None = None,
        temperature: float = 0.1,
        max_tokens: int = 1000,
    ) -> None:
        self._store = record_store
        self._llm = llm_provider
        self._notifier = change_notifier
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def extract(
        self,
        text: str,
        file_name: str,
        file_ref: str | None = None,
    ) -> ShipmentRecord | ExtractionFailure:
        """Extract, validate and persist one shipment from *text*.

        Returns
        -------
        ShipmentRecord | ExtractionFailure
            The stored shipment on success, otherwise a typed failure whose
            attempt has already been marked failed.

        Raises
        ------
        LogWriteError
            If the audit attempt cannot be created; no LLM call is made.
        StoreError
            If resolving the attempt itself fails.
        """
        attempt_id = await self._open_attempt(file_name, file_ref)
        self._logger.info(
            "extraction_start",
            attempt_id=attempt_id,
            file_name=file_name,
            chars=len(text),
            llm_provider=self._llm.get_provider_name(),
        )

        # --- Extraction call ---
        try:
            raw_response = await self._llm.complete(
                system_prompt=SYSTEM_PROMPT,
                user_prompt=build_user_prompt(text),
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except UpstreamError as exc:
            return await self._fail(attempt_id, FailureReason.UPSTREAM_ERROR, exc.message, None)
        except Exception as exc:
            # Providers should only raise UpstreamError; anything else still
            # resolves the attempt instead of leaving it in processing.
            self._logger.exception("extraction_call_crashed", attempt_id=attempt_id)
            return await self._fail(
                attempt_id,
                FailureReason.UPSTREAM_ERROR,
                f"Extraction call failed: {type(exc).__name__}: {exc}",
                None,
            )

        # --- Strict JSON parse ---
        payload = _parse_object(raw_response)
        if payload is None:
            return await self._fail(
                attempt_id,
                FailureReason.INVALID_FORMAT,
                INVALID_JSON_MESSAGE,
                {"raw_response": raw_response},
            )

        # --- Validation ---
        if missing_required_fields(payload):
            return await self._fail(
                attempt_id, FailureReason.MISSING_FIELDS, MISSING_FIELDS_MESSAGE, payload
            )
        try:
            extracted = ExtractedShipment.model_validate(payload)
        except ValidationError as exc:
            return await self._fail(
                attempt_id, FailureReason.INVALID_FIELDS, _describe(exc), payload
            )

        # --- Persist shipment ---
        try:
            row = await self._store.insert(
                SHIPMENT_ORDERS,
                {
                    **extracted.model_dump(),
                    "status": ShipmentStatus.PENDING,
                    "original_file_url": file_ref,
                    "original_file_name": file_name,
                    "parsed_by_ai": True,
                    "parsing_log_id": attempt_id,
                },
            )
        except StoreError as exc:
            return await self._fail(attempt_id, FailureReason.STORE_ERROR, exc.message, payload)
        await self._publish(SHIPMENT_ORDERS, ChangeAction.INSERT, row)

        await self._resolve(attempt_id, AttemptStatus.SUCCESS, None, payload)
        record = ShipmentRecord.from_row(row)
        self._logger.info(
            "shipment_created",
            attempt_id=attempt_id,
            shipment_id=record.id,
            customer_name=record.customer_name,
        )
        return record

    # ------------------------------------------------------------------
    # Attempt lifecycle
    # ------------------------------------------------------------------

    async def _open_attempt(self, file_name: str, file_ref: str | None) -> str:
        try:
            row = await self._store.insert(
                PARSING_LOGS,
                {
                    "file_name": file_name,
                    "file_url": file_ref,
                    "status": AttemptStatus.PROCESSING,
                },
            )
        except StoreError as exc:
            self._logger.error("attempt_create_failed", file_name=file_name, error=str(exc))
            raise LogWriteError(
                message=f"Failed to create parsing log: {exc.message}",
                provider_name=exc.provider_name,
            ) from exc
        await self._publish(PARSING_LOGS, ChangeAction.INSERT, row)
        return row["id"]

    async def _fail(
        self,
        attempt_id: str,
        reason: FailureReason,
        message: str,
        extracted_data: dict[str, Any] | None,
    ) -> ExtractionFailure:
        self._logger.warning(
            "extraction_failed",
            attempt_id=attempt_id,
            reason=reason.value,
            error=message,
        )
        await self._resolve(attempt_id, AttemptStatus.FAILED, message, extracted_data)
        return ExtractionFailure(
            reason=reason,
            message=message,
            attempt_id=attempt_id,
            extracted_data=extracted_data,
        )

    async def _resolve(
        self,
        attempt_id: str,
        status: AttemptStatus,
        error_message: str | None,
        extracted_data: dict[str, Any] | None,
    ) -> None:
        """Move the attempt out of ``processing``; later resolutions are no-ops."""
        row = await self._store.update(
            PARSING_LOGS,
            attempt_id,
            {
                "status": status,
                "error_message": error_message,
                "extracted_data": extracted_data,
            },
            only_if={"status": AttemptStatus.PROCESSING},
        )
        if row is None:
            self._logger.warning("attempt_already_resolved", attempt_id=attempt_id)
            return
        self._logger.info("attempt_resolved", attempt_id=attempt_id, status=status.value)
        await self._publish(PARSING_LOGS, ChangeAction.UPDATE, row)

    async def _publish(self, table: str, action: ChangeAction, row: dict[str, Any]) -> None:
        if self._notifier is None:
            return
        await self._notifier.notify(
            RecordChange(table=table, action=action, record_id=row["id"], record=row)
        )


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(literal: str) -> float:
    value = float(literal)
    if not math.isfinite(value):
        raise ValueError(f"{literal} overflows a float")
    return value


def _parse_object(raw: str) -> dict[str, Any] | None:
    """Parse *raw* as a strict JSON object; anything else yields ``None``.

    ``NaN``, ``Infinity`` and overflowing numbers are rejected: Python's
    ``json`` accepts them but they are not JSON and cannot be served back.
    """
    try:
        value = json.loads(
            raw.strip(), parse_constant=_reject_constant, parse_float=_finite_float
        )
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def _describe(exc: ValidationError) -> str:
    parts = [
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    ]
    return "Invalid field values: " + "; ".join(parts)
