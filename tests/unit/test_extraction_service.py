"""Unit tests for ExtractionService against a real temporary SQLite store."""

from __future__ import annotations

import json
from datetime import date
from typing import Any

import pytest

from shipment_intake.interfaces.record_store import PARSING_LOGS, SHIPMENT_ORDERS
from shipment_intake.models.extraction import AttemptStatus, ExtractionFailure, FailureReason
from shipment_intake.models.monitoring import ChangeAction, RecordChange
from shipment_intake.models.shipment import ShipmentRecord, ShipmentStatus
from shipment_intake.pipeline.change_notifier import ChangeNotifier
from shipment_intake.providers.record_store.sqlite_record_store import SQLiteRecordStore
from shipment_intake.services.extraction_service import (
    INVALID_JSON_MESSAGE,
    MISSING_FIELDS_MESSAGE,
    SYSTEM_PROMPT,
    ExtractionService,
    build_user_prompt,
)
from shipment_intake.utils.errors import LogWriteError, StoreError, UpstreamError

SCENARIO_A_TEXT = "Ship to Jane Doe, 12 Oak St, tracking XZ100, 2.5kg"
SCENARIO_A_PAYLOAD: dict[str, Any] = {
    "customer_name": "Jane Doe",
    "address": "12 Oak St",
    "tracking_id": "XZ100",
    "package_weight": 2.5,
}


class _FailingShipmentStore(SQLiteRecordStore):
    """Rejects shipment inserts; everything else works."""

    async def insert(self, table: str, fields: dict[str, Any]) -> dict[str, Any]:
        if table == SHIPMENT_ORDERS:
            raise StoreError("disk I/O error", "sqlite")
        return await super().insert(table, fields)


class _FailingLogStore(SQLiteRecordStore):
    """Rejects parsing log inserts."""

    async def insert(self, table: str, fields: dict[str, Any]) -> dict[str, Any]:
        if table == PARSING_LOGS:
            raise StoreError("database is locked", "sqlite")
        return await super().insert(table, fields)


def _service(store, llm, notifier: ChangeNotifier | None = None) -> ExtractionService:
    return ExtractionService(record_store=store, llm_provider=llm, change_notifier=notifier)


# ======================================================================
# Prompt
# ======================================================================


class TestPrompt:
    def test_user_prompt_embeds_content_and_fields(self) -> None:
        prompt = build_user_prompt("Ship to Jane")
        assert "Ship to Jane" in prompt
        for field in ("customer_name", "address", "tracking_id", "delivery_date",
                      "package_weight", "notes"):
            assert field in prompt
        assert "YYYY-MM-DD" in prompt
        assert prompt.rstrip().endswith("Return only valid JSON, no other text.")

    @pytest.mark.asyncio
    async def test_call_uses_low_temperature_and_token_limit(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = json.dumps(SCENARIO_A_PAYLOAD)
        await _service(record_store, mock_llm).extract(SCENARIO_A_TEXT, "a.txt")

        kwargs = mock_llm.complete.await_args.kwargs
        assert kwargs["system_prompt"] == SYSTEM_PROMPT
        assert SCENARIO_A_TEXT in kwargs["user_prompt"]
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 1000


# ======================================================================
# Success path
# ======================================================================


class TestExtractSuccess:
    @pytest.mark.asyncio
    async def test_scenario_a_creates_pending_ai_record(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = json.dumps(SCENARIO_A_PAYLOAD)

        result = await _service(record_store, mock_llm).extract(
            SCENARIO_A_TEXT, "email-1.txt"
        )

        assert isinstance(result, ShipmentRecord)
        assert result.customer_name == "Jane Doe"
        assert result.address == "12 Oak St"
        assert result.tracking_id == "XZ100"
        assert result.package_weight == 2.5
        assert result.delivery_date is None
        assert result.notes is None
        assert result.status is ShipmentStatus.PENDING
        assert result.parsed_by_ai is True
        assert result.original_file_name == "email-1.txt"
        assert result.original_file_url is None

    @pytest.mark.asyncio
    async def test_success_resolves_exactly_one_attempt(
        self, record_store, mock_llm, valid_payload, valid_response
    ) -> None:
        mock_llm.complete.return_value = valid_response

        result = await _service(record_store, mock_llm).extract(
            "doc", "order.txt", "http://testserver/api/v1/files/1-order.txt"
        )

        logs = await record_store.select(PARSING_LOGS)
        assert len(logs) == 1
        assert logs[0]["status"] == "success"
        assert logs[0]["extracted_data"] == valid_payload
        assert logs[0]["error_message"] is None
        assert logs[0]["file_url"] == "http://testserver/api/v1/files/1-order.txt"
        assert result.parsing_log_id == logs[0]["id"]
        assert result.delivery_date == date(2025, 3, 14)
        assert result.original_file_url == "http://testserver/api/v1/files/1-order.txt"

    @pytest.mark.asyncio
    async def test_blank_optional_fields_become_null(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = json.dumps(
            {"customer_name": "Jane", "address": "12 Oak St", "tracking_id": "",
             "delivery_date": "", "notes": "  "}
        )
        result = await _service(record_store, mock_llm).extract("doc", "a.txt")

        assert isinstance(result, ShipmentRecord)
        assert result.tracking_id is None
        assert result.delivery_date is None
        assert result.notes is None

    @pytest.mark.asyncio
    async def test_zero_weight_is_kept(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = json.dumps(
            {"customer_name": "Jane", "address": "12 Oak St", "package_weight": 0}
        )
        result = await _service(record_store, mock_llm).extract("doc", "a.txt")
        assert isinstance(result, ShipmentRecord)
        assert result.package_weight == 0.0

    @pytest.mark.asyncio
    async def test_unknown_keys_are_ignored(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = json.dumps(
            {"customer_name": "Jane", "address": "12 Oak St", "status": "delivered",
             "id": "injected"}
        )
        result = await _service(record_store, mock_llm).extract("doc", "a.txt")
        assert isinstance(result, ShipmentRecord)
        assert result.status is ShipmentStatus.PENDING
        assert result.id != "injected"


# ======================================================================
# Failure paths
# ======================================================================


class TestExtractFailures:
    @pytest.mark.asyncio
    async def test_scenario_b_non_json_is_invalid_format(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = "Sorry, I cannot process this."

        result = await _service(record_store, mock_llm).extract("doc", "a.txt")

        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.INVALID_FORMAT
        assert result.message == INVALID_JSON_MESSAGE
        logs = await record_store.select(PARSING_LOGS)
        assert logs[0]["status"] == "failed"
        assert logs[0]["error_message"] == INVALID_JSON_MESSAGE
        assert logs[0]["extracted_data"] == {"raw_response": "Sorry, I cannot process this."}
        assert await record_store.count(SHIPMENT_ORDERS) == 0

    @pytest.mark.asyncio
    async def test_fenced_json_is_invalid_format(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = '```json\n{"customer_name": "A", "address": "B"}\n```'
        result = await _service(record_store, mock_llm).extract("doc", "a.txt")
        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.INVALID_FORMAT

    @pytest.mark.asyncio
    async def test_json_array_is_invalid_format(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = '[{"customer_name": "A", "address": "B"}]'
        result = await _service(record_store, mock_llm).extract("doc", "a.txt")
        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.INVALID_FORMAT
        assert result.extracted_data == {"raw_response": mock_llm.complete.return_value}

    @pytest.mark.asyncio
    async def test_surrounding_whitespace_is_tolerated(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = "\n  " + json.dumps(SCENARIO_A_PAYLOAD) + "\n"
        result = await _service(record_store, mock_llm).extract("doc", "a.txt")
        assert isinstance(result, ShipmentRecord)

    @pytest.mark.asyncio
    async def test_scenario_c_missing_customer_name(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = '{"address":"12 Oak St"}'

        result = await _service(record_store, mock_llm).extract("doc", "a.txt")

        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.MISSING_FIELDS
        assert result.message == MISSING_FIELDS_MESSAGE
        logs = await record_store.select(PARSING_LOGS)
        assert logs[0]["status"] == "failed"
        assert logs[0]["extracted_data"] == {"address": "12 Oak St"}
        assert await record_store.count(SHIPMENT_ORDERS) == 0

    @pytest.mark.parametrize("address", ["", "   ", None])
    @pytest.mark.asyncio
    async def test_empty_address_is_missing(self, record_store, mock_llm, address) -> None:
        mock_llm.complete.return_value = json.dumps({"customer_name": "Jane", "address": address})
        result = await _service(record_store, mock_llm).extract("doc", "a.txt")
        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.MISSING_FIELDS

    @pytest.mark.asyncio
    async def test_bad_date_is_invalid_fields(self, record_store, mock_llm) -> None:
        payload = {"customer_name": "Jane", "address": "12 Oak St", "delivery_date": "next Tuesday"}
        mock_llm.complete.return_value = json.dumps(payload)

        result = await _service(record_store, mock_llm).extract("doc", "a.txt")

        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.INVALID_FIELDS
        assert "delivery_date" in result.message
        logs = await record_store.select(PARSING_LOGS)
        assert logs[0]["status"] == "failed"
        assert logs[0]["error_message"] == result.message
        assert logs[0]["extracted_data"] == payload
        assert await record_store.count(SHIPMENT_ORDERS) == 0

    @pytest.mark.asyncio
    async def test_negative_weight_is_invalid_fields(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = json.dumps(
            {"customer_name": "Jane", "address": "12 Oak St", "package_weight": -3}
        )
        result = await _service(record_store, mock_llm).extract("doc", "a.txt")
        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.INVALID_FIELDS
        assert "package_weight" in result.message

    @pytest.mark.parametrize("weight", ["Infinity", "-Infinity", "NaN", "1e400"])
    @pytest.mark.asyncio
    async def test_non_finite_weight_is_invalid_format(
        self, record_store, mock_llm, weight
    ) -> None:
        reply = '{"customer_name": "Jane", "address": "12 Oak St", "package_weight": %s}' % weight
        mock_llm.complete.return_value = reply

        result = await _service(record_store, mock_llm).extract("doc", "a.txt")

        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.INVALID_FORMAT
        assert result.message == INVALID_JSON_MESSAGE
        logs = await record_store.select(PARSING_LOGS)
        assert logs[0]["status"] == "failed"
        assert logs[0]["extracted_data"] == {"raw_response": reply}
        assert await record_store.count(SHIPMENT_ORDERS) == 0

    @pytest.mark.asyncio
    async def test_boolean_weight_is_invalid_fields(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = json.dumps(
            {"customer_name": "Jane", "address": "12 Oak St", "package_weight": True}
        )

        result = await _service(record_store, mock_llm).extract("doc", "a.txt")

        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.INVALID_FIELDS
        assert "package_weight" in result.message
        assert await record_store.count(SHIPMENT_ORDERS) == 0

    @pytest.mark.asyncio
    async def test_scenario_d_shipment_store_failure(self, tmp_path, mock_llm) -> None:
        store = _FailingShipmentStore(db_path=tmp_path / "d.db")
        await store.initialize()
        mock_llm.complete.return_value = json.dumps(SCENARIO_A_PAYLOAD)

        result = await _service(store, mock_llm).extract(SCENARIO_A_TEXT, "a.txt")

        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.STORE_ERROR
        assert result.message == "disk I/O error"
        logs = await store.select(PARSING_LOGS)
        assert logs[0]["status"] == "failed"
        assert logs[0]["error_message"] == "disk I/O error"
        assert logs[0]["extracted_data"] == SCENARIO_A_PAYLOAD
        assert await store.count(SHIPMENT_ORDERS) == 0

    @pytest.mark.asyncio
    async def test_upstream_error_records_status(self, record_store, mock_llm) -> None:
        mock_llm.complete.side_effect = UpstreamError(
            "openai API error: 503", provider_name="openai", status_code=503
        )

        result = await _service(record_store, mock_llm).extract("doc", "a.txt")

        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.UPSTREAM_ERROR
        assert "503" in result.message
        assert result.extracted_data is None
        logs = await record_store.select(PARSING_LOGS)
        assert logs[0]["status"] == "failed"
        assert "503" in logs[0]["error_message"]
        assert logs[0]["extracted_data"] is None

    @pytest.mark.asyncio
    async def test_unexpected_provider_exception_resolves_attempt(
        self, record_store, mock_llm
    ) -> None:
        mock_llm.complete.side_effect = RuntimeError("socket closed")

        result = await _service(record_store, mock_llm).extract("doc", "a.txt")

        assert isinstance(result, ExtractionFailure)
        assert result.reason is FailureReason.UPSTREAM_ERROR
        assert "RuntimeError" in result.message
        assert "socket closed" in result.message
        logs = await record_store.select(PARSING_LOGS)
        assert logs[0]["status"] == "failed"
        assert logs[0]["error_message"] == result.message
        assert await record_store.count(PARSING_LOGS, filters={"status": "processing"}) == 0
        assert await record_store.count(SHIPMENT_ORDERS) == 0

    @pytest.mark.asyncio
    async def test_log_write_failure_skips_llm_call(self, tmp_path, mock_llm) -> None:
        store = _FailingLogStore(db_path=tmp_path / "e.db")
        await store.initialize()

        with pytest.raises(LogWriteError) as exc_info:
            await _service(store, mock_llm).extract("doc", "a.txt")

        assert "database is locked" in exc_info.value.message
        mock_llm.complete.assert_not_awaited()
        assert await store.count(SHIPMENT_ORDERS) == 0


# ======================================================================
# Audit invariants
# ======================================================================


class TestAttemptInvariants:
    @pytest.mark.asyncio
    async def test_no_attempt_left_processing(self, record_store, mock_llm) -> None:
        service = _service(record_store, mock_llm)
        replies = [
            json.dumps(SCENARIO_A_PAYLOAD),
            "Sorry, I cannot process this.",
            '{"address":"12 Oak St"}',
        ]
        for reply in replies:
            mock_llm.complete.return_value = reply
            await service.extract("doc", "a.txt")

        assert await record_store.count(PARSING_LOGS, {"status": "processing"}) == 0
        assert await record_store.count(PARSING_LOGS) == 3

    @pytest.mark.asyncio
    async def test_resolved_attempt_is_never_remutated(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = "not json"
        service = _service(record_store, mock_llm)
        failure = await service.extract("doc", "a.txt")
        assert isinstance(failure, ExtractionFailure)

        # A late resolution for the same attempt must be ignored.
        await service._resolve(
            failure.attempt_id, AttemptStatus.SUCCESS, None, {"customer_name": "X"}
        )

        row = await record_store.get(PARSING_LOGS, failure.attempt_id)
        assert row["status"] == "failed"
        assert row["error_message"] == INVALID_JSON_MESSAGE

    @pytest.mark.asyncio
    async def test_failed_attempt_has_no_linked_shipment(self, record_store, mock_llm) -> None:
        mock_llm.complete.return_value = '{"address":"12 Oak St"}'
        failure = await _service(record_store, mock_llm).extract("doc", "a.txt")
        linked = await record_store.select(
            SHIPMENT_ORDERS, filters={"parsing_log_id": failure.attempt_id}
        )
        assert linked == []


# ======================================================================
# Change notifications
# ======================================================================


class TestChangeNotifications:
    @pytest.mark.asyncio
    async def test_success_publishes_insert_and_resolve(
        self, record_store, mock_llm, notifier
    ) -> None:
        seen: list[RecordChange] = []
        notifier.register_listener("*", seen.append)
        mock_llm.complete.return_value = json.dumps(SCENARIO_A_PAYLOAD)

        await _service(record_store, mock_llm, notifier).extract("doc", "a.txt")

        assert [(c.table, c.action) for c in seen] == [
            (PARSING_LOGS, ChangeAction.INSERT),
            (SHIPMENT_ORDERS, ChangeAction.INSERT),
            (PARSING_LOGS, ChangeAction.UPDATE),
        ]
        assert seen[-1].record["status"] == "success"

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_extraction(
        self, record_store, mock_llm, notifier
    ) -> None:
        def _boom(change: RecordChange) -> None:
            raise RuntimeError("listener down")

        notifier.register_listener(SHIPMENT_ORDERS, _boom)
        mock_llm.complete.return_value = json.dumps(SCENARIO_A_PAYLOAD)

        result = await _service(record_store, mock_llm, notifier).extract("doc", "a.txt")

        assert isinstance(result, ShipmentRecord)
