"""Dashboard statistics over shipments and parsing attempts."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from shipment_intake.interfaces.record_store import PARSING_LOGS, SHIPMENT_ORDERS, IRecordStore
from shipment_intake.models.extraction import AttemptStatus, ExtractionAttempt
from shipment_intake.models.monitoring import SystemStats
from shipment_intake.utils.logging import get_logger


class MonitoringService:
    """Aggregates counters for the monitoring panel."""

    def __init__(self, record_store: IRecordStore) -> None:
        self._store = record_store
        self._logger = get_logger(__name__)

    async def get_stats(self, now: datetime | None = None) -> SystemStats:
        """Return shipment and attempt counters.

        "Today" is the UTC calendar day containing *now* (default: the
        current time).
        """
        now = now or datetime.now(tz=timezone.utc)  # noqa: UP017
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)  # noqa: UP017
        day_start = datetime.combine(
            now.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc  # noqa: UP017
        )
        day_end = day_start + timedelta(days=1)

        stats = SystemStats(
            total_shipments=await self._store.count(SHIPMENT_ORDERS),
            today_shipments=await self._store.count(
                SHIPMENT_ORDERS,
                {"created_at__gte": day_start, "created_at__lt": day_end},
            ),
            successful_parsing=await self._store.count(
                PARSING_LOGS, {"status": AttemptStatus.SUCCESS}
            ),
            failed_parsing=await self._store.count(PARSING_LOGS, {"status": AttemptStatus.FAILED}),
            processing_parsing=await self._store.count(
                PARSING_LOGS, {"status": AttemptStatus.PROCESSING}
            ),
        )
        self._logger.debug("stats_computed", **stats.model_dump())
        return stats

    async def recent_attempts(
        self,
        limit: int = 20,
        status: AttemptStatus | None = None,
    ) -> list[ExtractionAttempt]:
        """Return the most recent parsing attempts, newest first."""
        filters = {"status": status} if status is not None else None
        rows = await self._store.select(PARSING_LOGS, filters=filters, limit=limit)
        return [ExtractionAttempt.from_row(r) for r in rows]
