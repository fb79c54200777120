"""Abstract base class for record store providers.

Defines the contract for the relational datastore holding shipment orders
and parsing logs.  Implementations may use SQLite (local), PostgreSQL, or a
managed backend; the extraction and shipment services only see this
interface.

Rows cross the interface as plain dicts keyed by column name, with
``datetime``/``date`` values and JSON columns already decoded.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

SHIPMENT_ORDERS = "shipment_orders"
PARSING_LOGS = "parsing_logs"


# Concrete implementation: SQLiteRecordStore (shipment_intake/providers/record_store/)
class IRecordStore(ABC):
    """Contract for record persistence services.

    All operations are async to support network-backed stores.  A single
    ``insert`` or ``update`` is atomic for its row; there are no
    cross-record transactions.
    """

    @abstractmethod
    async def insert(self, table: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored.

        The store assigns ``id`` (UUID string) and ``created_at`` (plus
        ``updated_at`` where the table has one) unless *fields* supplies them.

        Raises
        ------
        shipment_intake.utils.errors.StoreError
            If the write is rejected.
        """

    @abstractmethod
    async def update(
        self,
        table: str,
        record_id: str,
        fields: dict[str, Any],
        *,
        only_if: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Update one row and return it as stored.

        Parameters
        ----------
        only_if:
            Column equality preconditions checked atomically with the write.
            When the row exists but does not match, nothing is written and
            ``None`` is returned.

        Raises
        ------
        shipment_intake.utils.errors.RecordNotFoundError
            If no row has *record_id*.
        shipment_intake.utils.errors.StoreError
            If the write is rejected.
        """

    @abstractmethod
    async def get(self, table: str, record_id: str) -> dict[str, Any] | None:
        """Return the row with *record_id*, or ``None``."""

    @abstractmethod
    async def select(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        search: str | None = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Return rows matching *filters* and *search*.

        Parameters
        ----------
        filters:
            Column conditions.  A bare column name means equality; the
            suffixes ``__gte`` and ``__lt`` give range conditions, e.g.
            ``{"created_at__gte": start}``.
        search:
            Case-insensitive substring matched against the table's text
            search columns (any column may match).
        """

    @abstractmethod
    async def count(self, table: str, filters: dict[str, Any] | None = None) -> int:
        """Return the number of rows matching *filters* (same syntax as select)."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
