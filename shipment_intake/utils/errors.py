"""Custom exception hierarchy for the shipment intake service.

All application exceptions inherit from :class:`ShipmentIntakeError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "openai", "sqlite", "local-files") caused the failure.

The hierarchy follows the intake flow:

    ShipmentIntakeError  (base -- catch-all for any intake error)
    +-- ReadError             (ingestion: input bytes/text unusable)
    +-- StoreError            (file store or record store failure)
    |   +-- RecordNotFoundError  (unknown record id)
    +-- LogWriteError         (audit attempt could not be created)
    +-- UpstreamError         (extraction call failed or timed out)
    +-- ConfigurationError    (startup / missing config)

Failures that happen *after* an audit attempt exists (unparseable model
output, missing fields, a rejected shipment insert) are not raised: they
are recorded on the attempt and returned as
:class:`shipment_intake.models.extraction.ExtractionFailure` values.
"""


class ShipmentIntakeError(Exception):
    """Base exception for all shipment intake errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which collaborator triggered the error.
    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[sqlite] database is locked``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

class ReadError(ShipmentIntakeError):
    """Raised when uploaded bytes or pasted text cannot be turned into text."""

    def __init__(
        self,
        message: str = "Failed to read input content",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class StoreError(ShipmentIntakeError):
    """Raised when the file store or the record store rejects an operation."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RecordNotFoundError(StoreError):
    """Raised when a record id does not exist in the requested table."""

    def __init__(
        self,
        message: str = "Record not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LogWriteError(ShipmentIntakeError):
    """Raised when the audit attempt cannot be created.

    Fatal for the extraction flow: no external call is made without an
    attempt to record it against.
    """

    def __init__(
        self,
        message: str = "Failed to create parsing log entry",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External extraction call
# ---------------------------------------------------------------------------

class UpstreamError(ShipmentIntakeError):
    """Raised when the extraction call returns a non-success status or times out.

    ``status_code`` is the HTTP status returned by the upstream API, or
    ``None`` for timeouts and connection failures.
    """

    def __init__(
        self,
        message: str = "Extraction call failed",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self._status_code = status_code
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status_code(self) -> int | None:
        return self._status_code


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(ShipmentIntakeError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
