"""FastAPI routes for the shipment intake service.

Service dependencies are resolved from ``app.state`` (populated by
``main._build_all``) through ``Annotated[..., Depends(...)]`` helpers.

Endpoint                          Method  Description
────────────────────────────────────────────────────────────────────────
/api/v1/extract                   POST    Text already read by client → extraction
/api/v1/shipments/upload          POST    Multipart file → ingest → extraction
/api/v1/shipments/text            POST    Pasted text → ingest → extraction
/api/v1/shipments                 GET     List / search / filter shipments
/api/v1/shipments/{id}            GET     Fetch one shipment
/api/v1/shipments/{id}            PATCH   Manual edit
/api/v1/parsing-logs              GET     Recent extraction attempts
/api/v1/monitoring/stats          GET     Dashboard counters
/api/v1/files/{key}               GET     Stored upload bytes
/api/v1/health                    GET     Health check + provider status

Every extraction route answers with the same envelope; any failure,
whether during ingestion or extraction, is ``{success: false, error}``
with status 500.
"""

from __future__ import annotations

import mimetypes
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, UploadFile
from fastapi.responses import JSONResponse

from shipment_intake.api.schemas import (
    ErrorResponse,
    ExtractionResponse,
    ExtractRequest,
    HealthResponse,
    ParsingLogListResponse,
    ShipmentListResponse,
    TextIntakeRequest,
)
from shipment_intake.interfaces.file_store import IFileStore
from shipment_intake.models.extraction import AttemptStatus, FileSource, TextSource
from shipment_intake.models.monitoring import SystemStats
from shipment_intake.models.shipment import ShipmentRecord, ShipmentStatus, ShipmentUpdate
from shipment_intake.pipeline.orchestrator import IntakeOutcome, ShipmentIntakePipeline
from shipment_intake.services.monitoring_service import MonitoringService
from shipment_intake.services.shipment_service import ShipmentService
from shipment_intake.utils.errors import RecordNotFoundError, ShipmentIntakeError, StoreError
from shipment_intake.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_UPLOAD_CHUNK_SIZE = 64 * 1024
_DEFAULT_PAGE_SIZE = 100
_DEFAULT_RECENT_ATTEMPTS = 20


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_pipeline(request: Request) -> ShipmentIntakePipeline:
    return request.app.state.pipeline


def _get_shipment_service(request: Request) -> ShipmentService:
    return request.app.state.shipment_service


def _get_monitoring_service(request: Request) -> MonitoringService:
    return request.app.state.monitoring_service


def _get_file_store(request: Request) -> IFileStore:
    return request.app.state.file_store


def _get_config(request: Request) -> dict[str, Any]:
    return getattr(request.app.state, "config", {}) or {}


PipelineDep = Annotated[ShipmentIntakePipeline, Depends(_get_pipeline)]
ShipmentServiceDep = Annotated[ShipmentService, Depends(_get_shipment_service)]
MonitoringDep = Annotated[MonitoringService, Depends(_get_monitoring_service)]
FileStoreDep = Annotated[IFileStore, Depends(_get_file_store)]
ConfigDep = Annotated[dict[str, Any], Depends(_get_config)]


def _envelope(outcome: IntakeOutcome) -> JSONResponse:
    if outcome.success:
        body = ExtractionResponse(
            success=True,
            shipment_order=outcome.record,
            extracted_data=outcome.extracted_data,
        )
        return JSONResponse(status_code=200, content=body.to_content())
    return _failure(outcome.failure.message if outcome.failure else "Extraction failed")


def _failure(message: str) -> JSONResponse:
    body = ExtractionResponse(success=False, error=message)
    return JSONResponse(status_code=500, content=body.to_content())


# ---------------------------------------------------------------------------
# Extraction endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/extract",
    responses={500: {"description": "Extraction failed: {success: false, error}"}},
    summary="Extract a shipment from already-read document text",
)
async def extract(body: ExtractRequest, pipeline: PipelineDep) -> JSONResponse:
    """Run the audited extraction on text the client has already read and stored."""
    _logger.info("extract_request", file_name=body.file_name)
    try:
        outcome = await pipeline.process_text(body.file_content, body.file_name, body.file_url)
    except ShipmentIntakeError as exc:
        _logger.error("extract_request_failed", file_name=body.file_name, error=str(exc))
        return _failure(exc.message)
    return _envelope(outcome)


@router.post(
    "/shipments/upload",
    responses={
        413: {"model": ErrorResponse},
        500: {"description": "Extraction failed: {success: false, error}"},
    },
    summary="Upload a document and extract a shipment from it",
)
async def upload_document(
    file: UploadFile,
    request: Request,
    pipeline: PipelineDep,
) -> JSONResponse:
    """Store the uploaded file, decode it, and extract a shipment."""
    max_bytes: int = request.app.state.settings.max_upload_bytes

    # Read in chunks so oversized uploads are rejected before full buffering.
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large: maximum is {max_bytes} bytes.",
            )
        chunks.append(chunk)
    data = b"".join(chunks)

    file_name = file.filename or "upload"
    try:
        outcome = await pipeline.process(
            FileSource(data=data, name=file_name, content_type=file.content_type)
        )
    except ShipmentIntakeError as exc:
        _logger.error("upload_failed", file_name=file_name, error=str(exc))
        return _failure(exc.message)
    return _envelope(outcome)


@router.post(
    "/shipments/text",
    responses={500: {"description": "Extraction failed: {success: false, error}"}},
    summary="Extract a shipment from pasted text",
)
async def submit_text(body: TextIntakeRequest, pipeline: PipelineDep) -> JSONResponse:
    """Extract a shipment from pasted email or message text."""
    try:
        outcome = await pipeline.process(TextSource(content=body.content))
    except ShipmentIntakeError as exc:
        _logger.error("text_intake_failed", error=str(exc))
        return _failure(exc.message)
    return _envelope(outcome)


# ---------------------------------------------------------------------------
# Shipment browsing and manual edits
# ---------------------------------------------------------------------------


@router.get(
    "/shipments",
    response_model=ShipmentListResponse,
    summary="List shipments, newest first",
)
async def list_shipments(
    service: ShipmentServiceDep,
    config: ConfigDep,
    search: str | None = Query(None, description="Matches customer, address or tracking id"),
    status: ShipmentStatus | None = Query(None),
    limit: int | None = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> ShipmentListResponse:
    page_size = limit or config.get("shipments", {}).get("default_page_size", _DEFAULT_PAGE_SIZE)
    shipments = await service.list_shipments(
        search=search, status=status, limit=page_size, offset=offset
    )
    return ShipmentListResponse(shipments=shipments, count=len(shipments))


@router.get(
    "/shipments/{shipment_id}",
    response_model=ShipmentRecord,
    responses={404: {"model": ErrorResponse}},
    summary="Fetch one shipment",
)
async def get_shipment(shipment_id: str, service: ShipmentServiceDep) -> ShipmentRecord:
    try:
        return await service.get_shipment(shipment_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail=f"Shipment {shipment_id} not found") from None


@router.patch(
    "/shipments/{shipment_id}",
    response_model=ShipmentRecord,
    responses={404: {"model": ErrorResponse}},
    summary="Manually correct a shipment",
)
async def update_shipment(
    shipment_id: str,
    body: ShipmentUpdate,
    service: ShipmentServiceDep,
) -> ShipmentRecord:
    """Apply a partial edit; only fields present in the body change."""
    try:
        return await service.update_shipment(shipment_id, body)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail=f"Shipment {shipment_id} not found") from None


# ---------------------------------------------------------------------------
# Monitoring
# ---------------------------------------------------------------------------


@router.get(
    "/parsing-logs",
    response_model=ParsingLogListResponse,
    summary="Recent extraction attempts, newest first",
)
async def list_parsing_logs(
    monitoring: MonitoringDep,
    config: ConfigDep,
    limit: int | None = Query(None, ge=1, le=500),
    status: AttemptStatus | None = Query(None),
) -> ParsingLogListResponse:
    default_limit = config.get("monitoring", {}).get(
        "recent_attempts_limit", _DEFAULT_RECENT_ATTEMPTS
    )
    logs = await monitoring.recent_attempts(limit=limit or default_limit, status=status)
    return ParsingLogListResponse(logs=logs, count=len(logs))


@router.get(
    "/monitoring/stats",
    response_model=SystemStats,
    summary="Shipment and parsing counters",
)
async def monitoring_stats(monitoring: MonitoringDep) -> SystemStats:
    return await monitoring.get_stats()


# ---------------------------------------------------------------------------
# Stored files
# ---------------------------------------------------------------------------


@router.get(
    "/files/{key}",
    responses={404: {"model": ErrorResponse}, 400: {"model": ErrorResponse}},
    summary="Download an uploaded document",
)
async def get_file(key: str, file_store: FileStoreDep) -> Response:
    try:
        data = await file_store.get(key)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail=f"File {key} not found") from None
    except StoreError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from None
    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    status = "healthy" if providers.get("llm", False) and providers.get("record_store", False) else "degraded"
    version = _get_config(request).get("app", {}).get("version", "0.1.0")
    return HealthResponse(status=status, version=str(version), providers=providers)
