"""Application entry point: dependency assembly, lifespan, and app factory.

Every provider and service is constructed once in :func:`_build_all` and
attached to ``app.state``; route handlers pull them out through the
``Depends`` helpers in :mod:`shipment_intake.api.routes`.  The CLI reuses
the same assembly through :func:`build_services`.

Run the server with ``python -m shipment_intake.main`` or
``uvicorn shipment_intake.main:app``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, WebSocket

from shipment_intake.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from shipment_intake.api.routes import router as api_router
from shipment_intake.api.websocket import websocket_changes
from shipment_intake.config.loader import load_config
from shipment_intake.config.settings import Settings
from shipment_intake.interfaces.llm_provider import ILLMProvider
from shipment_intake.pipeline.change_notifier import ALL_TABLES, ChangeNotifier
from shipment_intake.pipeline.orchestrator import ShipmentIntakePipeline
from shipment_intake.providers.file_store.local_file_store import LocalFileStore
from shipment_intake.providers.llm.ollama_provider import OllamaLLMProvider
from shipment_intake.providers.llm.openai_provider import OpenAILLMProvider
from shipment_intake.providers.record_store.sqlite_record_store import SQLiteRecordStore
from shipment_intake.services.extraction_service import ExtractionService
from shipment_intake.services.ingestion_adapter import IngestionAdapter
from shipment_intake.services.monitoring_service import MonitoringService
from shipment_intake.services.shipment_service import ShipmentService
from shipment_intake.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the LLM provider: OpenAI when a key is set, otherwise local Ollama."""
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return OllamaLLMProvider(settings=app_settings)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def _build_all(
    app_settings: Settings,
    app_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    app_config = app_config or {}
    extraction_cfg = app_config.get("extraction", {})

    record_store = SQLiteRecordStore(db_path=app_settings.record_store_db_path)
    file_store = LocalFileStore(
        root_dir=app_settings.file_store_dir,
        public_base_url=app_settings.public_base_url,
    )
    llm = _build_llm_provider(app_settings)
    change_notifier = ChangeNotifier()

    ingestion_adapter = IngestionAdapter(file_store=file_store)
    extraction_service = ExtractionService(
        record_store=record_store,
        llm_provider=llm,
        change_notifier=change_notifier,
        temperature=extraction_cfg.get("temperature", app_settings.extraction_temperature),
        max_tokens=extraction_cfg.get("max_tokens", app_settings.extraction_max_tokens),
    )
    pipeline = ShipmentIntakePipeline(
        ingestion_adapter=ingestion_adapter,
        extraction_service=extraction_service,
        record_store=record_store,
    )

    provider_registry: dict[str, Any] = {
        "llm": llm.is_available(),
        "llm_provider": llm.get_provider_name(),
        "record_store": True,
        "file_store": True,
    }

    return {
        "settings": app_settings,
        "config": app_config,
        "record_store": record_store,
        "file_store": file_store,
        "llm_provider": llm,
        "change_notifier": change_notifier,
        "extraction_service": extraction_service,
        "pipeline": pipeline,
        "shipment_service": ShipmentService(record_store, change_notifier),
        "monitoring_service": MonitoringService(record_store),
        "provider_registry": provider_registry,
        "primary_llm_name": llm.get_provider_name(),
    }


async def build_services(custom_settings: Settings | None = None) -> dict[str, Any]:
    """Build and initialize all components outside the web server (CLI / scripts)."""
    app_settings = custom_settings or settings
    components = _build_all(app_settings, load_config(settings=app_settings))
    await components["record_store"].initialize()
    return components


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["record_store"].initialize()

    _logger.info(
        "app_startup",
        version=config.get("app", {}).get("version", "0.1.0"),
        environment=settings.app_env,
        primary_llm=components["primary_llm_name"],
        db_path=settings.record_store_db_path,
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Shipment Intake API",
        version=str(config.get("app", {}).get("version", "0.1.0")),
        description=(
            "Upload a shipping document or paste an email, extract the shipment "
            "order with an LLM, and review, correct and monitor the results."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)

    @application.websocket("/ws/changes")
    async def ws_changes(websocket: WebSocket, table: str = ALL_TABLES) -> None:
        await websocket_changes(websocket, table)

    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "shipment_intake.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
