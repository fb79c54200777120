"""Shared pytest fixtures for the shipment intake test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from shipment_intake.config.settings import Settings
from shipment_intake.interfaces.llm_provider import ILLMProvider
from shipment_intake.pipeline.change_notifier import ChangeNotifier
from shipment_intake.providers.file_store.local_file_store import LocalFileStore
from shipment_intake.providers.record_store.sqlite_record_store import SQLiteRecordStore

# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

@pytest.fixture
def valid_payload() -> dict[str, Any]:
    """A complete, valid extraction payload."""
    return {
        "customer_name": "Acme Corp",
        "address": "500 Industrial Way, Springfield",
        "tracking_id": "TRK-0042",
        "delivery_date": "2025-03-14",
        "package_weight": 12.75,
        "notes": "Leave at loading dock",
    }


@pytest.fixture
def valid_response(valid_payload: dict[str, Any]) -> str:
    """The model's raw reply for :func:`valid_payload`."""
    return json.dumps(valid_payload)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every path at a temporary directory."""
    return Settings(
        openai_api_key="sk-test",
        openai_base_url="",
        openai_text_model="",
        ollama_base_url="http://localhost:11434",
        record_store_db_path=str(tmp_path / "shipments.db"),
        file_store_dir=str(tmp_path / "files"),
        public_base_url="http://testserver",
        max_upload_bytes=1024,
        app_env="development",
    )


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm() -> MagicMock:
    """An ILLMProvider whose ``complete`` is an AsyncMock; set its return value per test."""
    provider = MagicMock(spec=ILLMProvider)
    provider.complete = AsyncMock(return_value="{}")
    provider.get_provider_name.return_value = "mock-llm"
    provider.is_available.return_value = True
    return provider


@pytest_asyncio.fixture
async def record_store(tmp_path: Path) -> SQLiteRecordStore:
    """An initialized SQLite record store in a temporary database."""
    store = SQLiteRecordStore(db_path=tmp_path / "shipments.db")
    await store.initialize()
    return store


@pytest.fixture
def file_store(tmp_path: Path) -> LocalFileStore:
    return LocalFileStore(root_dir=tmp_path / "files", public_base_url="http://testserver")


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()
