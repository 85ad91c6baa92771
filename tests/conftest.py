"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from causal_lab.config import Settings
from causal_lab.db.memory import InMemoryStore
from causal_lab.main import create_app
from causal_lab.services.analyses_service import AnalysisService
from causal_lab.services.datasets_service import DatasetService
from causal_lab.services.storage import LocalFileStorage

SALES_CSV = (
    "region,spend,promo,revenue\n"
    "north,100,yes,1200.5\n"
    "south,150,no,1300\n"
    "north,120,yes,1250\n"
    "east,90,no,1100\n"
    "south,130,yes,1400\n"
    "west,110,no,1150\n"
)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(store_backend="memory", data_dir=str(tmp_path), log_level="DEBUG")


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path)


@pytest.fixture
def dataset_service(store, storage) -> DatasetService:
    return DatasetService(store, storage)


@pytest.fixture
def analysis_service(store) -> AnalysisService:
    return AnalysisService(store)


@pytest.fixture
def client(settings, store):
    """Test client fixture; entering the context runs startup/shutdown hooks."""
    with TestClient(create_app(settings, store=store)) as c:
        yield c
