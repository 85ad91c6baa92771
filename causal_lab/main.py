import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from causal_lab import __version__
from causal_lab.api.router import api_router
from causal_lab.config import Settings, configure_logging, settings as default_settings
from causal_lab.db.base import RecordStore
from causal_lab.db.memory import InMemoryStore
from causal_lab.db.registry import PostgresStore
from causal_lab.errors import install_error_handlers
from causal_lab.models.common import HealthResponse
from causal_lab.services.analyses_service import AnalysisService
from causal_lab.services.datasets_service import DatasetService
from causal_lab.services.storage import LocalFileStorage

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> RecordStore:
    backend = settings.resolved_backend()
    if backend == "postgres":
        return PostgresStore(
            settings.database_url,
            ssl=settings.db_ssl,
            auto_migrate=settings.db_auto_migrate,
        )
    logger.warning("using in-memory record store; data is lost on restart")
    return InMemoryStore()


def create_app(settings: Optional[Settings] = None, store: Optional[RecordStore] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Causal Lab",
        version=__version__,
        description="Dataset upload, column profiling and causal analysis tracking",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    store = store or build_store(settings)
    storage = LocalFileStorage(Path(settings.data_dir))

    app.state.settings = settings
    app.state.store = store
    app.state.dataset_service = DatasetService(store, storage)
    app.state.analysis_service = AnalysisService(
        store,
        validate_columns=settings.validate_analysis_columns,
    )

    app.include_router(api_router)

    @app.on_event("startup")
    async def _startup():
        await store.open()
        logger.info("record store opened (%s)", type(store).__name__)

    @app.on_event("shutdown")
    async def _shutdown():
        # Gracefully close the pool to avoid dangling connections on redeploy.
        await store.close()

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(
            status="ok",
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=__version__,
        )

    return app


app = create_app()
