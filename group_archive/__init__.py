from contextlib import asynccontextmanager

from fastapi import FastAPI
from group_archive.core.config import settings as default_settings, configure_logging
from group_archive.core.database import init_db
from group_archive.routes.inspection import router as inspection_router
from group_archive.routes.webhook import router as webhook_router
from group_archive.services.group_store import GroupStore
from group_archive.services.history_store import HistoryStore
from group_archive.services.ingestion_service import IngestionService
from group_archive.services.message_store import MessageStore
from group_archive.services.supervisor import IngestionSupervisor


def create_app(settings=None):
    settings = settings or default_settings

    # Configure logging
    configure_logging(level=settings.LOG_LEVEL, log_dir=settings.LOG_DIR)

    # Initialize database; SchemaFatal propagates and aborts startup
    backend = init_db(settings)

    # Wire the stores
    supervisor = IngestionSupervisor.for_backend(backend, settings)
    timeout = settings.DB_OPERATION_TIMEOUT
    ingestion = IngestionService(
        groups=GroupStore(backend, timeout=timeout, supervisor=supervisor),
        messages=MessageStore(backend, timeout=timeout, supervisor=supervisor),
        history=HistoryStore(
            backend,
            timeout=timeout,
            supervisor=supervisor,
            serialize_per_group=settings.SNAPSHOT_SERIALIZE_PER_GROUP,
        ),
        supervisor=supervisor,
    )

    @asynccontextmanager
    async def lifespan(app):
        yield
        await supervisor.drain()
        backend.dispose()

    # Initialize FastAPI app
    app = FastAPI(title="WhatsApp Group Archive", lifespan=lifespan)
    app.state.settings = settings
    app.state.backend = backend
    app.state.supervisor = supervisor
    app.state.ingestion = ingestion

    # Register routes
    app.include_router(webhook_router)
    app.include_router(inspection_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "backend": backend.kind.value,
            "database": backend.ping(),
            "pending_writes": supervisor.pending,
            "storage_alert": supervisor.alerting,
        }

    @app.get("/")
    def read_root():
        return {"message": "Hello, WhatsApp Group Archive"}

    return app
