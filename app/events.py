import logging

from fastapi import FastAPI

from app.core.settings import settings
from app.db.init_db import init_db
from app.db.session import build_engine, build_session_factory
from app.services.applications import ApplicationLifecycleService, ApplicationLimits
from app.services.decisions import DecisionService
from app.services.event_sink import AuditLogEventSink
from app.services.subjects import HttpSubjectDirectory

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI) -> None:
    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info("Application startup (environment=%s)", settings.environment)
        engine = build_engine(settings.database_url)
        session_factory = build_session_factory(engine)
        if settings.auto_create_schema:
            await init_db(engine)

        subjects = HttpSubjectDirectory(
            settings.subject_directory_url,
            timeout=settings.subject_directory_timeout_seconds,
        )
        app.state.engine = engine
        app.state.lifecycle_service = ApplicationLifecycleService(
            session_factory,
            subjects,
            limits=ApplicationLimits.from_settings(settings),
        )
        app.state.decision_service = DecisionService(
            session_factory,
            AuditLogEventSink(),
            max_reason_length=settings.max_reason_length,
        )

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Application shutdown")
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.dispose()
