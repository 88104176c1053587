from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from recordserve.core import config, db
from recordserve.core.errors import StartupError
from recordserve.core.logging import configure_logging
from recordserve.records import loader
from recordserve.records import router as records_router
from recordserve.records.repository import RecordStore

logger = logging.getLogger(__name__)


def create_app(
    settings: config.Settings | None = None,
    *,
    store: records_router.RecordReader | None = None,
) -> FastAPI:
    """
    Build the application.

    Without `store`, startup connects to Postgres, ensures the schema and
    bulk-loads the CSV file before the server accepts requests. Passing a
    `store` skips all of that and serves from it directly.
    """
    settings = settings or config.load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if store is not None:
            app.state.store = store
            yield
            return

        try:
            database = await db.connect(settings.database, settings.retry)
        except StartupError as exc:
            logger.critical("startup_failed error=%s", exc)
            raise

        # The pool is released exactly once, however startup or serving ends.
        try:
            await db.ensure_schema(database)
            app.state.store = RecordStore(database)
            await loader.load_csv(settings.csv_path, app.state.store)
            yield
        except StartupError as exc:
            logger.critical("startup_failed error=%s", exc)
            raise
        finally:
            await database.close()
            logger.info("db_closed")

    app = FastAPI(title="recordserve", lifespan=lifespan)
    app.state.settings = settings
    app.include_router(records_router.router, tags=["records"])

    @app.get("/", include_in_schema=False)
    def root() -> RedirectResponse:
        return RedirectResponse(url="/data", status_code=308)

    return app


def build_app() -> FastAPI:
    """
    App factory for `recordserve` and `uvicorn --factory recordserve.main:build_app`.

    Seeds the environment from `.env`, configures logging, then builds the app.
    """
    env_loaded = config.load_env_file()
    settings = config.load_settings()
    configure_logging(settings.log_level)
    if env_loaded:
        logger.info("env_file_loaded path=%s", config.DEFAULT_ENV_FILE)
    else:
        logger.warning("env_file_not_found path=%s using process environment", config.DEFAULT_ENV_FILE)
    return create_app(settings)


def run() -> None:
    """
    Console entry point: `recordserve`.
    """
    app = build_app()
    settings: config.Settings = app.state.settings
    logger.info("server_starting host=%s port=%s", settings.http_host, settings.http_port)
    uvicorn.run(
        app,
        host=settings.http_host,
        port=settings.http_port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
