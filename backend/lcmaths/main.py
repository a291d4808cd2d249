from __future__ import annotations
import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .cleanup import cleanup_watcher, run_purge
from .db import init_db, make_engine, make_session_factory
from .errors import UniqueConstraintViolation
from .evaluator import AnswerEvaluator
from .routers import admin, attempts, auth, catalog, health
from .services.catalog import ensure_seed_data
from .settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

ROUTE_NOT_FOUND = "Route not implemented"


def _error(status_code: int, message: str) -> JSONResponse:
	return JSONResponse({"error": message}, status_code=status_code)


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_error(request: Request, exc: StarletteHTTPException):
		# The router answers unknown paths with 404 "Not Found" and known paths
		# with the wrong method as 405; both are just unknown routes here
		if exc.status_code == 405 or (exc.status_code == 404 and exc.detail == "Not Found"):
			return _error(404, ROUTE_NOT_FOUND)
		return _error(exc.status_code, str(exc.detail))

	@app.exception_handler(RequestValidationError)
	async def validation_error(request: Request, exc: RequestValidationError):
		return _error(400, "Invalid request body.")

	@app.exception_handler(UniqueConstraintViolation)
	async def unique_error(request: Request, exc: UniqueConstraintViolation):
		return _error(409, str(exc))

	@app.exception_handler(SQLAlchemyError)
	async def storage_error(request: Request, exc: SQLAlchemyError):
		logger.error("Unhandled storage failure on %s %s", request.method, request.url.path, exc_info=exc)
		return _error(500, "Internal server error")

	@app.exception_handler(Exception)
	async def unhandled_error(request: Request, exc: Exception):
		logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
		return _error(500, "Internal server error")


def _seed(app: FastAPI) -> None:
	db = app.state.session_factory()
	try:
		ensure_seed_data(db)
	finally:
		db.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
	settings = settings or default_settings
	logging.basicConfig(level=settings.log_level.upper())

	@contextlib.asynccontextmanager
	async def lifespan(app: FastAPI):
		init_db(app.state.engine)
		if settings.seed_demo_content:
			_seed(app)
		run_purge(app.state.session_factory)
		watcher = asyncio.create_task(cleanup_watcher(app.state.session_factory))
		logger.info("LC maths API ready (env=%s, gemini=%s)", settings.app_env, settings.gemini_enabled)
		try:
			yield
		finally:
			watcher.cancel()
			with contextlib.suppress(asyncio.CancelledError):
				await watcher
			app.state.engine.dispose()

	app = FastAPI(title="LC Maths Practice API", lifespan=lifespan)
	engine = make_engine(settings.database_url)
	app.state.settings = settings
	app.state.engine = engine
	app.state.session_factory = make_session_factory(engine)
	app.state.pwd_context = auth.make_password_context(settings)
	app.state.evaluator = AnswerEvaluator(settings)

	for module in (health, auth, catalog, attempts, admin):
		app.include_router(module.router, prefix=settings.api_prefix)
	install_error_handlers(app)
	return app


app = create_app()
