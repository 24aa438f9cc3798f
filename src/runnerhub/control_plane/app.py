"""FastAPI application managing GitLab Runner registrations."""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from uuid import UUID

import structlog
from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from ..common.observability import configure_logging, configure_tracing, instrument_fastapi_app
from ..common.schemas import ErrorResponse, GitLabRunner
from ..common.security import InvalidBearerToken, bearer_token_from_header, verify_bearer_token
from ..common.settings import ServiceSettings, init_config_path
from ..glconfig import SerializationError
from . import db
from .config_file import ConfigWriter

LOGGER = structlog.get_logger("runnerhub.control_plane")

SERVICE_NAME = "runnerhub.control_plane"


class ApiError(Exception):
    """Error translated into an :class:`ErrorResponse` body."""

    def __init__(self, status_code: int, error: str, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message


class AppState:
    """Container for application-level shared resources."""

    def __init__(
        self,
        settings: ServiceSettings,
        engine: AsyncEngine,
        session_factory,
        config_writer: ConfigWriter,
    ) -> None:
        self.settings = settings
        self.engine = engine
        self.session_factory = session_factory
        self.config_writer = config_writer


def _get_state(request: Request) -> AppState:
    state: AppState = request.app.state.container  # type: ignore[attr-defined]
    return state


def get_settings(state: AppState = Depends(_get_state)) -> ServiceSettings:
    return state.settings


async def get_session(state: AppState = Depends(_get_state)) -> AsyncSession:
    async with state.session_factory() as session:  # type: ignore[call-arg]
        yield session


def verify_api_token(request: Request, settings: ServiceSettings = Depends(get_settings)) -> dict:
    token = bearer_token_from_header(request.headers.get("authorization"))
    if token is None:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "unauthorized", "missing bearer token")
    try:
        return verify_bearer_token(settings.jwt_secret.get_secret_value(), token)
    except InvalidBearerToken as exc:
        raise ApiError(status.HTTP_403_FORBIDDEN, "forbidden", "invalid bearer token") from exc


async def _rebuild_config(state: AppState, session: AsyncSession) -> None:
    try:
        await state.config_writer.rebuild(session)
    except (OSError, SerializationError) as exc:
        LOGGER.error("runner configuration write failed", path=str(state.config_writer.path), error=str(exc))
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "config_write_failed",
            "runner configuration could not be written",
        ) from exc


def _not_found(runner_uuid: UUID) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, "not_found", f"runner {runner_uuid} not found")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = ServiceSettings()
    configure_logging(SERVICE_NAME, settings.log_level, settings.log_format)
    configure_tracing(
        service_name=SERVICE_NAME,
        endpoint=settings.otel_exporter_endpoint,
        headers=settings.otel_exporter_headers,
        sampler_ratio=settings.otel_sampler_ratio,
    )
    init_config_path(settings.config_path)
    db.ensure_sqlite_directory(settings.database_url)
    engine = db.create_engine(settings.database_url)
    await db.ensure_schema(engine)
    container = AppState(
        settings=settings,
        engine=engine,
        session_factory=db.session_factory(engine),
        config_writer=ConfigWriter(settings.config_path),
    )
    app.state.container = container
    LOGGER.info("runnerhub API ready", config_path=str(settings.config_path))
    try:
        yield
    finally:
        await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="runnerhub",
        description="GitLab Runner registrations for a Docker host",
        lifespan=lifespan,
        docs_url="/api-docs",
        openapi_url="/api-docs/openapi.json",
        redoc_url=None,
    )
    instrument_fastapi_app(app)

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        body = ErrorResponse(error=exc.error, message=exc.message)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.middleware("http")
    async def enforce_request_timeout(request: Request, call_next):  # noqa: ANN001 - FastAPI middleware signature
        container = getattr(request.app.state, "container", None)
        timeout = container.settings.request_timeout_seconds if container else None
        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(call_next(request), timeout=timeout)
        except asyncio.TimeoutError:
            LOGGER.warning("http_request_timeout", method=request.method, path=request.url.path, timeout=timeout)
            body = ErrorResponse(error="timeout", message="request timed out")
            return JSONResponse(status_code=status.HTTP_408_REQUEST_TIMEOUT, content=body.model_dump())

        duration = time.perf_counter() - start
        log_kwargs = {
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(duration * 1000, 2),
        }
        if response.status_code >= 500:
            LOGGER.error("http_request", **log_kwargs)
        else:
            LOGGER.info("http_request", **log_kwargs)
        return response

    @app.post(
        "/gitlab-runners",
        status_code=status.HTTP_201_CREATED,
        response_model=GitLabRunner,
        responses={409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def create_runner(
        runner: GitLabRunner,
        _: dict = Depends(verify_api_token),
        state: AppState = Depends(_get_state),
        session: AsyncSession = Depends(get_session),
    ) -> GitLabRunner:
        try:
            await db.insert_runner(session, runner)
        except db.RunnerAlreadyExists as exc:
            await session.rollback()
            raise ApiError(status.HTTP_409_CONFLICT, "already_exists", "runner already exists") from exc
        await session.commit()
        LOGGER.info("runner created", uuid=str(runner.uuid), runner_id=runner.id)
        await _rebuild_config(state, session)
        return runner

    @app.get("/gitlab-runners/list", response_model=list[GitLabRunner])
    async def list_runners(
        _: dict = Depends(verify_api_token),
        session: AsyncSession = Depends(get_session),
    ) -> list[GitLabRunner]:
        return await db.list_runners(session)

    @app.get(
        "/gitlab-runners/{runner_uuid}",
        response_model=GitLabRunner,
        responses={404: {"model": ErrorResponse}},
    )
    async def read_runner(
        runner_uuid: UUID,
        _: dict = Depends(verify_api_token),
        session: AsyncSession = Depends(get_session),
    ) -> GitLabRunner:
        runner = await db.get_runner(session, runner_uuid)
        if runner is None:
            raise _not_found(runner_uuid)
        return runner

    @app.put(
        "/gitlab-runners/{runner_uuid}",
        response_model=GitLabRunner,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    )
    async def update_runner(
        runner_uuid: UUID,
        runner: GitLabRunner,
        _: dict = Depends(verify_api_token),
        state: AppState = Depends(_get_state),
        session: AsyncSession = Depends(get_session),
    ) -> GitLabRunner:
        stored = await db.get_runner(session, runner_uuid)
        if stored is None:
            raise _not_found(runner_uuid)
        if not runner.compatible_with(stored):
            raise ApiError(status.HTTP_400_BAD_REQUEST, "invalid_argument", "incompatible runner")
        try:
            await db.update_runner(session, runner)
        except db.RunnerAlreadyExists as exc:
            await session.rollback()
            raise ApiError(status.HTTP_409_CONFLICT, "already_exists", "runner token already in use") from exc
        await session.commit()
        LOGGER.info("runner updated", uuid=str(runner.uuid), runner_id=runner.id)
        await _rebuild_config(state, session)
        return runner

    @app.delete(
        "/gitlab-runners/{runner_uuid}",
        response_model=GitLabRunner,
        responses={404: {"model": ErrorResponse}},
    )
    async def delete_runner(
        runner_uuid: UUID,
        _: dict = Depends(verify_api_token),
        state: AppState = Depends(_get_state),
        session: AsyncSession = Depends(get_session),
    ) -> GitLabRunner:
        stored = await db.get_runner(session, runner_uuid)
        if stored is None:
            raise _not_found(runner_uuid)
        await db.delete_runner(session, runner_uuid)
        await session.commit()
        LOGGER.info("runner deleted", uuid=str(runner_uuid), runner_id=stored.id)
        await _rebuild_config(state, session)
        return stored

    return app
