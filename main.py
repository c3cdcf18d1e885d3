"""Storage gateway API main application module."""

import asyncio
import contextlib
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sgs.config import env
from sgs.config.logging import get_logger
from sgs.exceptions import AuthenticationError, SGSError
from sgs.middleware.logging import StructuredLoggingMiddleware
from sgs.models.api.common import ErrorResponse
from sgs.routers import router as v1_router
from sgs.routers.status import get_app_version
from sgs.services import ServiceContainer

logger = get_logger("sgs.api")


def _error_response(request: Request, exc: SGSError) -> JSONResponse:
  body = ErrorResponse(
    detail=exc.message,
    code=exc.error_code,
    request_id=getattr(request.state, "request_id", None),
    timestamp=datetime.fromisoformat(exc.timestamp),
  )
  headers = None
  if isinstance(exc, AuthenticationError):
    headers = {"WWW-Authenticate": "Bearer, ApiKey"}
  return JSONResponse(
    status_code=exc.status_code,
    content=body.model_dump(mode="json"),
    headers=headers,
  )


def create_app(
  services: Optional[ServiceContainer] = None,
  run_reconciler: Optional[bool] = None,
) -> FastAPI:
  """
  Create the FastAPI app and include the routers.

  Args:
      services: Prebuilt service container. When omitted, one is built from
          the environment at startup.
      run_reconciler: Whether to run the compensation reconciler loop.
          Defaults to RECONCILER_ENABLED when services are built here, and
          to False when they are injected.

  Returns:
      FastAPI: The configured FastAPI application.
  """

  @asynccontextmanager
  async def lifespan(app: FastAPI):
    logger.info("Starting storage gateway API...")

    errors = env.validate()
    if errors:
      for error in errors:
        logger.error(f"Configuration error: {error}")
      if env.is_production():
        raise RuntimeError("Invalid configuration: " + "; ".join(errors))
      logger.warning("Continuing with invalid configuration (non-production)")

    owns_services = app.state.services is None
    if owns_services:
      app.state.services = ServiceContainer.build()

    start_loop = run_reconciler if run_reconciler is not None else (
      owns_services and env.RECONCILER_ENABLED
    )
    reconciler_task = None
    if start_loop:
      reconciler_task = asyncio.create_task(
        app.state.services.reconciler.run_forever()
      )

    logger.info("Storage gateway API startup complete")
    try:
      yield
    finally:
      logger.info("Shutting down storage gateway API...")
      if reconciler_task is not None:
        reconciler_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
          await reconciler_task
      if owns_services:
        app.state.services.close()
        app.state.services = None

  app = FastAPI(
    title="Storage Gateway API",
    version=get_app_version(),
    description="Multi-tenant file storage gateway",
    openapi_url="/openapi.json",
    lifespan=lifespan,
  )
  app.state.services = services

  app.add_middleware(
    CORSMiddleware,
    allow_origins=env.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Accept", "Content-Type", "Authorization", "X-API-Key"],
    expose_headers=["X-Request-ID"],
  )
  app.add_middleware(StructuredLoggingMiddleware)

  @app.exception_handler(SGSError)
  async def sgs_exception_handler(request: Request, exc: SGSError) -> JSONResponse:
    if exc.status_code >= 500:
      logger.error(
        f"{exc.error_code}: {exc.message}",
        extra={"request_id": getattr(request.state, "request_id", None)},
        exc_info=exc,
      )
    return _error_response(request, exc)

  @app.exception_handler(Exception)
  async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler returning generic error and request ID.

    Internal exception details are logged server-side; clients receive a generic
    message with a correlation identifier.
    """
    request_id = getattr(request.state, "request_id", None)
    logger.error("Unhandled exception", extra={"request_id": request_id}, exc_info=exc)
    return JSONResponse(
      status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
      content={
        "detail": "Internal server error",
        "request_id": request_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
      },
    )

  app.include_router(v1_router)

  return app


app = create_app()


if __name__ == "__main__":
  import uvicorn

  uvicorn.run("main:app", host=env.HOST, port=env.PORT, reload=env.is_development())
