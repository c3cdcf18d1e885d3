"""
Unprotected status endpoint for load balancers and monitoring.
"""

from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..logger import logger
from ..middleware.auth.dependencies import get_services
from ..models.api.common import HealthStatus
from ..services import ServiceContainer

router = APIRouter(tags=["Status"])


def get_app_version() -> str:
  """Get the application version from installed package metadata."""
  try:
    return version("sgs-service")
  except PackageNotFoundError:
    return "unknown"


def _database_reachable(services: ServiceContainer) -> bool:
  try:
    with services.engine.connect() as connection:
      connection.execute(text("SELECT 1"))
    return True
  except SQLAlchemyError as e:
    logger.warning(f"Database health check failed: {e}")
    return False


@router.get(
  "/status",
  response_model=HealthStatus,
  operation_id="getServiceStatus",
  summary="Health Check",
  description="Reports reachability of the metadata store and blob store.",
)
def service_status(services: ServiceContainer = Depends(get_services)) -> HealthStatus:
  database_ok = _database_reachable(services)
  blob_store_ok = services.blob_store.ping()

  if database_ok and blob_store_ok:
    health = "healthy"
  elif database_ok or blob_store_ok:
    health = "degraded"
  else:
    health = "unhealthy"

  return HealthStatus(
    status=health,
    timestamp=datetime.now(timezone.utc),
    details={
      "service": "sgs-api",
      "version": get_app_version(),
      "database": "ok" if database_ok else "unreachable",
      "blob_store": "ok" if blob_store_ok else "unreachable",
    },
  )
