"""
Application-lifetime container for store handles and services.

Nothing in the service holds a module-level engine or client; the container
is built once per application (in the lifespan, or by tests) and reached
through ``request.app.state.services``.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .database import Base, build_engine, build_session_factory
from .middleware.auth.jwt import SessionTokenCodec
from .operations.aws.s3 import BlobStore
from .operations.storage.reconciler import CompensationReconciler
from .operations.storage.saga import StorageSaga
from .security.api_keys import APIKeyService
from .security.signed_urls import SignedURLService


@dataclass
class ServiceContainer:
  engine: Engine
  session_factory: sessionmaker
  blob_store: BlobStore
  saga: StorageSaga
  reconciler: CompensationReconciler
  api_keys: APIKeyService
  signed_urls: SignedURLService
  session_tokens: SessionTokenCodec

  @classmethod
  def build(
    cls,
    engine: Optional[Engine] = None,
    blob_store: Optional[BlobStore] = None,
    api_keys: Optional[APIKeyService] = None,
    signed_urls: Optional[SignedURLService] = None,
    session_tokens: Optional[SessionTokenCodec] = None,
    reconciler_max_attempts: Optional[int] = None,
  ) -> "ServiceContainer":
    """Wire the services together, defaulting each handle from the environment."""
    engine = engine or build_engine()
    session_factory = build_session_factory(engine)
    blob_store = blob_store or BlobStore()
    return cls(
      engine=engine,
      session_factory=session_factory,
      blob_store=blob_store,
      saga=StorageSaga(session_factory, blob_store),
      reconciler=CompensationReconciler(
        session_factory, blob_store, max_attempts=reconciler_max_attempts
      ),
      api_keys=api_keys or APIKeyService(),
      signed_urls=signed_urls or SignedURLService(),
      session_tokens=session_tokens or SessionTokenCodec(),
    )

  def create_schema(self) -> None:
    """Create tables directly. Used by tests and local development."""
    Base.metadata.create_all(self.engine)

  def close(self) -> None:
    self.engine.dispose()
