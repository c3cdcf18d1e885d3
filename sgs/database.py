from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from sgs.config import env


class Base(DeclarativeBase):
  """Base class for all models."""

  pass


def build_engine(database_url: Optional[str] = None, **overrides) -> Engine:
  """
  Create the metadata store engine.

  PostgreSQL connections run at READ COMMITTED; each composite operation uses
  its own short-lived transaction and never relies on repeatable reads across
  its own steps.
  """
  url = database_url or env.get_database_url()
  options = {
    "pool_pre_ping": True,
    "echo": env.DATABASE_ECHO,
  }
  if url.startswith("postgresql"):
    options.update(
      isolation_level="READ COMMITTED",
      pool_size=env.DATABASE_POOL_SIZE,
      max_overflow=env.DATABASE_MAX_OVERFLOW,
      pool_timeout=env.DATABASE_POOL_TIMEOUT,
      pool_recycle=env.DATABASE_POOL_RECYCLE,
    )
  options.update(overrides)
  return create_engine(url, **options)


def build_session_factory(engine: Engine) -> sessionmaker:
  # expire_on_commit=False keeps returned records readable after the
  # session that produced them is closed
  return sessionmaker(
    bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
  )


@contextmanager
def transaction_scope(session_factory: sessionmaker) -> Iterator[Session]:
  """
  Provide a session whose transaction is committed on success.

  Any exception rolls the transaction back before propagating.
  """
  session = session_factory()
  try:
    yield session
    session.commit()
  except Exception:
    session.rollback()
    raise
  finally:
    session.close()


def get_db_session(request: Request) -> Iterator[Session]:
  """Get database session for FastAPI dependency injection."""
  db = request.app.state.services.session_factory()
  try:
    yield db
  finally:
    db.close()
