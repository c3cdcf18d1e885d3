import os

# Configure the environment before any sgs module reads it
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("JWT_SECRET_KEY", "test-session-secret-0123456789abcdef")
os.environ.setdefault("SIGNED_URL_SECRET_KEY", "test-signing-secret-0123456789abcdef")
os.environ.setdefault("RECONCILER_ENABLED", "false")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from main import create_app
from sgs.middleware.auth.jwt import SessionTokenCodec
from sgs.models.iam import User
from sgs.operations.aws.s3 import BlobStore
from sgs.security.api_keys import APIKeyService
from sgs.security.signed_urls import SignedURLService
from sgs.services import ServiceContainer

TEST_SESSION_SECRET = "test-session-secret-0123456789abcdef"
TEST_SIGNING_SECRET = "test-signing-secret-0123456789abcdef"


@pytest.fixture
def engine():
  """In-memory SQLite shared across sessions through a single connection."""
  engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
  )
  yield engine
  engine.dispose()


@pytest.fixture
def s3_client():
  """Mock S3 client for testing."""
  with mock_aws():
    yield boto3.client("s3", region_name="us-east-1")


@pytest.fixture
def blob_store(s3_client):
  return BlobStore(client=s3_client, max_retries=2, retry_base_delay=0)


@pytest.fixture
def services(engine, blob_store):
  container = ServiceContainer.build(
    engine=engine,
    blob_store=blob_store,
    # Fast hashing for tests; production uses API_KEY_HASH_ROUNDS
    api_keys=APIKeyService(hash_rounds=4),
    signed_urls=SignedURLService(
      secret=TEST_SIGNING_SECRET, base_url="http://testserver"
    ),
    session_tokens=SessionTokenCodec(secret=TEST_SESSION_SECRET),
    reconciler_max_attempts=3,
  )
  container.create_schema()
  yield container
  container.close()


@pytest.fixture
def db_session(services):
  session = services.session_factory()
  yield session
  session.close()


@pytest.fixture
def alice(db_session):
  return User.create("alice", db_session, full_name="Alice Example")


@pytest.fixture
def bob(db_session):
  return User.create("bob", db_session, full_name="Bob Example")


@pytest.fixture
def client(services):
  app = create_app(services=services, run_reconciler=False)
  return TestClient(app)


@pytest.fixture
def session_headers(services):
  """Build Authorization headers for a user."""

  def _headers(user):
    token = services.session_tokens.create_token(user.id, user.username)
    return {"Authorization": f"Bearer {token}"}

  return _headers


@pytest.fixture
def project(services, alice):
  return services.saga.create_project(alice.id, "proj-abc")
