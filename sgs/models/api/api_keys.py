"""API key request and response models."""

from datetime import datetime

from pydantic import BaseModel, Field


class CreateAPIKeyRequest(BaseModel):
  """Request model for creating a project API key."""

  name: str = Field(
    ..., min_length=1, max_length=100, description="Name for the API key"
  )
  expires_at: datetime = Field(
    ...,
    description="Expiration time in ISO format (e.g. 2024-12-31T23:59:59Z)",
  )


class APIKeyInfo(BaseModel):
  """API key information response model. Never includes the secret."""

  id: str = Field(..., description="API key ID")
  name: str = Field(..., description="API key name")
  project_id: str = Field(..., description="Project the key is bound to")
  user_id: str = Field(..., description="Issuing user")
  prefix: str = Field(..., description="Leading characters of the key for identification")
  is_valid: bool = Field(..., description="Not revoked and not expired")
  expires_at: datetime
  revoked_at: datetime | None = None
  last_used_at: datetime | None = None
  created_at: datetime


class CreateAPIKeyResponse(BaseModel):
  """Response model for creating a new API key."""

  api_key: APIKeyInfo = Field(..., description="API key information")
  key: str = Field(..., description="The actual API key (only shown once)")


class APIKeysResponse(BaseModel):
  """Response model for listing API keys."""

  api_keys: list[APIKeyInfo] = Field(..., description="List of API keys")
