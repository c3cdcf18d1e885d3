"""File API models."""

from datetime import datetime

from pydantic import BaseModel, Field


class FileResponse(BaseModel):
  """File metadata. ``object_name`` is the blob store key, not the filename."""

  id: str = Field(..., description="File ID")
  filename: str = Field(..., description="Filename as uploaded")
  object_name: str = Field(..., description="Blob store object key")
  project_id: str
  bucket: str
  size: int = Field(..., description="Size in bytes")
  content_type: str
  uploaded_by: str
  created_at: datetime

  class Config:
    from_attributes = True


class FileListResponse(BaseModel):
  files: list[FileResponse]


class ShareFileRequest(BaseModel):
  """Request model for issuing a signed download link."""

  expires_at: datetime = Field(
    ...,
    description="When the link stops working (ISO 8601, timezone-aware)",
    examples=["2024-12-31T23:59:59Z"],
  )


class ShareFileResponse(BaseModel):
  url: str = Field(..., description="Public download URL carrying the signed token")
  token: str = Field(..., description="Signed token (also embedded in url)")
  expires_at: datetime
  # Signed links cannot be revoked; they stay valid until expires_at
  revocable: bool = Field(
    False, description="Always false: links remain valid until they expire"
  )
