"""Project API models."""

from datetime import datetime

from pydantic import BaseModel, Field

# S3 bucket naming rules: 3-63 chars, lowercase letters, digits, dots, hyphens
BUCKET_NAME_PATTERN = r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$"


class CreateProjectRequest(BaseModel):
  """Request model for creating a project and its bucket."""

  bucket: str = Field(
    ...,
    min_length=3,
    max_length=63,
    pattern=BUCKET_NAME_PATTERN,
    description="Bucket name; also the project's unique name",
    examples=["proj-abc"],
  )


class ProjectResponse(BaseModel):
  id: str = Field(..., description="Project ID")
  owner_id: str = Field(..., description="Owning user ID")
  bucket: str = Field(..., description="Bucket backing this project")
  created_at: datetime
  updated_at: datetime
  file_count: int | None = Field(None, description="Number of files in the project")
  total_file_size: int | None = Field(
    None, description="Total size of the project's files in bytes"
  )

  class Config:
    from_attributes = True


class ProjectListResponse(BaseModel):
  projects: list[ProjectResponse]
