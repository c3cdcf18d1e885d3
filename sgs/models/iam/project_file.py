"""File metadata for objects stored in a project's bucket."""

import uuid
from typing import Optional, Sequence

from sqlalchemy import BigInteger, Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship, Session

from ...database import Base
from ...utils.timestamps import utc_now
from ...utils.ulid import generate_prefixed_ulid


def build_object_name(bucket: str, filename: str) -> str:
  """
  Build the blob store key for an upload: ``<bucket>-<uuid4>-<filename>``.

  The random component makes every upload's key unique, so identical
  filenames never collide and retried writes are idempotent.
  """
  return f"{bucket}-{uuid.uuid4()}-{filename}"


class ProjectFile(Base):
  __tablename__ = "project_files"
  __table_args__ = (
    Index("idx_project_files_project_id", "project_id"),
    Index("idx_project_files_uploaded_by", "uploaded_by"),
  )

  id = Column(String, primary_key=True, default=lambda: generate_prefixed_ulid("fil"))
  filename = Column(String, nullable=False)
  object_name = Column(String, unique=True, nullable=False)
  project_id = Column(
    String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
  )
  size = Column(BigInteger, nullable=False)
  content_type = Column(String, nullable=False)
  uploaded_by = Column(String, ForeignKey("users.id"), nullable=False)
  created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

  project = relationship("Project", back_populates="files")

  def __repr__(self) -> str:
    return f"<ProjectFile {self.id} project_id={self.project_id} name={self.filename}>"

  @property
  def bucket(self) -> str:
    """Bucket of the owning project (read-only join)."""
    return self.project.bucket

  @classmethod
  def create(
    cls,
    project_id: str,
    filename: str,
    object_name: str,
    size: int,
    content_type: str,
    uploaded_by: str,
    session: Session,
    commit: bool = True,
  ) -> "ProjectFile":
    file = cls(
      project_id=project_id,
      filename=filename,
      object_name=object_name,
      size=size,
      content_type=content_type,
      uploaded_by=uploaded_by,
    )

    session.add(file)
    if commit:
      session.commit()
    else:
      session.flush()
    session.refresh(file)
    return file

  @classmethod
  def get_by_id(cls, file_id: str, session: Session) -> Optional["ProjectFile"]:
    return session.query(cls).filter(cls.id == file_id).first()

  @classmethod
  def get_by_project(cls, project_id: str, session: Session) -> Sequence["ProjectFile"]:
    return (
      session.query(cls)
      .filter(cls.project_id == project_id)
      .order_by(cls.created_at.desc())
      .all()
    )

  @classmethod
  def get_by_uploader(cls, user_id: str, session: Session) -> Sequence["ProjectFile"]:
    return (
      session.query(cls)
      .filter(cls.uploaded_by == user_id)
      .order_by(cls.created_at.desc())
      .all()
    )
