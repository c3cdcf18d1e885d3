"""Project model. Each project owns exactly one blob store bucket."""

from typing import List, Optional, Sequence, Tuple

from sqlalchemy import Column, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship, Session

from ...database import Base
from ...utils.timestamps import utc_now
from ...utils.ulid import generate_prefixed_ulid


class Project(Base):
  __tablename__ = "projects"

  id = Column(String, primary_key=True, default=lambda: generate_prefixed_ulid("prj"))
  owner_id = Column(
    String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
  )
  # Unique constraint is the only guard against concurrent same-name creates
  bucket = Column(String, unique=True, nullable=False)
  created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
  updated_at = Column(
    DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
  )

  owner = relationship("User", back_populates="projects")
  files = relationship(
    "ProjectFile",
    back_populates="project",
    cascade="all, delete-orphan",
  )
  api_keys = relationship(
    "ProjectAPIKey",
    back_populates="project",
    cascade="all, delete-orphan",
  )

  def __repr__(self) -> str:
    return f"<Project {self.id} bucket={self.bucket} owner={self.owner_id}>"

  @classmethod
  def create(
    cls, owner_id: str, bucket: str, session: Session, commit: bool = True
  ) -> "Project":
    """
    Stage a project row.

    With ``commit=False`` the row is flushed into the open transaction only,
    visible to this session until the caller commits.
    """
    project = cls(owner_id=owner_id, bucket=bucket)
    session.add(project)
    if commit:
      session.commit()
    else:
      session.flush()
    session.refresh(project)
    return project

  @classmethod
  def get_by_id(cls, project_id: str, session: Session) -> Optional["Project"]:
    return session.query(cls).filter(cls.id == project_id).first()

  @classmethod
  def get_by_bucket(cls, bucket: str, session: Session) -> Optional["Project"]:
    return session.query(cls).filter(cls.bucket == bucket).first()

  @classmethod
  def get_by_owner(cls, owner_id: str, session: Session) -> Sequence["Project"]:
    return (
      session.query(cls)
      .filter(cls.owner_id == owner_id)
      .order_by(cls.created_at.desc())
      .all()
    )

  @classmethod
  def get_by_owner_with_stats(
    cls, owner_id: str, session: Session
  ) -> List[Tuple["Project", int, int]]:
    """Return (project, file_count, total_size_bytes) for each owned project."""
    from .project_file import ProjectFile

    rows = (
      session.query(
        cls,
        func.count(ProjectFile.id),
        func.coalesce(func.sum(ProjectFile.size), 0),
      )
      .outerjoin(ProjectFile, ProjectFile.project_id == cls.id)
      .filter(cls.owner_id == owner_id)
      .group_by(cls.id)
      .order_by(cls.created_at.desc())
      .all()
    )
    return [(project, int(count), int(total)) for project, count, total in rows]

  def is_owned_by(self, user_id: str) -> bool:
    return self.owner_id == user_id
