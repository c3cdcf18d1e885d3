"""Project-scoped API key records."""

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, relationship

from ...database import Base
from ...utils.timestamps import as_utc, utc_now
from ...utils.ulid import generate_prefixed_ulid


class ProjectAPIKey(Base):
  """
  An API key bound to exactly one project and its issuing user.

  Only a bcrypt hash of the secret is stored. ``lookup_prefix`` holds the
  leading characters of the token so validation hashes against a handful of
  candidates instead of every key.
  """

  __tablename__ = "project_api_keys"

  id = Column(String, primary_key=True, default=lambda: generate_prefixed_ulid("pak"))
  name = Column(String, nullable=False)
  project_id = Column(
    String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
  )
  user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
  key_hash = Column(String, nullable=False)
  lookup_prefix = Column(String, nullable=False, index=True)
  expires_at = Column(DateTime(timezone=True), nullable=False)
  revoked_at = Column(DateTime(timezone=True), nullable=True)
  last_used_at = Column(DateTime(timezone=True), nullable=True)
  created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

  project = relationship("Project", back_populates="api_keys")

  __table_args__ = (
    Index("idx_project_api_keys_prefix_revoked", "lookup_prefix", "revoked_at"),
  )

  def __repr__(self) -> str:
    return f"<ProjectAPIKey {self.id} {self.name} project={self.project_id}>"

  def is_valid(self, now: Optional[datetime] = None) -> bool:
    """A key is valid only when not revoked and not yet expired."""
    now = now or utc_now()
    return self.revoked_at is None and as_utc(self.expires_at) > now

  @classmethod
  def create(
    cls,
    name: str,
    project_id: str,
    user_id: str,
    key_hash: str,
    lookup_prefix: str,
    expires_at: datetime,
    session: Session,
  ) -> "ProjectAPIKey":
    api_key = cls(
      name=name,
      project_id=project_id,
      user_id=user_id,
      key_hash=key_hash,
      lookup_prefix=lookup_prefix,
      expires_at=expires_at,
    )
    session.add(api_key)
    try:
      session.commit()
      session.refresh(api_key)
    except SQLAlchemyError:
      session.rollback()
      raise
    return api_key

  @classmethod
  def get_candidates(cls, lookup_prefix: str, session: Session) -> Sequence["ProjectAPIKey"]:
    """Keys sharing a lookup prefix, revoked or not."""
    return session.query(cls).filter(cls.lookup_prefix == lookup_prefix).all()

  @classmethod
  def get_by_id(cls, key_id: str, session: Session) -> Optional["ProjectAPIKey"]:
    return session.query(cls).filter(cls.id == key_id).first()

  @classmethod
  def get_by_id_for_user(
    cls, key_id: str, user_id: str, session: Session
  ) -> Optional["ProjectAPIKey"]:
    return (
      session.query(cls).filter(cls.id == key_id, cls.user_id == user_id).first()
    )

  @classmethod
  def get_by_project(cls, project_id: str, session: Session) -> Sequence["ProjectAPIKey"]:
    return (
      session.query(cls)
      .filter(cls.project_id == project_id)
      .order_by(cls.created_at.desc())
      .all()
    )

  @classmethod
  def get_by_user(cls, user_id: str, session: Session) -> Sequence["ProjectAPIKey"]:
    return (
      session.query(cls)
      .filter(cls.user_id == user_id)
      .order_by(cls.created_at.desc())
      .all()
    )

  @classmethod
  def revoke(cls, key_id: str, user_id: str, session: Session) -> int:
    """
    Set ``revoked_at`` on an unrevoked key owned by ``user_id``.

    Returns the number of rows affected: 0 when the key is missing, owned by
    someone else, or already revoked.
    """
    result = session.execute(
      update(cls)
      .where(cls.id == key_id, cls.user_id == user_id, cls.revoked_at.is_(None))
      .values(revoked_at=utc_now())
      .execution_options(synchronize_session="evaluate")
    )
    try:
      session.commit()
    except SQLAlchemyError:
      session.rollback()
      raise
    return result.rowcount

  @classmethod
  def delete_for_user(cls, key_id: str, user_id: str, session: Session) -> int:
    """Hard-delete a key owned by ``user_id``. Returns rows affected."""
    result = session.execute(
      delete(cls)
      .where(cls.id == key_id, cls.user_id == user_id)
      .execution_options(synchronize_session="evaluate")
    )
    try:
      session.commit()
    except SQLAlchemyError:
      session.rollback()
      raise
    return result.rowcount

  def update_last_used(self, session: Session) -> None:
    self.last_used_at = utc_now()
    try:
      session.commit()
    except SQLAlchemyError:
      session.rollback()
      raise
