"""Durable outbox of blob store cleanups that still have to happen."""

from enum import Enum
from typing import Optional, Sequence

from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Session

from ...database import Base
from ...utils.timestamps import utc_now
from ...utils.ulid import generate_prefixed_ulid


class CompensationAction(str, Enum):
  REMOVE_BUCKET = "remove_bucket"
  REMOVE_OBJECT = "remove_object"


class CompensationStatus(str, Enum):
  PENDING = "pending"
  COMPLETED = "completed"
  ABANDONED = "abandoned"


class CompensationTask(Base):
  """
  A blob store removal recorded in the metadata store.

  Deletes write a task in the same transaction as the row removal; create and
  upload write one when their synchronous compensation fails. The reconciler
  drains pending tasks.
  """

  __tablename__ = "compensation_tasks"
  __table_args__ = (
    Index("idx_compensation_tasks_status_created", "status", "created_at"),
  )

  id = Column(String, primary_key=True, default=lambda: generate_prefixed_ulid("cmp"))
  action = Column(String, nullable=False)
  bucket = Column(String, nullable=False)
  object_name = Column(String, nullable=True)
  operation = Column(String, nullable=False)
  resource_id = Column(String, nullable=False)
  status = Column(String, nullable=False, default=CompensationStatus.PENDING.value)
  attempts = Column(Integer, nullable=False, default=0)
  last_error = Column(Text, nullable=True)
  created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
  updated_at = Column(
    DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
  )

  def __repr__(self) -> str:
    return f"<CompensationTask {self.id} {self.action} bucket={self.bucket} status={self.status}>"

  @classmethod
  def create(
    cls,
    action: CompensationAction,
    bucket: str,
    operation: str,
    resource_id: str,
    session: Session,
    object_name: Optional[str] = None,
    last_error: Optional[str] = None,
    commit: bool = True,
  ) -> "CompensationTask":
    task = cls(
      action=action.value,
      bucket=bucket,
      object_name=object_name,
      operation=operation,
      resource_id=resource_id,
      status=CompensationStatus.PENDING.value,
      attempts=0,
      last_error=last_error,
    )
    session.add(task)
    if commit:
      session.commit()
    else:
      session.flush()
    return task

  @classmethod
  def get_by_id(cls, task_id: str, session: Session) -> Optional["CompensationTask"]:
    return session.query(cls).filter(cls.id == task_id).first()

  @classmethod
  def get_pending(cls, session: Session, limit: int = 50) -> Sequence["CompensationTask"]:
    """Oldest pending tasks first."""
    return (
      session.query(cls)
      .filter(cls.status == CompensationStatus.PENDING.value)
      .order_by(cls.created_at)
      .limit(limit)
      .all()
    )

  @classmethod
  def has_outstanding_bucket_removal(cls, bucket: str, session: Session) -> bool:
    """True while a bucket removal for ``bucket`` is pending or abandoned."""
    return (
      session.query(cls.id)
      .filter(
        cls.bucket == bucket,
        cls.action == CompensationAction.REMOVE_BUCKET.value,
        cls.status.in_(
          [CompensationStatus.PENDING.value, CompensationStatus.ABANDONED.value]
        ),
      )
      .first()
      is not None
    )

  @classmethod
  def get_by_status(
    cls, session: Session, status: Optional[CompensationStatus] = None, limit: int = 100
  ) -> Sequence["CompensationTask"]:
    query = session.query(cls)
    if status is not None:
      query = query.filter(cls.status == status.value)
    return query.order_by(cls.created_at.desc()).limit(limit).all()

  def mark_completed(self, session: Session) -> None:
    self.status = CompensationStatus.COMPLETED.value
    self.attempts += 1
    self.last_error = None
    session.commit()

  def record_failure(self, error: str, max_attempts: int, session: Session) -> None:
    """Count a failed attempt, abandoning the task once attempts run out."""
    self.attempts += 1
    self.last_error = error[:2000]
    if self.attempts >= max_attempts:
      self.status = CompensationStatus.ABANDONED.value
    session.commit()

  def reset(self, session: Session) -> None:
    """Return an abandoned task to the pending queue."""
    self.status = CompensationStatus.PENDING.value
    self.attempts = 0
    session.commit()
