"""User identity model."""

from typing import Optional, Sequence

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship, Session
from sqlalchemy.exc import SQLAlchemyError

from ...database import Base
from ...utils.timestamps import utc_now
from ...utils.ulid import generate_prefixed_ulid


class User(Base):
  """
  A tenant identity.

  Credentials and login live outside this service; session tokens name a
  user by id and the record here anchors ownership of projects, uploads,
  and API keys.
  """

  __tablename__ = "users"

  id = Column(String, primary_key=True, default=lambda: generate_prefixed_ulid("usr"))
  username = Column(String, unique=True, nullable=False, index=True)
  full_name = Column(String, nullable=True)
  created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
  updated_at = Column(
    DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
  )

  projects = relationship("Project", back_populates="owner")

  def __repr__(self) -> str:
    return f"<User {self.id} {self.username}>"

  @classmethod
  def get_by_id(cls, user_id: str, session: Session) -> Optional["User"]:
    """Get a user by ID."""
    return session.query(cls).filter(cls.id == user_id).first()

  @classmethod
  def get_by_username(cls, username: str, session: Session) -> Optional["User"]:
    """Get a user by username. Usernames are stored lowercase."""
    return session.query(cls).filter(cls.username == username.lower()).first()

  @classmethod
  def create(
    cls, username: str, session: Session, full_name: Optional[str] = None
  ) -> "User":
    """Create a new user."""
    user = cls(username=username.lower(), full_name=full_name)
    session.add(user)
    try:
      session.commit()
      session.refresh(user)
    except SQLAlchemyError:
      session.rollback()
      raise
    return user

  @classmethod
  def get_all(cls, session: Session) -> Sequence["User"]:
    return session.query(cls).order_by(cls.created_at).all()
