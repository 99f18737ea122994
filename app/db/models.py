"""Database models."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, JSON, Boolean, Integer
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """Registered user."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)  # stored lower-cased
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    interviews = relationship("Interview", back_populates="user")


class Interview(Base):
    """Prepared mock interview."""

    __tablename__ = "interviews"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    role = Column(String, nullable=False)
    level = Column(String, nullable=True)
    type = Column(String, nullable=True)  # technical, behavioural, mixed
    techstack = Column(JSON, nullable=False, default=list)  # List of strings
    questions = Column(JSON, nullable=False, default=list)  # List of strings
    finalized = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="interviews")


class Feedback(Base):
    """AI evaluation of an interview transcript."""

    __tablename__ = "feedback"

    id = Column(String, primary_key=True, default=_new_id)
    interview_id = Column(String, ForeignKey("interviews.id"), index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    total_score = Column(Integer, nullable=False)
    category_scores = Column(JSON, nullable=False)  # [{name, score, comment}]
    strengths = Column(JSON, nullable=False)
    areas_for_improvement = Column(JSON, nullable=False)
    final_assessment = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
