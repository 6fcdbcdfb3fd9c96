"""
Table metadata for forms, submissions and analytics.

Services query these tables with raw SQL; the declarative classes exist so
setup_db can create them on any supported backend.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func

from db.database import Base


class Form(Base):
    __tablename__ = "forms"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_forms_user_name"),)

    id = Column(String(36), primary_key=True)
    user_id = Column(String(128), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    theme = Column(String(32), nullable=False, default="default")
    content = Column(Text, nullable=False, default="[]")
    published = Column(Boolean, nullable=False, default=False)
    share_url = Column(String(36), nullable=False, unique=True)
    visits = Column(Integer, nullable=False, default=0)
    submissions = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(String(36), primary_key=True)
    form_id = Column(String(36), ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AnalyticsEvent(Base):
    __tablename__ = "analytics"

    id = Column(String(36), primary_key=True)
    form_id = Column(String(36), ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    submission_id = Column(String(36), nullable=True)
    event = Column(String(64), nullable=False)
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", Text, nullable=False, default="{}")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
