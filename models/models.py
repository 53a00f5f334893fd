"""
Database models for the persistent backend.
"""
import uuid

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Index, Integer, JSON, String, Text, false, func,
    literal_column,
)
from sqlalchemy.dialects.postgresql import JSONB

from db_config import Base

# Nested documents are JSONB on PostgreSQL and plain JSON elsewhere.
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def new_object_id() -> str:
    return uuid.uuid4().hex


class Account(Base):
    __tablename__ = "account"

    # seq keeps insertion order for sort tie-breaks; id is the public identifier.
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), nullable=False, unique=True, index=True, default=new_object_id)
    username = Column(String(30), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, server_default="student")
    avatar = Column(String(500), nullable=False, server_default="")
    profile = Column(JSONDocument, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("length(username) >= 3 AND length(username) <= 30", name="ck_account_username_length"),
        CheckConstraint("role IN ('admin', 'teacher', 'student')", name="ck_account_role"),
    )


class GenerationRecord(Base):
    __tablename__ = "generation_record"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), nullable=False, unique=True, index=True, default=new_object_id)
    user_id = Column(String(32), nullable=False, index=True)
    prompt = Column(Text, nullable=False)
    content_type = Column(String(16), nullable=False, index=True)
    content = Column(JSONDocument, nullable=False)
    status = Column(String(16), nullable=False, server_default="completed", index=True)
    provider = Column(String(50), nullable=True, index=True)
    model = Column(String(100), nullable=True)
    generation_metadata = Column("metadata", JSONDocument, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("content_type IN ('text', 'image', 'audio', 'video')", name="ck_generation_content_type"),
        CheckConstraint("status IN ('pending', 'completed', 'failed')", name="ck_generation_status"),
    )


class Resource(Base):
    __tablename__ = "resource"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), nullable=False, unique=True, index=True, default=new_object_id)
    title = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=False, server_default="")
    content_type = Column(String(20), nullable=False, index=True)
    category = Column(String(20), nullable=False, index=True)
    content = Column(JSONDocument, nullable=False)
    resource_metadata = Column("metadata", JSONDocument, nullable=False)
    tags = Column(JSONDocument, nullable=False)
    search_text = Column(Text, nullable=False, server_default="")
    creator = Column(String(32), nullable=False, index=True)
    collaborators = Column(JSONDocument, nullable=False)
    likes = Column(JSONDocument, nullable=False)
    likes_count = Column(Integer, nullable=False, server_default="0")
    views = Column(Integer, nullable=False, server_default="0")
    is_public = Column(Boolean, nullable=False, server_default=false(), index=True)
    generation_id = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("length(title) >= 1", name="ck_resource_title_length"),
        CheckConstraint("views >= 0", name="ck_resource_views"),
        CheckConstraint(
            "content_type IN ('text', 'image', 'audio', 'video', 'presentation', 'interactive')",
            name="ck_resource_content_type",
        ),
        CheckConstraint(
            "category IN ('lesson_plan', 'worksheet', 'presentation', 'quiz', 'assignment', 'reference')",
            name="ck_resource_category",
        ),
        Index(
            "ix_resource_search_text",
            func.to_tsvector(literal_column("'simple'"), search_text),
            postgresql_using="gin",
        ).ddl_if(dialect="postgresql"),
    )
