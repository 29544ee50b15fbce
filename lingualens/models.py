"""
SQLAlchemy models for analysis sessions, analysis history and vocabulary.

User ids are opaque strings issued by the hosted auth service; there is no
local users table.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Sessions
# =============================================================================

class AnalysisSession(Base):
    __tablename__ = "analysis_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, default=None)
    session_type: Mapped[str] = mapped_column(String(16))  # word|sentence|paragraph|mixed
    status: Mapped[str] = mapped_column(String(16), default="active")  # active|archived|deleted
    total_analyses: Mapped[int] = mapped_column(Integer, default=0)
    word_analyses_count: Mapped[int] = mapped_column(Integer, default=0)
    sentence_analyses_count: Mapped[int] = mapped_column(Integer, default=0)
    paragraph_analyses_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)
    last_accessed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)


class SessionSettings(Base):
    __tablename__ = "session_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("analysis_sessions.id", ondelete="CASCADE"), unique=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    auto_save: Mapped[bool] = mapped_column(Boolean, default=True)
    show_summaries: Mapped[bool] = mapped_column(Boolean, default=True)
    compact_view: Mapped[bool] = mapped_column(Boolean, default=False)
    preferred_ai_provider: Mapped[Optional[str]] = mapped_column(String(64), default=None)
    preferred_ai_model: Mapped[Optional[str]] = mapped_column(String(128), default=None)
    analysis_depth: Mapped[str] = mapped_column(String(16), default="standard")  # basic|standard|detailed
    default_export_format: Mapped[str] = mapped_column(String(16), default="json")  # json|pdf|markdown|csv
    include_metadata: Mapped[bool] = mapped_column(Boolean, default=True)
    email_notifications: Mapped[bool] = mapped_column(Boolean, default=False)
    session_reminders: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)


class SessionAnalysis(Base):
    __tablename__ = "session_analyses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    # NULL for history items synced from a client without a session
    session_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("analysis_sessions.id", ondelete="CASCADE"), default=None, index=True
    )
    analysis_type: Mapped[str] = mapped_column(String(16))  # word|sentence|paragraph
    analysis_id: Mapped[str] = mapped_column(String(128), unique=True)
    analysis_title: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    analysis_summary: Mapped[Optional[str]] = mapped_column(Text, default=None)
    analysis_data: Mapped[Optional[dict]] = mapped_column(JSON, default=None)
    position: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)


class SessionTag(Base):
    __tablename__ = "session_tags"
    __table_args__ = (UniqueConstraint("user_id", "tag_name", name="uq_session_tag_user_name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    tag_name: Mapped[str] = mapped_column(String(64))
    tag_color: Mapped[str] = mapped_column(String(16), default="#6366f1")
    tag_description: Mapped[Optional[str]] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)


class SessionTagRelation(Base):
    __tablename__ = "session_tag_relations"
    __table_args__ = (UniqueConstraint("session_id", "tag_id", name="uq_session_tag_relation"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("analysis_sessions.id", ondelete="CASCADE"), index=True
    )
    tag_id: Mapped[str] = mapped_column(String(36), ForeignKey("session_tags.id", ondelete="CASCADE"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


# =============================================================================
# Vocabulary
# =============================================================================

class VocabularyCollection(Base):
    __tablename__ = "vocabulary_collections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, default=None)
    collection_type: Mapped[str] = mapped_column(String(32))  # custom|topic|difficulty|cefr_level|frequency
    color: Mapped[Optional[str]] = mapped_column(String(16), default=None)
    icon: Mapped[Optional[str]] = mapped_column(String(32), default=None)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    practice_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    review_interval_days: Mapped[int] = mapped_column(Integer, default=1)
    status: Mapped[str] = mapped_column(String(16), default="active")
    word_count: Mapped[int] = mapped_column(Integer, default=0)
    mastered_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)


class VocabularyWord(Base):
    __tablename__ = "vocabulary_words"
    # Words are stored lower-cased, so this is case-insensitive per user
    __table_args__ = (UniqueConstraint("user_id", "word", name="uq_vocabulary_word_user"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    word: Mapped[str] = mapped_column(Text)
    content_type: Mapped[str] = mapped_column(String(16), default="word")  # word|phrase|sentence|paragraph
    ipa: Mapped[Optional[str]] = mapped_column(String(128), default=None)
    part_of_speech: Mapped[Optional[str]] = mapped_column(String(32), default=None)
    cefr_level: Mapped[Optional[str]] = mapped_column(String(4), default=None)
    difficulty_level: Mapped[int] = mapped_column(Integer, default=2)
    definition_en: Mapped[Optional[str]] = mapped_column(Text, default=None)
    definition_vi: Mapped[Optional[str]] = mapped_column(Text, default=None)
    vietnamese_translation: Mapped[Optional[str]] = mapped_column(Text, default=None)
    example_sentence: Mapped[Optional[str]] = mapped_column(Text, default=None)
    example_translation: Mapped[Optional[str]] = mapped_column(Text, default=None)
    context_notes: Mapped[Optional[str]] = mapped_column(Text, default=None)
    personal_notes: Mapped[Optional[str]] = mapped_column(Text, default=None)
    mastery_level: Mapped[int] = mapped_column(Integer, default=0)
    review_count: Mapped[int] = mapped_column(Integer, default=0)
    correct_count: Mapped[int] = mapped_column(Integer, default=0)
    last_reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=None)
    next_review_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=None)
    source_type: Mapped[str] = mapped_column(String(16), default="manual")  # manual|analysis|import|suggestion
    source_reference: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    status: Mapped[str] = mapped_column(String(16), default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)


class VocabularyWordCollection(Base):
    __tablename__ = "vocabulary_word_collections"
    __table_args__ = (
        UniqueConstraint("vocabulary_word_id", "collection_id", name="uq_vocabulary_word_collection"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    vocabulary_word_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("vocabulary_words.id", ondelete="CASCADE"), index=True
    )
    collection_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("vocabulary_collections.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    added_manually: Mapped[bool] = mapped_column(Boolean, default=True)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


class VocabularyWordContext(Base):
    __tablename__ = "vocabulary_word_contexts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    vocabulary_word_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("vocabulary_words.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    context_type: Mapped[str] = mapped_column(String(16), default="sentence")
    context_text: Mapped[str] = mapped_column(Text)
    source_text: Mapped[Optional[str]] = mapped_column(Text, default=None)
    context_translation: Mapped[Optional[str]] = mapped_column(Text, default=None)
    position: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


class VocabularySynonym(Base):
    __tablename__ = "vocabulary_synonyms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    vocabulary_word_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("vocabulary_words.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    synonym_text: Mapped[str] = mapped_column(String(255))
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, default=None)


class VocabularyAntonym(Base):
    __tablename__ = "vocabulary_antonyms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    vocabulary_word_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("vocabulary_words.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    antonym_text: Mapped[str] = mapped_column(String(255))
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, default=None)


class VocabularyCollocation(Base):
    __tablename__ = "vocabulary_collocations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    vocabulary_word_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("vocabulary_words.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    collocation_text: Mapped[str] = mapped_column(String(255))
    collocation_type: Mapped[Optional[str]] = mapped_column(String(32), default=None)
    frequency_score: Mapped[Optional[float]] = mapped_column(Float, default=None)
