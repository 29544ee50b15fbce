"""Request models for vocabulary words and collections."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .. import config
from .common import REQUIRED, fail, int_in_range, is_blank, one_of, required_text

CONTENT_TYPES = ("word", "phrase", "sentence", "paragraph")
COLLECTION_TYPES = ("custom", "topic", "difficulty", "cefr_level", "frequency")
PRACTICE_RESULTS = ("correct", "incorrect")

PartOfSpeech = Literal[
    "noun", "verb", "adjective", "adverb", "pronoun", "preposition",
    "conjunction", "interjection", "determiner", "exclamation",
]
CefrLevel = Literal["A1", "A2", "B1", "B2", "C1", "C2"]

_DIFFICULTY_MSG = f"difficulty_level must be between {config.DIFFICULTY_MIN} and {config.DIFFICULTY_MAX}"
_MASTERY_MSG = f"mastery_level must be between {config.MASTERY_MIN} and {config.MASTERY_MAX}"


class _WordFields(BaseModel):
    ipa: Optional[str] = None
    part_of_speech: Optional[PartOfSpeech] = None
    cefr_level: Optional[CefrLevel] = None
    definition_vi: Optional[str] = None
    vietnamese_translation: Optional[str] = None
    example_sentence: Optional[str] = None
    example_translation: Optional[str] = None
    context_notes: Optional[str] = None
    personal_notes: Optional[str] = None


class CreateWordRequest(_WordFields):
    word: str = Field(None, validate_default=True)
    definition_en: str = Field(None, validate_default=True)
    difficulty_level: int = config.DIFFICULTY_DEFAULT
    mastery_level: int = config.MASTERY_MIN
    content_type: Literal["word", "phrase", "sentence", "paragraph"] = "word"

    @field_validator("word", mode="before")
    @classmethod
    def _word(cls, v):
        # stored lower-cased; "Run" and "run" are the same entry
        return required_text(
            v,
            "word and definition_en are required",
            config.VOCAB_WORD_MAX_LEN,
            f"Word too long (max {config.VOCAB_WORD_MAX_LEN} characters)",
        ).lower()

    @field_validator("definition_en", mode="before")
    @classmethod
    def _definition(cls, v):
        return required_text(v, "word and definition_en are required")

    @field_validator("difficulty_level", mode="before")
    @classmethod
    def _difficulty(cls, v):
        if v is None:
            return config.DIFFICULTY_DEFAULT
        return int_in_range(v, config.DIFFICULTY_MIN, config.DIFFICULTY_MAX, _DIFFICULTY_MSG)

    @field_validator("mastery_level", mode="before")
    @classmethod
    def _mastery(cls, v):
        if v is None:
            return config.MASTERY_MIN
        return int_in_range(v, config.MASTERY_MIN, config.MASTERY_MAX, _MASTERY_MSG)


class UpdateWordRequest(_WordFields):
    word: Optional[str] = None
    definition_en: Optional[str] = None
    difficulty_level: Optional[int] = None
    mastery_level: Optional[int] = None
    status: Optional[Literal["active", "archived", "deleted"]] = None

    @field_validator("word", mode="before")
    @classmethod
    def _word(cls, v):
        if v is None:
            return None
        return required_text(
            v,
            "word cannot be empty",
            config.VOCAB_WORD_MAX_LEN,
            f"Word too long (max {config.VOCAB_WORD_MAX_LEN} characters)",
        ).lower()

    @field_validator("difficulty_level", mode="before")
    @classmethod
    def _difficulty(cls, v):
        if v is None:
            return None
        return int_in_range(v, config.DIFFICULTY_MIN, config.DIFFICULTY_MAX, _DIFFICULTY_MSG)

    @field_validator("mastery_level", mode="before")
    @classmethod
    def _mastery(cls, v):
        if v is None:
            return None
        return int_in_range(v, config.MASTERY_MIN, config.MASTERY_MAX, _MASTERY_MSG)


class PracticeRequest(BaseModel):
    result: str = Field(None, validate_default=True)

    @field_validator("result", mode="before")
    @classmethod
    def _result(cls, v):
        if is_blank(v):
            raise fail(REQUIRED, "result is required")
        return one_of(v, PRACTICE_RESULTS, "result must be 'correct' or 'incorrect'")


class CreateCollectionRequest(BaseModel):
    name: str = Field(None, validate_default=True)
    collection_type: str = Field(None, validate_default=True)
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_public: bool = False
    is_default: bool = False
    practice_enabled: bool = True
    review_interval_days: int = Field(1, ge=1)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        return required_text(v, "name and collection_type are required", 255, "Name too long (max 255 characters)")

    @field_validator("collection_type", mode="before")
    @classmethod
    def _collection_type(cls, v):
        if is_blank(v):
            raise fail(REQUIRED, "name and collection_type are required")
        return one_of(v, COLLECTION_TYPES, f"collection_type must be one of: {', '.join(COLLECTION_TYPES)}")


class UpdateCollectionRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    collection_type: Optional[Literal["custom", "topic", "difficulty", "cefr_level", "frequency"]] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_public: Optional[bool] = None
    is_default: Optional[bool] = None
    practice_enabled: Optional[bool] = None
    review_interval_days: Optional[int] = Field(None, ge=1)
    status: Optional[Literal["active", "archived", "deleted"]] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        if v is None:
            return None
        return required_text(v, "name cannot be empty", 255, "Name too long (max 255 characters)")


class CollectionAddWordRequest(BaseModel):
    word_id: str = Field(None, validate_default=True)

    @field_validator("word_id", mode="before")
    @classmethod
    def _word_id(cls, v):
        return required_text(v, "word_id is required")


class FromAnalysisRequest(BaseModel):
    content: str = Field(None, validate_default=True)
    content_type: str = Field(None, validate_default=True)
    analysis_type: Optional[str] = None
    definition_en: Optional[str] = None
    definition_vi: Optional[str] = None
    vietnamese_translation: Optional[str] = None
    difficulty_level: int = config.DIFFICULTY_DEFAULT
    context_notes: Optional[str] = None
    personal_notes: Optional[str] = None

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, v):
        return required_text(v, "content and content_type are required")

    @field_validator("content_type", mode="before")
    @classmethod
    def _content_type(cls, v):
        if is_blank(v):
            raise fail(REQUIRED, "content and content_type are required")
        return one_of(v, CONTENT_TYPES, f"content_type must be one of: {', '.join(CONTENT_TYPES)}")

    @field_validator("difficulty_level", mode="before")
    @classmethod
    def _difficulty(cls, v):
        if v in (None, 0):
            return config.DIFFICULTY_DEFAULT
        return int_in_range(v, config.DIFFICULTY_MIN, config.DIFFICULTY_MAX, _DIFFICULTY_MSG)
