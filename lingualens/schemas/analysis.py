"""Request models for the AI analysis and generation endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .. import config
from .common import RANGE, REQUIRED, TYPE, fail, int_in_range, optional_text, required_text


class _CamelModel(BaseModel):
    # Wire names are camelCase; forward with model_dump(by_alias=True)
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AnalyzeWordRequest(_CamelModel):
    word: str = Field(None, validate_default=True)
    sentence_context: str = Field(None, alias="sentenceContext", validate_default=True)
    paragraph_context: str = Field("", alias="paragraphContext")
    max_items: int = Field(config.MAX_ITEMS_DEFAULT, alias="maxItems")

    @field_validator("word", mode="before")
    @classmethod
    def _word(cls, v):
        return required_text(
            v, "Word is required", config.WORD_MAX_LEN, f"Word too long (max {config.WORD_MAX_LEN} characters)"
        )

    @field_validator("sentence_context", mode="before")
    @classmethod
    def _sentence_context(cls, v):
        return required_text(
            v,
            "Sentence context is required",
            config.SENTENCE_CONTEXT_MAX_LEN,
            f"Sentence context too long (max {config.SENTENCE_CONTEXT_MAX_LEN} characters)",
        )

    @field_validator("paragraph_context", mode="before")
    @classmethod
    def _paragraph_context(cls, v):
        return optional_text(
            v,
            config.PARAGRAPH_CONTEXT_MAX_LEN,
            f"Paragraph context too long (max {config.PARAGRAPH_CONTEXT_MAX_LEN} characters)",
        ) or ""

    @field_validator("max_items", mode="before")
    @classmethod
    def _max_items(cls, v):
        if v is None:
            return config.MAX_ITEMS_DEFAULT
        n = int_in_range(
            v,
            config.MAX_ITEMS_MIN,
            config.MAX_ITEMS_MAX,
            f"Max items must be between {config.MAX_ITEMS_MIN} and {config.MAX_ITEMS_MAX}",
        )
        return min(n, config.MAX_ITEMS_MAX)


class AnalyzeSentenceRequest(_CamelModel):
    sentence: str = Field(None, validate_default=True)
    paragraph_context: str = Field("", alias="paragraphContext")

    @field_validator("sentence", mode="before")
    @classmethod
    def _sentence(cls, v):
        return required_text(
            v,
            "Sentence is required",
            config.SENTENCE_MAX_LEN,
            f"Sentence too long (max {config.SENTENCE_MAX_LEN} characters)",
        )

    @field_validator("paragraph_context", mode="before")
    @classmethod
    def _paragraph_context(cls, v):
        return optional_text(
            v,
            config.PARAGRAPH_CONTEXT_MAX_LEN,
            f"Paragraph context too long (max {config.PARAGRAPH_CONTEXT_MAX_LEN} characters)",
        ) or ""


class AnalyzeParagraphRequest(_CamelModel):
    paragraph: str = Field(None, validate_default=True)

    @field_validator("paragraph", mode="before")
    @classmethod
    def _paragraph(cls, v):
        return required_text(
            v,
            "Paragraph is required",
            max_len=config.PARAGRAPH_MAX_LEN,
            too_long=f"Paragraph too long (maximum {config.PARAGRAPH_MAX_LEN} characters)",
            min_len=config.PARAGRAPH_MIN_LEN,
            too_short=f"Paragraph too short (minimum {config.PARAGRAPH_MIN_LEN} characters)",
        )


class GenerateTextRequest(_CamelModel):
    prompt: str = Field(None, validate_default=True)
    model: Optional[str] = None
    max_tokens: Optional[int] = Field(None, alias="maxTokens")
    temperature: Optional[float] = None
    top_p: Optional[float] = Field(None, alias="topP")
    frequency_penalty: Optional[float] = Field(None, alias="frequencyPenalty")
    presence_penalty: Optional[float] = Field(None, alias="presencePenalty")
    stop_sequences: Optional[List[str]] = Field(None, alias="stopSequences")
    system_prompt: Optional[str] = Field(None, alias="systemPrompt")
    conversation_history: Optional[List[Dict[str, Any]]] = Field(None, alias="conversationHistory")
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("prompt", mode="before")
    @classmethod
    def _prompt(cls, v):
        if not isinstance(v, str) or not v:
            raise fail(REQUIRED, "Prompt is required and must be a string")
        return v

    @field_validator("max_tokens", mode="before")
    @classmethod
    def _max_tokens(cls, v):
        if v is None:
            return None
        if isinstance(v, bool) or not isinstance(v, (int, float)) or v < 1:
            raise fail(RANGE, "maxTokens must be a positive number")
        return int(v)

    @field_validator("temperature", mode="before")
    @classmethod
    def _temperature(cls, v):
        if v is None:
            return None
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise fail(RANGE, "temperature must be between 0 and 2")
        if v < config.TEMPERATURE_MIN or v > config.TEMPERATURE_MAX:
            raise fail(RANGE, "temperature must be between 0 and 2")
        return float(v)


class GenerateEmbeddingRequest(_CamelModel):
    input: Union[str, List[str]] = Field(None, validate_default=True)
    model: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("input", mode="before")
    @classmethod
    def _input(cls, v):
        if not v or not isinstance(v, (str, list)):
            raise fail(REQUIRED, "Input is required and must be a string or array of strings")
        items = v if isinstance(v, list) else [v]
        for item in items:
            if not isinstance(item, str) or not item:
                raise fail(TYPE, "All inputs must be non-empty strings")
        return v
