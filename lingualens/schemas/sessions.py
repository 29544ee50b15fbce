"""Request models for sessions and analysis history."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .. import config
from .common import CHOICE, REQUIRED, TYPE, fail, is_blank, one_of, required_text

SESSION_TYPES = ("word", "sentence", "paragraph", "mixed")
SESSION_STATUSES = ("active", "archived", "deleted")
ANALYSIS_TYPES = ("word", "sentence", "paragraph")
SORT_FIELDS = ("created_at", "updated_at", "analysis_type")


class SessionSettingsPayload(BaseModel):
    """Writable session settings; unknown keys are dropped."""

    auto_save: Optional[bool] = None
    show_summaries: Optional[bool] = None
    compact_view: Optional[bool] = None
    preferred_ai_provider: Optional[str] = None
    preferred_ai_model: Optional[str] = None
    analysis_depth: Optional[Literal["basic", "standard", "detailed"]] = None
    default_export_format: Optional[Literal["json", "pdf", "markdown", "csv"]] = None
    include_metadata: Optional[bool] = None
    email_notifications: Optional[bool] = None
    session_reminders: Optional[bool] = None


DEFAULT_SESSION_SETTINGS: Dict[str, Any] = {
    "auto_save": True,
    "show_summaries": True,
    "compact_view": False,
    "preferred_ai_provider": None,
    "preferred_ai_model": None,
    "analysis_depth": "standard",
    "default_export_format": "json",
    "include_metadata": True,
    "email_notifications": False,
    "session_reminders": False,
}


class CreateSessionRequest(BaseModel):
    title: str = Field(None, validate_default=True)
    session_type: str = Field(None, validate_default=True)
    description: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None
    tag_ids: List[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v):
        return required_text(v, "Title and session_type are required", 255, "Title too long (max 255 characters)")

    @field_validator("session_type", mode="before")
    @classmethod
    def _session_type(cls, v):
        if is_blank(v):
            raise fail(REQUIRED, "Title and session_type are required")
        return one_of(v, SESSION_TYPES, f"session_type must be one of: {', '.join(SESSION_TYPES)}")


class UpdateSessionRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    session_type: Optional[Literal["word", "sentence", "paragraph", "mixed"]] = None
    status: Optional[Literal["active", "archived", "deleted"]] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v):
        if v is None:
            return None
        return required_text(v, "Title cannot be empty", 255, "Title too long (max 255 characters)")


class AddSessionAnalysisRequest(BaseModel):
    analysis_type: str = Field(None, validate_default=True)
    analysis_id: str = Field(None, validate_default=True)
    analysis_title: Optional[str] = None
    analysis_summary: Optional[str] = None
    analysis_data: Optional[Any] = None

    @field_validator("analysis_type", mode="before")
    @classmethod
    def _analysis_type(cls, v):
        if is_blank(v):
            raise fail(REQUIRED, "analysis_type and analysis_id are required")
        return one_of(v, ANALYSIS_TYPES, f"analysis_type must be one of: {', '.join(ANALYSIS_TYPES)}")

    @field_validator("analysis_id", mode="before")
    @classmethod
    def _analysis_id(cls, v):
        return required_text(v, "analysis_type and analysis_id are required")


class ReorderAnalysesRequest(BaseModel):
    analysis_ids: List[str] = Field(None, validate_default=True)

    @field_validator("analysis_ids", mode="before")
    @classmethod
    def _ids(cls, v):
        if not isinstance(v, list) or not v:
            raise fail(REQUIRED, "analysis_ids array is required")
        if not all(isinstance(i, str) and i for i in v):
            raise fail(TYPE, "analysis_ids must be non-empty strings")
        return v


# ---- analysis history ----

_ADD_REQUIRED = "Missing required fields: id, session_id, type, input_text, result"
_BATCH_ITEM_REQUIRED = "Each analysis must have: id, session_id, type, input_text, result"


class AnalysisAddRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(None, validate_default=True)
    session_id: str = Field(None, validate_default=True)
    type: str = Field(None, validate_default=True)
    input_text: str = Field(None, validate_default=True)
    result: Any = Field(None, validate_default=True)
    title: Optional[str] = None
    summary: Optional[str] = None
    timestamp: Optional[Any] = None
    position: Optional[int] = None

    @field_validator("id", "session_id", "input_text", mode="before")
    @classmethod
    def _required(cls, v):
        return required_text(v, _ADD_REQUIRED)

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        if is_blank(v):
            raise fail(REQUIRED, _ADD_REQUIRED)
        return one_of(v, ANALYSIS_TYPES, f"type must be one of: {', '.join(ANALYSIS_TYPES)}")

    @field_validator("result", mode="before")
    @classmethod
    def _result(cls, v):
        if v is None or v == {} or v == "":
            raise fail(REQUIRED, _ADD_REQUIRED)
        return v


class AnalysisBatchRequest(BaseModel):
    analyses: List[AnalysisAddRequest] = Field(None, validate_default=True)

    @field_validator("analyses", mode="before")
    @classmethod
    def _analyses(cls, v):
        if not isinstance(v, list) or not v:
            raise fail(REQUIRED, "analyses array is required and must not be empty")
        items = []
        for item in v:
            if not isinstance(item, dict):
                raise fail(REQUIRED, _BATCH_ITEM_REQUIRED)
            try:
                items.append(AnalysisAddRequest.model_validate(item))
            except ValidationError:
                raise fail(REQUIRED, _BATCH_ITEM_REQUIRED)
        return items


class DateRange(BaseModel):
    start: str
    end: str


class RecentAnalysesQuery(BaseModel):
    limit: int = config.RECENT_LIMIT_DEFAULT
    offset: int = 0
    type: str = "all"
    session_id: Optional[str] = None
    date_range: Optional[DateRange] = None
    search: Optional[str] = None
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("limit", mode="before")
    @classmethod
    def _limit(cls, v):
        if v in (None, ""):
            return config.RECENT_LIMIT_DEFAULT
        try:
            n = int(v)
        except (TypeError, ValueError):
            raise fail(TYPE, "limit must be an integer")
        if n < 1:
            return config.RECENT_LIMIT_DEFAULT
        return min(n, config.PAGE_LIMIT_MAX)

    @field_validator("offset", mode="before")
    @classmethod
    def _offset(cls, v):
        if v in (None, ""):
            return 0
        try:
            return max(0, int(v))
        except (TypeError, ValueError):
            raise fail(TYPE, "offset must be an integer")

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        if v in (None, ""):
            return "all"
        return one_of(v, ANALYSIS_TYPES + ("all",), "type must be one of: word, sentence, paragraph, all")

    @field_validator("sort_by", mode="before")
    @classmethod
    def _sort_by(cls, v):
        if v in (None, ""):
            return "created_at"
        if v not in SORT_FIELDS:
            raise fail(CHOICE, f"sort_by must be one of: {', '.join(SORT_FIELDS)}")
        return v

    @field_validator("sort_order", mode="before")
    @classmethod
    def _sort_order(cls, v):
        return v or "desc"


class LocalHistoryItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: Literal["word", "sentence", "paragraph"]
    input: str
    result: Any = None
    timestamp: int


class SyncRequest(BaseModel):
    local_history: List[LocalHistoryItem] = Field(default_factory=list)
    last_sync_timestamp: Optional[int] = None
