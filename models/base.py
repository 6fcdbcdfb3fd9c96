"""
Base Pydantic models for data validation and sanitization
"""
from datetime import datetime
from html import unescape
from typing import Optional, Dict, List, Any
from pydantic import BaseModel, Field, field_validator, ConfigDict
import bleach

from services.styles import THEMES, DEFAULT_THEME


def clean_text(value: str) -> str:
    """Strip markup with bleach, then undo its entity escaping so `&` stays `&`."""
    return unescape(bleach.clean(value.strip(), strip=True))


class BaseDBModel(BaseModel):
    """Base model with common validation and sanitization methods"""

    @field_validator('*', mode='before')
    def sanitize_strings(cls, v, info):
        """Sanitize string inputs to prevent XSS attacks"""
        if isinstance(v, str) and info.field_name:
            return clean_text(v)
        return v


class FormCreateModel(BaseDBModel):
    """Payload for creating a form"""
    name: str = Field(min_length=4, max_length=100)
    description: str = Field(default="", max_length=500)
    theme: str = DEFAULT_THEME

    @field_validator('theme')
    def validate_theme(cls, v):
        if v not in THEMES:
            raise ValueError(f"Unknown theme: {v}")
        return v


class ContentUpdateModel(BaseDBModel):
    """Payload for replacing a form's content document"""
    model_config = ConfigDict(populate_by_name=True)

    content: List[Dict[str, Any]]
    theme: Optional[str] = None

    @field_validator('theme')
    def validate_theme(cls, v):
        if v is not None and v not in THEMES:
            raise ValueError(f"Unknown theme: {v}")
        return v


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, str):
        return clean_text(value)
    if isinstance(value, dict):
        return {key: _sanitize_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_sanitize_value(item) for item in value]
    return value


class SubmissionModel(BaseDBModel):
    """Submission model for validation and sanitization"""
    id: Optional[str] = None
    form_id: str
    data: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    submitted_at: Optional[datetime] = None

    @field_validator('data')
    def sanitize_submission_data(cls, v):
        """Sanitize all string values in submission data"""
        if not isinstance(v, dict):
            return {}
        return _sanitize_value(v)


class AnalyticsModel(BaseDBModel):
    """Analytics model for validation and sanitization"""
    id: Optional[str] = None
    form_id: str
    event: str
    submission_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
