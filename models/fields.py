"""
Field model for form content documents.

A form's content is an ordered JSON array of field instances:

    [{"id": "q1", "type": "TextField", "extraAttributes": {...}}, ...]

The order is the render order and the submission field set. Each type tag
owns an attribute schema (see services.field_registry); the pydantic models
below describe those schemas.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import json

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from services.styles import SOLID_COLOR_SCHEMES, GRADIENT_SCHEMES


class MalformedContentError(ValueError):
    """Persisted form content could not be parsed or violates a field schema."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class UnknownFieldTypeError(MalformedContentError):
    pass


def error_list(exc: ValidationError) -> List[Dict[str, Any]]:
    """JSON-safe summary of a pydantic ValidationError."""
    return [{"loc": [str(p) for p in err.get("loc", ())], "msg": err.get("msg", "")} for err in exc.errors()]


class FieldType(str, Enum):
    TEXT = "TextField"
    TITLE = "TitleField"
    SUBTITLE = "SubTitleField"
    PARAGRAPH = "ParagraphField"
    SEPARATOR = "SeparatorField"
    SPACER = "SpacerField"
    NUMBER = "NumberField"
    TEXTAREA = "TextAreaField"
    DATE = "DateField"
    SELECT = "SelectField"
    CHECKBOX = "CheckboxField"
    IMAGE_UPLOAD = "ImageUploadField"
    RATING_SCALE = "RatingScaleField"
    DUAL_IMAGE_UPLOAD = "DualImageUpload"
    PICTURE_SELECT = "PictureSelectField"


class FieldInstance(BaseModel):
    """One placed field. extraAttributes is kept as a raw mapping; the owning
    type's schema validates it on save/publish."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    type: FieldType
    extra_attributes: Dict[str, Any] = Field(default_factory=dict, alias="extraAttributes")

    @field_validator("extra_attributes", mode="before")
    def _none_to_empty(cls, v):
        return {} if v is None else v

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# --------------
# Attribute schemas
# --------------

class FieldAttributes(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class InputAttributes(FieldAttributes):
    label: str = Field(min_length=2, max_length=50)
    helperText: str = Field(default="", max_length=200)
    required: bool = False


class TextAttributes(InputAttributes):
    placeHolder: str = Field(default="", max_length=50)


class TextAreaAttributes(TextAttributes):
    rows: int = Field(default=3, ge=1, le=10)


class SelectAttributes(TextAttributes):
    options: List[str] = Field(default_factory=list)


class HeadingAttributes(FieldAttributes):
    title: str = Field(min_length=2, max_length=50)


class ParagraphAttributes(FieldAttributes):
    text: str = Field(min_length=2, max_length=500)


class SpacerAttributes(FieldAttributes):
    height: int = Field(default=20, ge=5, le=200)


class ImageUploadAttributes(InputAttributes):
    prompt: str = Field(min_length=2, max_length=100)
    buttonText: str = Field(min_length=2, max_length=50)
    width: str = "w-96"
    height: str = "h-64"
    maxDimension: int = Field(default=800, ge=100, le=2000)


class DualImageUploadAttributes(InputAttributes):
    leftLabel: str = Field(default="Left Image", min_length=1, max_length=50)
    rightLabel: str = Field(default="Right Image", min_length=1, max_length=50)
    leftPrompt: str = Field(default="Upload left image", min_length=1, max_length=100)
    rightPrompt: str = Field(default="Upload right image", min_length=1, max_length=100)
    maxDimension: int = Field(default=800, ge=100, le=2000)


class RatingScaleAttributes(InputAttributes):
    question: str = Field(min_length=2, max_length=200)
    minLabel: str = Field(min_length=1, max_length=50)
    midLabel: str = Field(min_length=1, max_length=50)
    maxLabel: str = Field(min_length=1, max_length=50)
    minValue: int = Field(ge=0, le=100)
    maxValue: int = Field(ge=0, le=100)
    colorScheme: str = "blue"
    gradientScheme: Optional[str] = None

    @field_validator("colorScheme")
    def _known_color_scheme(cls, v):
        if v not in SOLID_COLOR_SCHEMES:
            raise ValueError(f"Unknown color scheme: {v}")
        return v

    @field_validator("gradientScheme", mode="before")
    def _known_gradient_scheme(cls, v):
        if v in (None, "", "none"):
            return None
        if v not in GRADIENT_SCHEMES:
            raise ValueError(f"Unknown gradient scheme: {v}")
        return v

    @model_validator(mode="after")
    def _ordered_range(self):
        if self.minValue >= self.maxValue:
            raise ValueError("minValue must be lower than maxValue")
        return self


class PictureOption(BaseModel):
    src: str = Field(min_length=1)
    label: str = ""


class PictureSelectAttributes(InputAttributes):
    images: List[PictureOption] = Field(min_length=1)


# --------------
# Content document
# --------------

def parse_content(raw: Union[str, bytes, List[Any], None]) -> List[FieldInstance]:
    """Parse a persisted content document into field instances.

    Only the document structure is checked here (array, entry shape, known
    type tags, unique ids). Attribute schemas are checked by validate_content.
    """
    if raw is None or raw == "" or raw == b"":
        return []
    data = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, ValueError) as e:
            raise MalformedContentError(f"Content is not valid JSON: {e}")
    if not isinstance(data, list):
        raise MalformedContentError("Content must be a JSON array")

    fields: List[FieldInstance] = []
    seen = set()
    for index, entry in enumerate(data):
        if isinstance(entry, dict) and entry.get("type") not in {t.value for t in FieldType}:
            raise UnknownFieldTypeError(
                f"Unknown field type at index {index}: {entry.get('type')!r}",
                [{"index": index, "type": entry.get("type")}],
            )
        try:
            field = FieldInstance.model_validate(entry)
        except ValidationError as e:
            raise MalformedContentError(f"Invalid field at index {index}", error_list(e))
        if field.id in seen:
            raise MalformedContentError(f"Duplicate field id: {field.id}", [{"index": index, "id": field.id}])
        seen.add(field.id)
        fields.append(field)
    return fields


def validate_content(fields: List[FieldInstance]) -> List[FieldInstance]:
    """Check every instance's extraAttributes against its type's schema."""
    from services.field_registry import get_contract

    errors: List[Dict[str, Any]] = []
    for field in fields:
        try:
            get_contract(field.type).parse_attributes(field)
        except MalformedContentError as e:
            errors.append({"id": field.id, "type": field.type.value, "errors": e.errors})
    if errors:
        raise MalformedContentError("One or more fields have invalid attributes", errors)
    return fields


def dump_content(fields: List[FieldInstance]) -> str:
    return json.dumps([f.to_json() for f in fields], ensure_ascii=False)
