import logging
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    PARAGRAPH = "paragraph"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    BOOLEAN = "boolean"
    DATE = "date"


CHOICE_TYPES = {FieldType.SINGLE_CHOICE, FieldType.MULTI_CHOICE}

# HTML-style tags produced by the AI generator and older clients
FIELD_TYPE_ALIASES = {
    "tel": FieldType.PHONE,
    "textarea": FieldType.PARAGRAPH,
    "select": FieldType.SINGLE_CHOICE,
    "radio": FieldType.SINGLE_CHOICE,
    "dropdown": FieldType.SINGLE_CHOICE,
    "checkboxes": FieldType.MULTI_CHOICE,
    "checkbox": FieldType.BOOLEAN,
}


def normalize_field_type(raw: Any) -> FieldType:
    """Map a loose type tag onto FieldType; unknown tags become text."""
    if isinstance(raw, FieldType):
        return raw
    tag = str(raw or "").strip().lower().replace("-", "_")
    if tag in FIELD_TYPE_ALIASES:
        return FIELD_TYPE_ALIASES[tag]
    try:
        return FieldType(tag)
    except ValueError:
        return FieldType.TEXT


RuleAction = Literal["show", "hide"]
RuleOperator = Literal["equals", "not_equals", "contains", "not_empty"]


class ConditionalRule(BaseModel):
    enabled: bool = False
    action: RuleAction = "show"
    sourceFieldId: str = ""
    operator: RuleOperator = "equals"
    # ignored by not_empty
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _value_as_text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)


class FormField(BaseModel):
    id: str
    formId: str = ""
    name: str = Field(min_length=1)
    label: str = Field(min_length=1)
    type: FieldType = FieldType.TEXT
    placeholder: str = ""
    options: Optional[List[str]] = None
    required: bool = False
    position: int = 0
    conditionalRule: Optional[ConditionalRule] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v):
        return normalize_field_type(v)

    @field_validator("placeholder", mode="before")
    @classmethod
    def _placeholder_default(cls, v):
        return v or ""

    @field_validator("conditionalRule", mode="wrap")
    @classmethod
    def _drop_unreadable_rule(cls, v, handler):
        # an unreadable rule must never hide the field
        try:
            return handler(v)
        except ValidationError as exc:
            logger.warning("Ignoring malformed conditional rule %r: %s", v, exc.errors())
            return None

    @model_validator(mode="after")
    def _options_match_type(self):
        if self.type in CHOICE_TYPES:
            if not self.options:
                raise ValueError(f"{self.type.value} fields need at least one option")
        else:
            self.options = None
        return self


class FormIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Form name is required")
        return v


class FormUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    isPublic: Optional[bool] = None


class FieldCreate(BaseModel):
    name: Optional[str] = None
    label: Optional[str] = None
    type: Optional[str] = None
    placeholder: Optional[str] = None
    options: Optional[List[str]] = None
    required: Optional[bool] = None


class FieldUpdate(BaseModel):
    name: Optional[str] = None
    label: Optional[str] = None
    type: Optional[str] = None
    placeholder: Optional[str] = None
    options: Optional[List[str]] = None
    required: Optional[bool] = None
    conditionalRule: Optional[ConditionalRule] = None


class FieldOrder(BaseModel):
    fieldIds: List[str]


class GenerateRequest(BaseModel):
    formName: str = Field(min_length=1)


class GeneratedField(BaseModel):
    """A field proposed by the AI generator, before it belongs to a form."""

    name: str = Field(min_length=1)
    type: FieldType = FieldType.TEXT
    label: str = Field(min_length=1)
    placeholder: str = ""
    required: bool = False
    options: Optional[List[str]] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v):
        return normalize_field_type(v)

    @field_validator("placeholder", mode="before")
    @classmethod
    def _placeholder_default(cls, v):
        return v or ""

    @model_validator(mode="after")
    def _demote_choice_without_options(self):
        if self.type in CHOICE_TYPES and not self.options:
            self.type = FieldType.TEXT
        if self.type not in CHOICE_TYPES:
            self.options = None
        return self


class SubmissionIn(BaseModel):
    values: Dict[str, Any] = Field(default_factory=dict)

