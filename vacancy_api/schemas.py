"""
Vacancy API - Pydantic schemas and the vacancy validator.

Request bodies are accepted as plain dicts and validated here rather than by
FastAPI, so validation failures come back as field-keyed 400 errors in the
API's own response shape.
"""
import json
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import VacancyValidationError
from .models import INTEGER_MAX

TITLE_MAX_LENGTH = 255
ADDITIONAL_FIELDS_MAX_BYTES = 5000
SALARY_MAX = INTEGER_MAX
MAX_PROJECTED_FIELDS = 10


# --- Enums for validated query parameters ---

class SortField(str, Enum):
    SALARY = "salary"
    CREATED_AT = "created_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SearchSort(str, Enum):
    RELEVANCE = "relevance"
    ASC = "asc"
    DESC = "desc"


class VacancyField(str, Enum):
    """Fields a client may project with ?fields=. `id` is always included."""
    TITLE = "title"
    DESCRIPTION = "description"
    SALARY = "salary"
    ADDITIONAL_FIELDS = "additional_fields"


EDITABLE_FIELDS = tuple(f.value for f in VacancyField)


def parse_fields(raw_fields: Iterable[str]) -> List[VacancyField]:
    """Intersect requested field names with VacancyField, keeping request order."""
    allowed = {f.value: f for f in VacancyField}
    parsed = []
    for name in raw_fields:
        field = allowed.get(name.strip())
        if field is not None and field not in parsed:
            parsed.append(field)
    return parsed


def encode_additional_fields(value: Any) -> str:
    """Compact JSON encoding used for the additional_fields size limit."""
    return json.dumps(value, separators=(",", ":"))


# --- Vacancy schemas ---

class VacancyData(BaseModel):
    """A complete, valid vacancy as it will be persisted."""
    title: str = Field(..., max_length=TITLE_MAX_LENGTH)
    description: str
    salary: int = Field(..., ge=0, le=SALARY_MAX)
    additional_fields: Optional[Dict[str, Any]] = None

    class Config:
        extra = "ignore"

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("cannot be blank")
        return v

    @field_validator("additional_fields")
    @classmethod
    def limit_additional_fields(cls, v):
        if not v:
            return v
        try:
            encoded = encode_additional_fields(v)
        except (TypeError, ValueError):
            raise ValueError("must be JSON-serializable")
        if len(encoded.encode("utf-8")) > ADDITIONAL_FIELDS_MAX_BYTES:
            raise ValueError(
                f"too large (maximum {ADDITIONAL_FIELDS_MAX_BYTES} bytes when JSON-encoded)"
            )
        return v


def format_validation_errors(exc: ValidationError) -> Dict[str, List[str]]:
    """Collapse pydantic errors into {field: [messages]}."""
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "__root__"
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, []).append(message)
    return errors


def validate_vacancy(data: Mapping[str, Any], message: Optional[str] = None) -> VacancyData:
    """
    Validate a full set of vacancy fields.

    Args:
        data: Field values; unknown keys are ignored.
        message: Top-level message for the error response.

    Raises:
        VacancyValidationError: with field-keyed messages when invalid.
    """
    if not isinstance(data, Mapping):
        raise VacancyValidationError(
            {"__root__": ["Request body must be a JSON object"]}, message
        )
    try:
        return VacancyData.model_validate(dict(data))
    except ValidationError as exc:
        raise VacancyValidationError(format_validation_errors(exc), message)


# --- Response schemas (documentation for the OpenAPI schema) ---

class VacancySummary(BaseModel):
    id: int
    title: str
    salary: int
    description: str


class Pagination(BaseModel):
    total: int
    page: int
    pageSize: int
    pageCount: int


class VacancyListResponse(BaseModel):
    data: List[VacancySummary]
    pagination: Pagination


class VacancySearchResponse(VacancyListResponse):
    query: str
